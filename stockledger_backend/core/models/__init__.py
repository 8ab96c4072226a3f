from .counter import DocumentCounter

__all__ = ["DocumentCounter"]
