"""
Inventory services export surface.
"""

from .exceptions import (
    ConcurrencyConflictError,
    InvalidStateError,
    NothingToReverseError,
    NotFoundError,
    StockLedgerError,
    ValidationFailedError,
)

__all__ = [
    "StockLedgerError",
    "InvalidStateError",
    "NotFoundError",
    "ValidationFailedError",
    "NothingToReverseError",
    "ConcurrencyConflictError",
]
