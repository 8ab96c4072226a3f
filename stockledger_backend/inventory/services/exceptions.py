# inventory/services/exceptions.py

"""
STOCK LEDGER ERRORS

Centralized domain errors for costing, stock store, ledger and receipt
lifecycle services. Services raise these unmodified; request handlers map
them to client-facing responses.
"""


class StockLedgerError(Exception):
    """Base exception for all stock ledger failures."""

    code = "stock_ledger_error"
    retryable = False


class InvalidStateError(StockLedgerError):
    """Operation attempted from a status that forbids it."""

    code = "invalid_state"


class NotFoundError(StockLedgerError):
    """Referenced stock item or document does not exist in the tenant's scope."""

    code = "not_found"


class ValidationFailedError(StockLedgerError):
    """Missing supplier, empty line list, negative quantity/cost, ..."""

    code = "validation_failed"


class NothingToReverseError(StockLedgerError):
    """Cancel attempted but no ledger movements exist for the document."""

    code = "nothing_to_reverse"


class ConcurrencyConflictError(StockLedgerError):
    """An atomic stock update or status guard lost a race. Safe to retry."""

    code = "concurrency_conflict"
    retryable = True
