# inventory/api/errors.py

"""
Domain error -> HTTP response mapping shared by every stock/receipt view.
"""

import logging

from rest_framework import status
from rest_framework.response import Response

from inventory.services.exceptions import (
    ConcurrencyConflictError,
    InvalidStateError,
    NothingToReverseError,
    NotFoundError,
    StockLedgerError,
    ValidationFailedError,
)

logger = logging.getLogger("inventory")

STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationFailedError, status.HTTP_400_BAD_REQUEST),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (NothingToReverseError, status.HTTP_409_CONFLICT),
    (ConcurrencyConflictError, status.HTTP_409_CONFLICT),
)


def status_for(exc: StockLedgerError) -> int:
    for error_class, http_status in STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return http_status
    return status.HTTP_400_BAD_REQUEST


def stock_ledger_error_response(exc: StockLedgerError) -> Response:
    payload = {"detail": str(exc), "code": exc.code}
    if exc.retryable:
        payload["retryable"] = True

    http_status = status_for(exc)
    logger.info(
        "Request rejected",
        extra={"code": exc.code, "status": http_status},
    )
    return Response(payload, status=http_status)
