"""Translation of typed ledger failures into HTTP error envelopes."""

from __future__ import annotations

from fastapi import status
from fastapi.responses import JSONResponse

from commodity_ledger.domain.errors import (
    LedgerCapacityError,
    LedgerConcurrencyConflictError,
    LedgerError,
    LedgerIntegrityError,
    LedgerNotFoundError,
    LedgerStateError,
    LedgerValidationError,
)

_UNPROCESSABLE_STATUS = 422

_STATUS_BY_ERROR_FAMILY: tuple[tuple[type[LedgerError], int], ...] = (
    (LedgerValidationError, status.HTTP_400_BAD_REQUEST),
    (LedgerNotFoundError, status.HTTP_404_NOT_FOUND),
    (LedgerStateError, status.HTTP_409_CONFLICT),
    (LedgerConcurrencyConflictError, status.HTTP_409_CONFLICT),
    (LedgerCapacityError, _UNPROCESSABLE_STATUS),
    (LedgerIntegrityError, _UNPROCESSABLE_STATUS),
)


def api_status_code_for_error(error: LedgerError) -> int:
    """Return the HTTP status code for one ledger failure family."""

    for error_type, status_code in _STATUS_BY_ERROR_FAMILY:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def api_build_error_response(error: LedgerError) -> JSONResponse:
    """Render one ledger failure as the standard error envelope.

    Args:
        error: Typed ledger failure.

    Returns:
        JSONResponse: `{"status": "error", "code", "message"}` payload, plus
            `"retryable": true` for concurrency conflicts.
    """

    payload: dict[str, object] = {
        "status": "error",
        "code": error.error_code,
        "message": str(error),
    }
    if isinstance(error, LedgerConcurrencyConflictError):
        payload["retryable"] = True
    return JSONResponse(content=payload, status_code=api_status_code_for_error(error))
