"""Translate domain exceptions into HTTP errors"""

import logging
from fastapi import HTTPException
from installment_ledger.domain.exceptions import (
    ConcurrencyConflict,
    CreditExceeded,
    DomainException,
    InsufficientStock,
    LedgerInconsistency,
    NotFound,
    Overpayment,
    SalesBlocked,
    ValidationError,
)
from installment_ledger.infrastructure.observability.metrics import ledger_inconsistency_counter

STATUS_CODES = {
    ValidationError: 422,
    NotFound: 404,
    InsufficientStock: 409,
    CreditExceeded: 409,
    Overpayment: 409,
    SalesBlocked: 409,
    ConcurrencyConflict: 409,
    LedgerInconsistency: 500,
}


def to_http_exception(error: DomainException, request_id: str) -> HTTPException:
    """Map a domain exception to an HTTPException carrying its structured details"""
    if isinstance(error, LedgerInconsistency):
        ledger_inconsistency_counter.inc()
        logging.error(f"Ledger inconsistency: {error}", extra={"request_id": request_id, **error.details})
    else:
        logging.warning(f"Request rejected: {error}", extra={"request_id": request_id, "error": error.code})

    status_code = next(
        (code for exc_type, code in STATUS_CODES.items() if isinstance(error, exc_type)),
        400,
    )
    return HTTPException(status_code=status_code, detail=error.to_dict())
