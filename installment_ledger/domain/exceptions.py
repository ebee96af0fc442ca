"""Domain-specific exceptions"""

from typing import Any, Dict


class DomainException(Exception):
    """Base exception for domain layer"""

    code = "domain_error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, **self.details}


class ValidationError(DomainException):
    """Missing or malformed customer, items or amount"""

    code = "validation_error"


class InvalidAmount(ValidationError):
    """Payment amount is zero or negative"""

    code = "invalid_amount"

    def __init__(self, amount_cents: int):
        super().__init__(f"Amount must be positive, got {amount_cents}", amount_cents=amount_cents)


class NotFound(DomainException):
    """Referenced customer, invoice or catalog item does not exist"""

    code = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found", entity=entity, entity_id=str(entity_id))


class InsufficientStock(DomainException):
    """Requested quantity exceeds available stock"""

    code = "insufficient_stock"

    def __init__(self, item_id: Any, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for item {item_id}: requested {requested}, available {available}",
            item_id=str(item_id),
            requested=requested,
            available=available,
        )


class CreditExceeded(DomainException):
    """Reservation would push outstanding balance past the credit limit"""

    code = "credit_exceeded"

    def __init__(self, available_cents: int, requested_cents: int):
        super().__init__(
            f"Credit limit exceeded: requested {requested_cents}, available {available_cents}",
            available_credit_cents=available_cents,
            requested_cents=requested_cents,
        )


class Overpayment(DomainException):
    """Payment larger than the invoice's remaining amount"""

    code = "overpayment"

    def __init__(self, remaining_cents: int, requested_cents: int):
        super().__init__(
            f"Payment of {requested_cents} exceeds remaining amount {remaining_cents}",
            remaining_cents=remaining_cents,
            requested_cents=requested_cents,
        )


class SalesBlocked(DomainException):
    """Customer has an explicit sales block"""

    code = "sales_blocked"

    def __init__(self, reason: str | None):
        super().__init__(f"Sales blocked for this customer: {reason}", reason=reason)


class ConcurrencyConflict(DomainException):
    """Optimistic write lost the race twice; caller should resubmit"""

    code = "concurrency_conflict"


class LedgerInconsistency(DomainException):
    """Internal invariant violation. Never clamped, always halts the operation."""

    code = "ledger_inconsistency"
