"""Credit ledger - customer financial aggregate transitions"""

from dataclasses import replace
from installment_ledger.domain.exceptions import CreditExceeded, LedgerInconsistency, ValidationError
from installment_ledger.domain.models import CustomerFinancials


def _require_non_negative(amount_cents: int) -> None:
    if amount_cents < 0:
        raise ValidationError("Ledger amount cannot be negative", amount_cents=amount_cents)


def available_credit(financials: CustomerFinancials) -> int:
    """Credit limit minus outstanding balance. Negative if the limit was lowered below the balance."""
    return financials.credit_limit_cents - financials.outstanding_cents


def reserve(financials: CustomerFinancials, amount_cents: int) -> CustomerFinancials:
    """
    Reserve credit for a new sale.

    A sale that exactly exhausts the available credit is allowed.

    Raises:
        CreditExceeded: amount is above available credit
    """
    _require_non_negative(amount_cents)
    available = available_credit(financials)
    if amount_cents > available:
        raise CreditExceeded(available_cents=available, requested_cents=amount_cents)

    return replace(
        financials,
        outstanding_cents=financials.outstanding_cents + amount_cents,
        total_purchases_cents=financials.total_purchases_cents + amount_cents,
    )


def release(financials: CustomerFinancials, amount_cents: int) -> CustomerFinancials:
    """
    Release credit after a payment.

    Raises:
        LedgerInconsistency: the release would drive the outstanding balance negative
    """
    _require_non_negative(amount_cents)
    outstanding = financials.outstanding_cents - amount_cents
    if outstanding < 0:
        raise LedgerInconsistency(
            "Release exceeds outstanding balance",
            outstanding_cents=financials.outstanding_cents,
            release_cents=amount_cents,
        )

    return replace(
        financials,
        outstanding_cents=outstanding,
        total_paid_cents=financials.total_paid_cents + amount_cents,
    )


def cancel_reservation(financials: CustomerFinancials, amount_cents: int) -> CustomerFinancials:
    """Undo a reservation for a cancelled sale. Lifetime counters stay untouched."""
    _require_non_negative(amount_cents)
    outstanding = financials.outstanding_cents - amount_cents
    if outstanding < 0:
        raise LedgerInconsistency(
            "Cancellation exceeds outstanding balance",
            outstanding_cents=financials.outstanding_cents,
            release_cents=amount_cents,
        )

    return replace(financials, outstanding_cents=outstanding)
