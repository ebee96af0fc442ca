"""Unit tests for credit ledger transitions"""

import pytest
from installment_ledger.domain import ledger
from installment_ledger.domain.exceptions import CreditExceeded, LedgerInconsistency, ValidationError
from installment_ledger.domain.models import CustomerFinancials


def test_available_credit():
    financials = CustomerFinancials(credit_limit_cents=5000, outstanding_cents=1200)
    assert ledger.available_credit(financials) == 3800


def test_available_credit_negative_after_limit_lowered():
    financials = CustomerFinancials(credit_limit_cents=1000, outstanding_cents=1500)
    assert ledger.available_credit(financials) == -500


def test_reserve_boundary_then_exceeded():
    """Limit 5000, outstanding 4800: 200 fits exactly, the next cent does not"""
    financials = CustomerFinancials(credit_limit_cents=5000, outstanding_cents=4800)

    financials = ledger.reserve(financials, 200)
    assert financials.outstanding_cents == 5000
    assert financials.total_purchases_cents == 200
    assert ledger.available_credit(financials) == 0

    with pytest.raises(CreditExceeded) as exc_info:
        ledger.reserve(financials, 1)
    assert exc_info.value.details == {"available_credit_cents": 0, "requested_cents": 1}


def test_reserve_does_not_mutate_input():
    financials = CustomerFinancials(credit_limit_cents=5000)
    ledger.reserve(financials, 1000)
    assert financials.outstanding_cents == 0


def test_release_updates_outstanding_and_paid():
    financials = CustomerFinancials(credit_limit_cents=5000, outstanding_cents=3000, total_purchases_cents=3000)
    released = ledger.release(financials, 1000)

    assert released.outstanding_cents == 2000
    assert released.total_paid_cents == 1000
    assert released.total_purchases_cents == 3000


def test_release_never_clamps():
    financials = CustomerFinancials(credit_limit_cents=5000, outstanding_cents=100)
    with pytest.raises(LedgerInconsistency):
        ledger.release(financials, 101)


def test_cancel_reservation_keeps_lifetime_counters():
    financials = CustomerFinancials(credit_limit_cents=5000, outstanding_cents=3000, total_purchases_cents=3000)
    cancelled = ledger.cancel_reservation(financials, 3000)

    assert cancelled.outstanding_cents == 0
    assert cancelled.total_purchases_cents == 3000
    assert cancelled.total_paid_cents == 0


@pytest.mark.parametrize("operation", [ledger.reserve, ledger.release, ledger.cancel_reservation])
def test_negative_amounts_rejected(operation):
    financials = CustomerFinancials(credit_limit_cents=5000, outstanding_cents=1000)
    with pytest.raises(ValidationError):
        operation(financials, -1)
