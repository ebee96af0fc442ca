"""Unit tests for payment allocation"""

import copy
import uuid
import pytest
from datetime import datetime, timedelta, timezone
from installment_ledger.domain.exceptions import InvalidAmount, LedgerInconsistency, Overpayment, ValidationError
from installment_ledger.domain.models import (
    Installment,
    InstallmentStatus,
    Invoice,
    InvoiceStatus,
    LineItem,
    PaymentMethod,
)
from installment_ledger.domain.payments import allocate, apply_payment

NOW = datetime(2024, 1, 15, tzinfo=timezone.utc)


def make_invoice(amounts, due_offsets=None, method=PaymentMethod.INSTALLMENT):
    due_offsets = due_offsets or [30 * (i + 1) for i in range(len(amounts))]
    total = sum(amounts)
    return Invoice(
        customer_id=uuid.uuid4(),
        invoice_number="INV-20240115-ABC123",
        items=[LineItem(item_id=uuid.uuid4(), name="Widget", quantity=1, unit_price_cents=total)],
        total_cents=total,
        payment_method=method,
        created_at=NOW,
        remaining_cents=total,
        installments=[
            Installment(number=i + 1, due_date=NOW + timedelta(days=offset), amount_cents=amount)
            for i, (amount, offset) in enumerate(zip(amounts, due_offsets))
        ],
    )


def test_partial_payment_spills_into_next_installment():
    """[100, 100] paid 150 → first paid, second 50/100, invoice partially paid"""
    invoice = make_invoice([100, 100])

    outcome = apply_payment(invoice, 150, "cash", NOW)

    first, second = invoice.installments
    assert (first.paid_cents, first.status) == (100, InstallmentStatus.PAID)
    assert first.paid_at == NOW
    assert (second.paid_cents, second.status) == (50, InstallmentStatus.PARTIALLY_PAID)
    assert second.paid_at is None
    assert invoice.status == InvoiceStatus.PARTIALLY_PAID
    assert invoice.remaining_cents == 50
    assert invoice.paid_cents == 150
    assert outcome.allocations == [(1, 100), (2, 50)]


def test_final_payment_marks_invoice_paid():
    invoice = make_invoice([100, 100])
    apply_payment(invoice, 150, "cash", NOW)
    apply_payment(invoice, 50, "card", NOW + timedelta(days=1))

    assert invoice.status == InvoiceStatus.PAID
    assert invoice.remaining_cents == 0
    assert all(inst.status == InstallmentStatus.PAID for inst in invoice.installments)
    assert [p.amount_cents for p in invoice.payments] == [150, 50]


def test_overpayment_rejected_without_state_change():
    invoice = make_invoice([100, 100])
    apply_payment(invoice, 150, "cash", NOW)
    before = copy.deepcopy(invoice)

    with pytest.raises(Overpayment) as exc_info:
        apply_payment(invoice, 51, "cash", NOW)

    assert exc_info.value.details == {"remaining_cents": 50, "requested_cents": 51}
    assert invoice == before


@pytest.mark.parametrize("amount", [0, -100])
def test_non_positive_amount_rejected(amount):
    invoice = make_invoice([100])
    with pytest.raises(InvalidAmount):
        apply_payment(invoice, amount, "cash", NOW)
    assert invoice.payments == []


def test_cancelled_invoice_cannot_be_paid():
    invoice = make_invoice([100])
    invoice.status = InvoiceStatus.CANCELLED
    with pytest.raises(ValidationError):
        apply_payment(invoice, 50, "cash", NOW)


def test_allocation_follows_number_not_list_order():
    invoice = make_invoice([100, 100, 100])
    invoice.installments.reverse()

    outcome = apply_payment(invoice, 120, "cash", NOW)

    assert outcome.allocations == [(1, 100), (2, 20)]


def test_allocation_skips_settled_installments():
    invoice = make_invoice([100, 100, 100])
    invoice.installments[0].paid_cents = 100
    invoice.installments[0].status = InstallmentStatus.PAID

    assert allocate(invoice.installments, 150) == [(2, 100), (3, 50)]


def test_allocate_refuses_leftover():
    invoice = make_invoice([100])
    with pytest.raises(LedgerInconsistency):
        allocate(invoice.installments, 101)


def test_overdue_installment_becomes_partially_paid():
    invoice = make_invoice([100, 100], due_offsets=[-10, 20])
    invoice.installments[0].status = InstallmentStatus.OVERDUE

    apply_payment(invoice, 40, "cash", NOW)

    assert invoice.installments[0].status == InstallmentStatus.PARTIALLY_PAID


def test_days_late_measured_against_oldest_open_installment():
    invoice = make_invoice([100, 100], due_offsets=[-5, 25])

    outcome = apply_payment(invoice, 100, "cash", NOW)
    assert outcome.days_late == 5

    outcome = apply_payment(invoice, 100, "cash", NOW)
    assert outcome.days_late == 0


def test_deferred_invoice_payment_without_schedule():
    invoice = make_invoice([500], method=PaymentMethod.DEFERRED)
    invoice.due_date = NOW - timedelta(days=3)
    invoice.installments = []

    outcome = apply_payment(invoice, 200, "transfer", NOW, reference="TRX-1")

    assert outcome.allocations == []
    assert outcome.days_late == 3
    assert invoice.remaining_cents == 300
    assert invoice.payments[0].reference == "TRX-1"
