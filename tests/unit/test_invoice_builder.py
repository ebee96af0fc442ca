"""Unit tests for invoice construction and cancellation rules"""

import re
import uuid
import pytest
from datetime import datetime, timedelta, timezone
from installment_ledger.domain.exceptions import ValidationError
from installment_ledger.domain.invoices import (
    DOWN_PAYMENT_REFERENCE,
    build_invoice,
    cancel_invoice,
    compute_total,
    generate_invoice_number,
)
from installment_ledger.domain.models import (
    Frequency,
    InstallmentPlan,
    InvoiceStatus,
    LineItem,
    PaymentMethod,
)

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
CUSTOMER_ID = uuid.uuid4()


@pytest.fixture
def lines():
    return [
        LineItem(item_id=uuid.uuid4(), name="Laptop", quantity=1, unit_price_cents=90_000),
        LineItem(item_id=uuid.uuid4(), name="Mouse", quantity=4, unit_price_cents=2_500),
    ]


def test_invoice_number_format():
    assert re.fullmatch(r"INV-20240115-[0-9A-F]{6}", generate_invoice_number(NOW))


def test_compute_total(lines):
    assert compute_total(lines) == 100_000


def test_installment_invoice_schedule(lines):
    invoice, outcomes = build_invoice(
        CUSTOMER_ID, lines, PaymentMethod.INSTALLMENT, NOW, plan=InstallmentPlan(count=3)
    )

    assert outcomes == []
    assert invoice.status == InvoiceStatus.PENDING
    assert invoice.remaining_cents == 100_000
    assert invoice.frequency == Frequency.MONTHLY
    assert [i.amount_cents for i in invoice.installments] == [33333, 33333, 33334]
    assert invoice.due_date == invoice.installments[-1].due_date


def test_down_payment_recorded_before_schedule(lines):
    plan = InstallmentPlan(count=4, frequency=Frequency.WEEKLY, down_payment_cents=20_000)
    invoice, outcomes = build_invoice(CUSTOMER_ID, lines, PaymentMethod.INSTALLMENT, NOW, plan=plan)

    assert len(outcomes) == 1
    assert outcomes[0].payment.reference == DOWN_PAYMENT_REFERENCE
    assert invoice.paid_cents == 20_000
    assert invoice.remaining_cents == 80_000
    assert invoice.status == InvoiceStatus.PARTIALLY_PAID
    assert invoice.down_payment_cents == 20_000
    assert sum(i.amount_cents for i in invoice.installments) == invoice.total_cents - 20_000
    assert all(i.paid_cents == 0 for i in invoice.installments)


def test_down_payment_must_leave_a_balance(lines):
    plan = InstallmentPlan(count=2, down_payment_cents=100_000)
    with pytest.raises(ValidationError):
        build_invoice(CUSTOMER_ID, lines, PaymentMethod.INSTALLMENT, NOW, plan=plan)


def test_custom_start_date(lines):
    start = NOW + timedelta(days=10)
    plan = InstallmentPlan(count=2, frequency=Frequency.BIWEEKLY, start_date=start)
    invoice, _ = build_invoice(CUSTOMER_ID, lines, PaymentMethod.INSTALLMENT, NOW, plan=plan)

    assert invoice.installments[0].due_date == start + timedelta(days=15)


def test_cash_invoice_is_born_paid(lines):
    invoice, outcomes = build_invoice(CUSTOMER_ID, lines, PaymentMethod.CASH, NOW)

    assert invoice.status == InvoiceStatus.PAID
    assert invoice.paid_cents == invoice.total_cents
    assert invoice.remaining_cents == 0
    assert invoice.installments == []
    assert [o.payment.amount_cents for o in outcomes] == [100_000]


def test_deferred_invoice_due_date(lines):
    invoice, outcomes = build_invoice(CUSTOMER_ID, lines, PaymentMethod.DEFERRED, NOW, deferred_days=45)

    assert outcomes == []
    assert invoice.due_date == NOW + timedelta(days=45)
    assert invoice.status == InvoiceStatus.PENDING
    assert invoice.installments == []


def test_empty_invoice_rejected():
    with pytest.raises(ValidationError):
        build_invoice(CUSTOMER_ID, [], PaymentMethod.CASH, NOW)


def test_plan_on_cash_invoice_rejected(lines):
    with pytest.raises(ValidationError):
        build_invoice(CUSTOMER_ID, lines, PaymentMethod.CASH, NOW, plan=InstallmentPlan(count=2))


def test_installment_invoice_requires_plan(lines):
    with pytest.raises(ValidationError):
        build_invoice(CUSTOMER_ID, lines, PaymentMethod.INSTALLMENT, NOW)


def test_zero_total_rejected():
    free = [LineItem(item_id=uuid.uuid4(), name="Sticker", quantity=1, unit_price_cents=0)]
    with pytest.raises(ValidationError):
        build_invoice(CUSTOMER_ID, free, PaymentMethod.DEFERRED, NOW)


def test_cancel_unpaid_invoice(lines):
    invoice, _ = build_invoice(CUSTOMER_ID, lines, PaymentMethod.DEFERRED, NOW)

    released = cancel_invoice(invoice, NOW)

    assert released == 100_000
    assert invoice.status == InvoiceStatus.CANCELLED
    assert invoice.cancelled_at == NOW

    with pytest.raises(ValidationError):
        cancel_invoice(invoice, NOW)


def test_cancel_refused_once_paid(lines):
    invoice, _ = build_invoice(CUSTOMER_ID, lines, PaymentMethod.CASH, NOW)
    with pytest.raises(ValidationError):
        cancel_invoice(invoice, NOW)
