"""Invoice construction and cancellation rules"""

import secrets
import uuid
from datetime import datetime
from typing import List, Optional, Tuple
from installment_ledger.domain.exceptions import ValidationError
from installment_ledger.domain.installments import schedule
from installment_ledger.domain.models import (
    InstallmentPlan,
    Invoice,
    InvoiceStatus,
    LineItem,
    PaymentMethod,
)
from installment_ledger.domain.payments import PaymentOutcome, apply_payment
from installment_ledger.utils.date_utils import add_days

DOWN_PAYMENT_REFERENCE = "down payment"
CASH_SALE_REFERENCE = "cash sale"


def generate_invoice_number(now: datetime) -> str:
    return f"INV-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


def compute_total(lines: List[LineItem]) -> int:
    return sum(line.total_cents for line in lines)


def validate_plan(plan: InstallmentPlan, total_cents: int) -> None:
    if plan.count <= 0:
        raise ValidationError("Installment count must be positive", count=plan.count)
    if plan.down_payment_cents < 0:
        raise ValidationError("Down payment cannot be negative", down_payment_cents=plan.down_payment_cents)
    if plan.down_payment_cents >= total_cents:
        raise ValidationError(
            "Down payment must be smaller than the invoice total",
            down_payment_cents=plan.down_payment_cents,
            total_cents=total_cents,
        )


def build_invoice(
    customer_id: uuid.UUID,
    lines: List[LineItem],
    payment_method: PaymentMethod,
    now: datetime,
    plan: Optional[InstallmentPlan] = None,
    deferred_days: int = 30,
    invoice_number: Optional[str] = None,
) -> Tuple[Invoice, List[PaymentOutcome]]:
    """
    Build a new invoice and record any payment taken at the counter.

    - installment: down payment (if any) is recorded first, then the
      remainder is scheduled, so installments total total - down payment
    - cash: the full total is recorded as a payment, the invoice is born paid
    - deferred: single due date deferred_days after creation

    Returns the invoice and the payments recorded on it, which the caller
    must release against the credit ledger.
    """
    if not lines:
        raise ValidationError("Invoice requires at least one item")

    payment_method = PaymentMethod(payment_method)
    if plan is not None and payment_method != PaymentMethod.INSTALLMENT:
        raise ValidationError(
            "Installment plan is only valid for installment invoices",
            payment_method=payment_method.value,
        )

    total = compute_total(lines)
    if total <= 0:
        raise ValidationError("Invoice total must be positive", total_cents=total)

    invoice = Invoice(
        customer_id=customer_id,
        invoice_number=invoice_number or generate_invoice_number(now),
        items=list(lines),
        total_cents=total,
        payment_method=payment_method,
        created_at=now,
        remaining_cents=total,
        status=InvoiceStatus.PENDING,
    )
    outcomes: List[PaymentOutcome] = []

    if payment_method == PaymentMethod.INSTALLMENT:
        if plan is None:
            raise ValidationError("Installment invoices require an installment plan")
        validate_plan(plan, total)

        if plan.down_payment_cents > 0:
            outcomes.append(
                apply_payment(invoice, plan.down_payment_cents, "cash", now, reference=DOWN_PAYMENT_REFERENCE)
            )

        invoice.frequency = plan.frequency
        invoice.down_payment_cents = plan.down_payment_cents
        invoice.installments = schedule(
            total - plan.down_payment_cents,
            plan.count,
            plan.frequency,
            plan.start_date or now,
        )
        invoice.due_date = invoice.installments[-1].due_date

    elif payment_method == PaymentMethod.CASH:
        outcomes.append(apply_payment(invoice, total, "cash", now, reference=CASH_SALE_REFERENCE))

    else:
        invoice.due_date = add_days(now, deferred_days)

    return invoice, outcomes


def cancel_invoice(invoice: Invoice, now: datetime) -> int:
    """
    Cancel an unpaid invoice in place.

    Returns the amount to release from the customer's reservation.
    """
    if invoice.status == InvoiceStatus.CANCELLED:
        raise ValidationError("Invoice is already cancelled", invoice_number=invoice.invoice_number)
    if invoice.paid_cents > 0:
        raise ValidationError(
            "Only invoices without payments can be cancelled",
            invoice_number=invoice.invoice_number,
            paid_cents=invoice.paid_cents,
        )

    invoice.status = InvoiceStatus.CANCELLED
    invoice.cancelled_at = now
    return invoice.remaining_cents
