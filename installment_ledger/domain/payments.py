"""Payment allocation against an invoice's installment schedule"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple
from installment_ledger.domain.exceptions import (
    InvalidAmount,
    LedgerInconsistency,
    Overpayment,
    ValidationError,
)
from installment_ledger.domain.models import (
    Installment,
    InstallmentStatus,
    Invoice,
    InvoiceStatus,
    PaymentRecord,
)
from installment_ledger.utils.date_utils import days_late


@dataclass
class PaymentOutcome:
    payment: PaymentRecord
    days_late: int
    allocations: List[Tuple[int, int]]  # (installment number, cents applied)


def allocate(installments: List[Installment], amount_cents: int) -> List[Tuple[int, int]]:
    """
    Plan a FIFO allocation by installment number without mutating anything.

    Raises:
        LedgerInconsistency: amount is larger than what the schedule still owes
    """
    remaining = amount_cents
    allocations = []
    for inst in sorted(installments, key=lambda i: i.number):
        if remaining <= 0:
            break
        if inst.outstanding_cents <= 0:
            continue
        applied = min(remaining, inst.outstanding_cents)
        allocations.append((inst.number, applied))
        remaining -= applied

    if remaining > 0:
        raise LedgerInconsistency(
            "Payment left unallocated after all installments were filled",
            unallocated_cents=remaining,
        )
    return allocations


def installment_status(inst: Installment) -> InstallmentStatus:
    """Paid state wins; otherwise keep pending/overdue, which only due dates decide"""
    if inst.paid_cents >= inst.amount_cents:
        return InstallmentStatus.PAID
    if inst.paid_cents > 0:
        return InstallmentStatus.PARTIALLY_PAID
    return inst.status


def invoice_status(invoice: Invoice) -> InvoiceStatus:
    if invoice.remaining_cents == 0:
        return InvoiceStatus.PAID
    if invoice.paid_cents > 0:
        return InvoiceStatus.PARTIALLY_PAID
    return invoice.status


def reference_due_date(invoice: Invoice) -> Optional[datetime]:
    """Due date a payment is measured against for lateness"""
    open_installments = [i for i in invoice.installments if i.outstanding_cents > 0]
    if open_installments:
        return min(open_installments, key=lambda i: i.number).due_date
    return invoice.due_date


def apply_payment(
    invoice: Invoice,
    amount_cents: int,
    method: str,
    paid_at: datetime,
    reference: Optional[str] = None,
) -> PaymentOutcome:
    """
    Apply a payment to an invoice in place.

    All validation happens before the first mutation, so a rejected payment
    leaves the invoice untouched.

    Raises:
        InvalidAmount: amount is zero or negative
        ValidationError: invoice is cancelled
        Overpayment: amount exceeds the remaining balance
    """
    if amount_cents <= 0:
        raise InvalidAmount(amount_cents)
    if invoice.status == InvoiceStatus.CANCELLED:
        raise ValidationError("Cannot pay a cancelled invoice", invoice_number=invoice.invoice_number)
    if amount_cents > invoice.remaining_cents:
        raise Overpayment(remaining_cents=invoice.remaining_cents, requested_cents=amount_cents)

    due = reference_due_date(invoice)
    lateness = days_late(due, paid_at) if due else 0

    allocations = allocate(invoice.installments, amount_cents) if invoice.installments else []

    by_number = {inst.number: inst for inst in invoice.installments}
    for number, applied in allocations:
        inst = by_number[number]
        inst.paid_cents += applied
        inst.status = installment_status(inst)
        if inst.status == InstallmentStatus.PAID:
            inst.paid_at = paid_at

    payment = PaymentRecord(amount_cents=amount_cents, paid_at=paid_at, method=method, reference=reference)
    invoice.paid_cents += amount_cents
    invoice.remaining_cents -= amount_cents
    invoice.payments.append(payment)
    invoice.status = invoice_status(invoice)

    return PaymentOutcome(payment=payment, days_late=lateness, allocations=allocations)
