"""Due-date sweep: flips past-due balances to overdue"""

from datetime import datetime
from installment_ledger.domain.models import (
    InstallmentStatus,
    Invoice,
    InvoiceStatus,
    PaymentMethod,
)

SWEEPABLE_STATUSES = (InvoiceStatus.PENDING, InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.OVERDUE)


def mark_overdue(invoice: Invoice, now: datetime) -> bool:
    """
    Mark past-due installments and the invoice overdue in place.

    Returns True when the invoice itself became overdue during this call.
    """
    if invoice.status not in SWEEPABLE_STATUSES or invoice.remaining_cents == 0:
        return False

    for inst in invoice.installments:
        if inst.outstanding_cents > 0 and inst.due_date < now:
            inst.status = InstallmentStatus.OVERDUE

    if invoice.payment_method == PaymentMethod.INSTALLMENT:
        past_due = any(i.status == InstallmentStatus.OVERDUE for i in invoice.installments)
    else:
        past_due = invoice.due_date is not None and invoice.due_date < now

    if past_due and invoice.status != InvoiceStatus.OVERDUE:
        invoice.status = InvoiceStatus.OVERDUE
        return True
    return False
