"""Payment application: allocates against the schedule and releases customer credit"""

import uuid
from datetime import datetime
from typing import Callable, Optional
from sqlalchemy.orm import Session

from installment_ledger.domain import ledger, sales_gate
from installment_ledger.domain.exceptions import InvalidAmount, ValidationError
from installment_ledger.domain.models import DomainEvent, InvoiceStatus, OperationResult
from installment_ledger.domain.payments import apply_payment
from installment_ledger.domain.scoring import record_payment_behavior
from installment_ledger.infrastructure.database.repositories import CustomerRepository, InvoiceRepository
from installment_ledger.infrastructure.database.session import run_in_transaction
from installment_ledger.infrastructure.observability.metrics import record_payment
from installment_ledger.utils.date_utils import utcnow

PAID_IN_FULL_REFERENCE = "paid in full"


class PaymentProcessor:
    """Applies payments to invoices under per-invoice and per-customer locks"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock
        self.customers = CustomerRepository(db)
        self.invoices = InvoiceRepository(db)

    def apply_payment(
        self,
        invoice_id: uuid.UUID,
        amount_cents: int,
        method: str = "cash",
        reference: Optional[str] = None,
    ) -> OperationResult:
        """
        Apply a payment to an invoice.

        Raises:
            InvalidAmount: amount is zero or negative
            NotFound: unknown invoice
            Overpayment: amount exceeds the remaining balance
            ConcurrencyConflict: lost the optimistic-lock race twice
        """
        if amount_cents <= 0:
            raise InvalidAmount(amount_cents)
        result = run_in_transaction(self.db, lambda: self._apply(invoice_id, amount_cents, method, reference))
        return self._recorded(result)

    def pay_in_full(self, invoice_id: uuid.UUID, method: str = "cash") -> OperationResult:
        """Settle whatever is left on the invoice, read under the same lock as the write"""
        result = run_in_transaction(self.db, lambda: self._apply(invoice_id, None, method, PAID_IN_FULL_REFERENCE))
        return self._recorded(result)

    @staticmethod
    def _recorded(result: OperationResult) -> OperationResult:
        payment = result.invoice.payments[-1]
        record_payment(payment.method, payment.amount_cents, result.events[0].payload["days_late"])
        return result

    def _apply(
        self,
        invoice_id: uuid.UUID,
        amount_cents: Optional[int],
        method: str,
        reference: Optional[str],
    ) -> OperationResult:
        now = self.clock()
        db_invoice = self.invoices.get_for_update(invoice_id)
        invoice = InvoiceRepository.to_domain(db_invoice)

        if amount_cents is None:
            if invoice.status == InvoiceStatus.PAID or invoice.remaining_cents == 0:
                raise ValidationError("Invoice is already paid", invoice_number=invoice.invoice_number)
            amount_cents = invoice.remaining_cents

        outcome = apply_payment(invoice, amount_cents, method, now, reference)

        db_customer = self.customers.get_for_update(invoice.customer_id)
        financials = ledger.release(CustomerRepository.financials(db_customer), amount_cents)
        CustomerRepository.store_financials(db_customer, financials)
        behavior = record_payment_behavior(CustomerRepository.behavior(db_customer), outcome.days_late)
        CustomerRepository.store_behavior(db_customer, behavior, now)

        self.invoices.store(db_invoice, invoice)
        self.db.flush()

        events = [
            DomainEvent(
                event_type="payment.received",
                customer_id=invoice.customer_id,
                invoice_id=invoice.id,
                occurred_at=now,
                payload={
                    "invoice_number": invoice.invoice_number,
                    "amount_cents": amount_cents,
                    "method": method,
                    "remaining_cents": invoice.remaining_cents,
                    "status": invoice.status.value,
                    "days_late": outcome.days_late,
                },
            )
        ]

        # Re-evaluate the gate; unblocking itself stays an admin action
        gate = CustomerRepository.sales_gate(db_customer)
        if sales_gate.eligible_for_unblock(gate, financials, self.invoices.has_overdue(invoice.customer_id)):
            events.append(
                DomainEvent(
                    event_type="customer.unblock_eligible",
                    customer_id=invoice.customer_id,
                    invoice_id=invoice.id,
                    occurred_at=now,
                    payload={"blocked_reason": gate.reason, "outstanding_cents": financials.outstanding_cents},
                )
            )

        return OperationResult(invoice=invoice, events=events)
