"""Invoice creation and cancellation: one all-or-nothing transaction per sale"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
from sqlalchemy.orm import Session

from installment_ledger.config import settings
from installment_ledger.domain import ledger, sales_gate
from installment_ledger.domain.exceptions import DomainException, InsufficientStock, ValidationError
from installment_ledger.domain.invoices import build_invoice, cancel_invoice, compute_total
from installment_ledger.domain.models import (
    DomainEvent,
    Frequency,
    InstallmentPlan,
    LineItem,
    OperationResult,
    PaymentMethod,
)
from installment_ledger.infrastructure.database.repositories import (
    CatalogRepository,
    CustomerRepository,
    InvoiceRepository,
)
from installment_ledger.infrastructure.database.session import run_in_transaction
from installment_ledger.infrastructure.observability.metrics import record_invoice, record_rejection
from installment_ledger.utils.date_utils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class CartLine:
    item_id: uuid.UUID
    quantity: int


def validate_cart(lines: List[CartLine]) -> None:
    if not lines:
        raise ValidationError("Invoice requires at least one item")
    seen = set()
    for line in lines:
        if line.quantity <= 0:
            raise ValidationError("Quantity must be positive", item_id=str(line.item_id), quantity=line.quantity)
        if line.item_id in seen:
            raise ValidationError("Item listed more than once", item_id=str(line.item_id))
        seen.add(line.item_id)


class InvoiceFactory:
    """Turns a cart into a persisted invoice, reserving credit and stock together"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock
        self.customers = CustomerRepository(db)
        self.catalog = CatalogRepository(db)
        self.invoices = InvoiceRepository(db)

    def create_invoice(
        self,
        customer_id: uuid.UUID,
        lines: List[CartLine],
        payment_method: PaymentMethod,
        plan: Optional[InstallmentPlan] = None,
    ) -> OperationResult:
        """
        Create an invoice for a cart.

        Flow:
        1. Sales gate check (before any mutation)
        2. Stock check, first violating item wins
        3. Credit reservation for the full total
        4. Down payment / cash payment recorded, schedule built
        5. Stock decremented, invoice persisted

        Steps run in one transaction, so a failure anywhere rolls back the
        credit reservation and stock decrements together.
        """
        validate_cart(lines)
        try:
            result = run_in_transaction(
                self.db, lambda: self._create(customer_id, lines, PaymentMethod(payment_method), plan)
            )
        except DomainException as e:
            record_rejection(e.code)
            raise

        record_invoice(result.invoice.payment_method.value, result.invoice.total_cents)
        return result

    def _create(
        self,
        customer_id: uuid.UUID,
        lines: List[CartLine],
        payment_method: PaymentMethod,
        plan: Optional[InstallmentPlan],
    ) -> OperationResult:
        now = self.clock()
        db_customer = self.customers.get_for_update(customer_id)
        sales_gate.ensure_sales_allowed(CustomerRepository.sales_gate(db_customer))

        priced = []
        stock_rows = []
        for line in lines:
            db_item = self.catalog.get_for_update(line.item_id)
            if db_item is None:
                raise ValidationError("Unknown catalog item", item_id=str(line.item_id))
            if db_item.available_quantity < line.quantity:
                raise InsufficientStock(line.item_id, line.quantity, db_item.available_quantity)
            priced.append(
                LineItem(
                    item_id=db_item.id,
                    name=db_item.name,
                    sku=db_item.sku,
                    quantity=line.quantity,
                    unit_price_cents=db_item.unit_price_cents,
                )
            )
            stock_rows.append((db_item, line.quantity))

        financials = ledger.reserve(CustomerRepository.financials(db_customer), compute_total(priced))

        if payment_method == PaymentMethod.INSTALLMENT and plan is None:
            plan = InstallmentPlan(
                count=settings.default_installment_count,
                frequency=Frequency(settings.default_installment_frequency),
            )
        invoice, outcomes = build_invoice(
            customer_id=customer_id,
            lines=priced,
            payment_method=payment_method,
            now=now,
            plan=plan,
            deferred_days=settings.deferred_payment_days,
        )
        for outcome in outcomes:
            financials = ledger.release(financials, outcome.payment.amount_cents)
        CustomerRepository.store_financials(db_customer, financials)

        for db_item, quantity in stock_rows:
            CatalogRepository.decrement_stock(db_item, quantity)

        self.invoices.create_invoice(invoice)

        events = [
            DomainEvent(
                event_type="invoice.created",
                customer_id=customer_id,
                invoice_id=invoice.id,
                occurred_at=now,
                payload={
                    "invoice_number": invoice.invoice_number,
                    "payment_method": invoice.payment_method.value,
                    "total_cents": invoice.total_cents,
                    "installments": len(invoice.installments),
                },
            )
        ]
        for outcome in outcomes:
            events.append(
                DomainEvent(
                    event_type="payment.received",
                    customer_id=customer_id,
                    invoice_id=invoice.id,
                    occurred_at=now,
                    payload={
                        "amount_cents": outcome.payment.amount_cents,
                        "remaining_cents": invoice.remaining_cents,
                        "reference": outcome.payment.reference,
                    },
                )
            )
        return OperationResult(invoice=invoice, events=events)

    def cancel_invoice(self, invoice_id: uuid.UUID, reason: Optional[str] = None) -> OperationResult:
        """Void an unpaid invoice: restock every line and undo the credit reservation"""
        return run_in_transaction(self.db, lambda: self._cancel(invoice_id, reason))

    def _cancel(self, invoice_id: uuid.UUID, reason: Optional[str]) -> OperationResult:
        now = self.clock()
        db_invoice = self.invoices.get_for_update(invoice_id)
        invoice = InvoiceRepository.to_domain(db_invoice)
        released = cancel_invoice(invoice, now)

        db_customer = self.customers.get_for_update(invoice.customer_id)
        financials = ledger.cancel_reservation(CustomerRepository.financials(db_customer), released)
        CustomerRepository.store_financials(db_customer, financials)

        for line in invoice.items:
            db_item = self.catalog.get_for_update(line.item_id)
            if db_item is not None:
                CatalogRepository.increment_stock(db_item, line.quantity)

        self.invoices.store(db_invoice, invoice)
        logger.info("Invoice cancelled", extra={"invoice_id": str(invoice_id), "released_cents": released})

        event = DomainEvent(
            event_type="invoice.cancelled",
            customer_id=invoice.customer_id,
            invoice_id=invoice.id,
            occurred_at=now,
            payload={"invoice_number": invoice.invoice_number, "reason": reason, "released_cents": released},
        )
        return OperationResult(invoice=invoice, events=[event])
