"""Data access layer for ledger entities"""

import uuid
from datetime import datetime
from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.attributes import flag_modified
from installment_ledger.infrastructure.database.models import (
    CatalogItem,
    Customer,
    Invoice,
    InvoiceInstallment,
    InvoiceItem,
    InvoicePayment,
)
from installment_ledger.domain import models as domain
from installment_ledger.domain.exceptions import NotFound


class CustomerRepository:
    """Repository for customers and their financial aggregate"""

    def __init__(self, db: Session):
        self.db = db

    def create_customer(
        self,
        name: str,
        credit_limit_cents: int,
        created_at: datetime,
        phone: Optional[str] = None,
    ) -> Customer:
        db_customer = Customer(
            name=name,
            phone=phone,
            credit_limit_cents=credit_limit_cents,
            outstanding_cents=0,
            total_purchases_cents=0,
            total_paid_cents=0,
            sales_blocked=False,
            total_payments=0,
            on_time_payments=0,
            late_payments=0,
            current_streak=0,
            longest_streak=0,
            avg_days_late=0.0,
            created_at=created_at,
        )
        self.db.add(db_customer)
        self.db.flush()  # Get ID without committing
        return db_customer

    def get_customer(self, customer_id: uuid.UUID) -> Optional[Customer]:
        return self.db.query(Customer).filter(Customer.id == customer_id).first()

    def get_for_update(self, customer_id: uuid.UUID) -> Customer:
        """Fetch customer row with a write lock; raises NotFound"""
        db_customer = (
            self.db.query(Customer)
            .filter(Customer.id == customer_id)
            .with_for_update()
            .first()
        )
        if db_customer is None:
            raise NotFound("Customer", customer_id)
        return db_customer

    @staticmethod
    def financials(db_customer: Customer) -> domain.CustomerFinancials:
        return domain.CustomerFinancials(
            credit_limit_cents=db_customer.credit_limit_cents,
            outstanding_cents=db_customer.outstanding_cents,
            total_purchases_cents=db_customer.total_purchases_cents,
            total_paid_cents=db_customer.total_paid_cents,
        )

    @staticmethod
    def store_financials(db_customer: Customer, financials: domain.CustomerFinancials) -> None:
        db_customer.outstanding_cents = financials.outstanding_cents
        db_customer.total_purchases_cents = financials.total_purchases_cents
        db_customer.total_paid_cents = financials.total_paid_cents

    @staticmethod
    def sales_gate(db_customer: Customer) -> domain.SalesBlock:
        return domain.SalesBlock(
            blocked=db_customer.sales_blocked,
            reason=db_customer.sales_blocked_reason,
            blocked_at=db_customer.sales_blocked_at,
        )

    @staticmethod
    def store_sales_gate(db_customer: Customer, gate: domain.SalesBlock) -> None:
        db_customer.sales_blocked = gate.blocked
        db_customer.sales_blocked_reason = gate.reason
        db_customer.sales_blocked_at = gate.blocked_at

    @staticmethod
    def behavior(db_customer: Customer) -> domain.PaymentBehavior:
        return domain.PaymentBehavior(
            total_payments=db_customer.total_payments,
            on_time_payments=db_customer.on_time_payments,
            late_payments=db_customer.late_payments,
            current_streak=db_customer.current_streak,
            longest_streak=db_customer.longest_streak,
            avg_days_late=db_customer.avg_days_late,
        )

    @staticmethod
    def store_behavior(db_customer: Customer, behavior: domain.PaymentBehavior, paid_at: datetime) -> None:
        db_customer.total_payments = behavior.total_payments
        db_customer.on_time_payments = behavior.on_time_payments
        db_customer.late_payments = behavior.late_payments
        db_customer.current_streak = behavior.current_streak
        db_customer.longest_streak = behavior.longest_streak
        db_customer.avg_days_late = behavior.avg_days_late
        db_customer.last_payment_at = paid_at


class CatalogRepository:
    """Stock access for the external catalog store"""

    def __init__(self, db: Session):
        self.db = db

    def add_item(self, name: str, unit_price_cents: int, available_quantity: int, sku: Optional[str] = None) -> CatalogItem:
        db_item = CatalogItem(
            name=name,
            sku=sku,
            unit_price_cents=unit_price_cents,
            available_quantity=available_quantity,
        )
        self.db.add(db_item)
        self.db.flush()
        return db_item

    def get_for_update(self, item_id: uuid.UUID) -> Optional[CatalogItem]:
        return (
            self.db.query(CatalogItem)
            .filter(CatalogItem.id == item_id)
            .with_for_update()
            .first()
        )

    @staticmethod
    def decrement_stock(db_item: CatalogItem, quantity: int) -> None:
        db_item.available_quantity -= quantity

    @staticmethod
    def increment_stock(db_item: CatalogItem, quantity: int) -> None:
        db_item.available_quantity += quantity


class InvoiceRepository:
    """Repository for invoices, their schedules and payment logs"""

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Invoice).options(
            selectinload(Invoice.items),
            selectinload(Invoice.installments),
            selectinload(Invoice.payments),
        )

    def get_invoice(self, invoice_id: uuid.UUID) -> Optional[Invoice]:
        return self._query().filter(Invoice.id == invoice_id).first()

    def get_for_update(self, invoice_id: uuid.UUID) -> Invoice:
        """Fetch invoice row with a write lock; raises NotFound"""
        db_invoice = self._query().filter(Invoice.id == invoice_id).with_for_update().first()
        if db_invoice is None:
            raise NotFound("Invoice", invoice_id)
        return db_invoice

    def list_for_customer(self, customer_id: uuid.UUID) -> List[Invoice]:
        """Invoices by creation time, then by insertion sequence"""
        return (
            self._query()
            .filter(Invoice.customer_id == customer_id)
            .order_by(Invoice.created_at.asc(), Invoice.sequence.asc())
            .all()
        )

    def list_by_status(self, statuses: List[str], for_update: bool = False) -> List[Invoice]:
        query = (
            self._query()
            .filter(Invoice.status.in_(statuses))
            .order_by(Invoice.created_at.asc(), Invoice.sequence.asc())
        )
        if for_update:
            query = query.with_for_update()
        return query.all()

    def next_sequence(self, customer_id: uuid.UUID) -> int:
        """Caller must hold the customer row lock"""
        current = (
            self.db.query(func.coalesce(func.max(Invoice.sequence), 0))
            .filter(Invoice.customer_id == customer_id)
            .scalar()
        )
        return current + 1

    def has_overdue(self, customer_id: uuid.UUID) -> bool:
        """Any overdue invoice or overdue installment on a live invoice"""
        overdue_invoice = (
            self.db.query(Invoice.id)
            .filter(Invoice.customer_id == customer_id, Invoice.status == domain.InvoiceStatus.OVERDUE.value)
            .first()
        )
        if overdue_invoice is not None:
            return True
        overdue_installment = (
            self.db.query(InvoiceInstallment.id)
            .join(Invoice, Invoice.id == InvoiceInstallment.invoice_id)
            .filter(
                Invoice.customer_id == customer_id,
                Invoice.status != domain.InvoiceStatus.CANCELLED.value,
                InvoiceInstallment.status == domain.InstallmentStatus.OVERDUE.value,
            )
            .first()
        )
        return overdue_installment is not None

    def create_invoice(self, invoice: domain.Invoice) -> Invoice:
        """Persist a freshly built invoice with its lines, schedule and payments"""
        db_invoice = Invoice(
            invoice_number=invoice.invoice_number,
            customer_id=invoice.customer_id,
            sequence=self.next_sequence(invoice.customer_id),
            total_cents=invoice.total_cents,
            paid_cents=invoice.paid_cents,
            remaining_cents=invoice.remaining_cents,
            status=invoice.status.value,
            payment_method=invoice.payment_method.value,
            frequency=invoice.frequency.value if invoice.frequency else None,
            down_payment_cents=invoice.down_payment_cents,
            due_date=invoice.due_date,
            created_at=invoice.created_at,
        )
        for position, line in enumerate(invoice.items):
            db_invoice.items.append(
                InvoiceItem(
                    position=position,
                    catalog_item_id=line.item_id,
                    name=line.name,
                    sku=line.sku,
                    quantity=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                    total_cents=line.total_cents,
                )
            )
        for inst in invoice.installments:
            db_invoice.installments.append(
                InvoiceInstallment(
                    number=inst.number,
                    due_date=inst.due_date,
                    amount_cents=inst.amount_cents,
                    paid_cents=inst.paid_cents,
                    status=inst.status.value,
                    paid_at=inst.paid_at,
                )
            )
        for payment in invoice.payments:
            db_invoice.payments.append(self._payment_row(payment))

        self.db.add(db_invoice)
        self.db.flush()
        invoice.id = db_invoice.id
        return db_invoice

    def store(self, db_invoice: Invoice, invoice: domain.Invoice) -> None:
        """
        Write back mutable state; payments beyond the persisted log are appended.

        Installment rows carry no version of their own, so any schedule
        change dirties the invoice row and goes through its version check.
        """
        db_invoice.paid_cents = invoice.paid_cents
        db_invoice.remaining_cents = invoice.remaining_cents
        db_invoice.status = invoice.status.value
        db_invoice.cancelled_at = invoice.cancelled_at

        schedule_changed = False
        by_number = {inst.number: inst for inst in invoice.installments}
        for db_inst in db_invoice.installments:
            inst = by_number[db_inst.number]
            if db_inst.paid_cents != inst.paid_cents or db_inst.status != inst.status.value:
                schedule_changed = True
            db_inst.paid_cents = inst.paid_cents
            db_inst.status = inst.status.value
            db_inst.paid_at = inst.paid_at

        if schedule_changed:
            flag_modified(db_invoice, "status")

        for payment in invoice.payments[len(db_invoice.payments):]:
            db_invoice.payments.append(self._payment_row(payment))

    @staticmethod
    def _payment_row(payment: domain.PaymentRecord) -> InvoicePayment:
        return InvoicePayment(
            amount_cents=payment.amount_cents,
            method=payment.method,
            reference=payment.reference,
            paid_at=payment.paid_at,
        )

    @staticmethod
    def to_domain(db_invoice: Invoice) -> domain.Invoice:
        return domain.Invoice(
            id=db_invoice.id,
            customer_id=db_invoice.customer_id,
            invoice_number=db_invoice.invoice_number,
            items=[
                domain.LineItem(
                    item_id=item.catalog_item_id,
                    name=item.name,
                    sku=item.sku,
                    quantity=item.quantity,
                    unit_price_cents=item.unit_price_cents,
                )
                for item in db_invoice.items
            ],
            total_cents=db_invoice.total_cents,
            paid_cents=db_invoice.paid_cents,
            remaining_cents=db_invoice.remaining_cents,
            status=domain.InvoiceStatus(db_invoice.status),
            payment_method=domain.PaymentMethod(db_invoice.payment_method),
            frequency=domain.Frequency(db_invoice.frequency) if db_invoice.frequency else None,
            down_payment_cents=db_invoice.down_payment_cents,
            due_date=db_invoice.due_date,
            created_at=db_invoice.created_at,
            cancelled_at=db_invoice.cancelled_at,
            installments=[
                domain.Installment(
                    number=inst.number,
                    due_date=inst.due_date,
                    amount_cents=inst.amount_cents,
                    paid_cents=inst.paid_cents,
                    status=domain.InstallmentStatus(inst.status),
                    paid_at=inst.paid_at,
                )
                for inst in db_invoice.installments
            ],
            payments=[
                domain.PaymentRecord(
                    amount_cents=p.amount_cents,
                    paid_at=p.paid_at,
                    method=p.method,
                    reference=p.reference,
                )
                for p in db_invoice.payments
            ],
        )
