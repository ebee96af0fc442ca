"""SQLAlchemy ORM models for customers, invoices and the catalog stock they draw on"""

import uuid
from datetime import timezone
from sqlalchemy import (
    Column,
    String,
    BigInteger,
    Boolean,
    Float,
    DateTime,
    Integer,
    ForeignKey,
    Text,
    Uuid,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.types import TypeDecorator

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamp; re-attaches UTC on backends that drop the offset"""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("Naive datetime cannot be stored; attach a timezone first")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Customer(Base):
    """Customer with credit ledger, sales gate and repayment behavior"""

    __tablename__ = "customer"
    __table_args__ = (
        CheckConstraint("outstanding_cents >= 0", name="outstanding_non_negative"),
        CheckConstraint("credit_limit_cents >= 0", name="credit_limit_non_negative"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    phone = Column(Text, nullable=True)

    # Financials
    credit_limit_cents = Column(BigInteger, nullable=False)
    outstanding_cents = Column(BigInteger, nullable=False, default=0)
    total_purchases_cents = Column(BigInteger, nullable=False, default=0)
    total_paid_cents = Column(BigInteger, nullable=False, default=0)

    # Sales gate
    sales_blocked = Column(Boolean, nullable=False, default=False)
    sales_blocked_reason = Column(Text, nullable=True)
    sales_blocked_at = Column(UTCDateTime, nullable=True)

    # Payment behavior
    total_payments = Column(Integer, nullable=False, default=0)
    on_time_payments = Column(Integer, nullable=False, default=0)
    late_payments = Column(Integer, nullable=False, default=0)
    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    avg_days_late = Column(Float, nullable=False, default=0.0)
    last_payment_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, nullable=False)
    version_id = Column(Integer, nullable=False)

    invoices = relationship("Invoice", back_populates="customer")

    __mapper_args__ = {"version_id_col": version_id}


class CatalogItem(Base):
    """Sellable item stock, maintained by the catalog service"""

    __tablename__ = "catalog_item"
    __table_args__ = (CheckConstraint("available_quantity >= 0", name="stock_non_negative"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sku = Column(String(64), nullable=True, index=True)
    name = Column(Text, nullable=False)
    unit_price_cents = Column(BigInteger, nullable=False)
    available_quantity = Column(Integer, nullable=False, default=0)
    version_id = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}


class Invoice(Base):
    """Sale on cash, deferred or installment terms"""

    __tablename__ = "invoice"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_number = Column(String(32), nullable=False, unique=True)
    customer_id = Column(Uuid, ForeignKey("customer.id"), nullable=False, index=True)
    # Per-customer insertion counter, assigned under the customer row lock
    sequence = Column(Integer, nullable=False)
    total_cents = Column(BigInteger, nullable=False)
    paid_cents = Column(BigInteger, nullable=False, default=0)
    remaining_cents = Column(BigInteger, nullable=False)
    status = Column(Text, nullable=False, default="pending", index=True)
    payment_method = Column(Text, nullable=False)
    frequency = Column(Text, nullable=True)
    down_payment_cents = Column(BigInteger, nullable=False, default=0)
    due_date = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False)
    cancelled_at = Column(UTCDateTime, nullable=True)
    version_id = Column(Integer, nullable=False)

    customer = relationship("Customer", back_populates="invoices")
    items = relationship(
        "InvoiceItem", back_populates="invoice", cascade="all, delete-orphan", order_by="InvoiceItem.position"
    )
    installments = relationship(
        "InvoiceInstallment", back_populates="invoice", cascade="all, delete-orphan", order_by="InvoiceInstallment.number"
    )
    payments = relationship(
        "InvoicePayment", back_populates="invoice", cascade="all, delete-orphan", order_by="InvoicePayment.id"
    )

    __table_args__ = (UniqueConstraint("customer_id", "sequence", name="invoice_customer_sequence"),)
    __mapper_args__ = {"version_id_col": version_id}


class InvoiceItem(Base):
    """Invoice line, priced at sale time"""

    __tablename__ = "invoice_item"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_id = Column(Uuid, ForeignKey("invoice.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    catalog_item_id = Column(Uuid, ForeignKey("catalog_item.id"), nullable=False)
    name = Column(Text, nullable=False)
    sku = Column(String(64), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price_cents = Column(BigInteger, nullable=False)
    total_cents = Column(BigInteger, nullable=False)

    invoice = relationship("Invoice", back_populates="items")


class InvoiceInstallment(Base):
    """Individual installment within an invoice's schedule"""

    __tablename__ = "invoice_installment"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_id = Column(Uuid, ForeignKey("invoice.id", ondelete="CASCADE"), nullable=False)
    number = Column(Integer, nullable=False)
    due_date = Column(UTCDateTime, nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    paid_cents = Column(BigInteger, nullable=False, default=0)
    status = Column(Text, nullable=False, default="pending")
    paid_at = Column(UTCDateTime, nullable=True)

    invoice = relationship("Invoice", back_populates="installments")


class InvoicePayment(Base):
    """Append-only payment log; autoincrement id preserves insertion order"""

    __tablename__ = "invoice_payment"

    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_id = Column(Uuid, ForeignKey("invoice.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    method = Column(Text, nullable=False)
    reference = Column(Text, nullable=True)
    paid_at = Column(UTCDateTime, nullable=False)

    invoice = relationship("Invoice", back_populates="payments")
