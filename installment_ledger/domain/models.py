"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class PaymentMethod(str, Enum):
    CASH = "cash"
    INSTALLMENT = "installment"
    DEFERRED = "deferred"


class Frequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"  # every 15 days
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"


class EntryType(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


@dataclass
class CustomerFinancials:
    """Customer's running credit position, owned by the credit ledger"""

    credit_limit_cents: int
    outstanding_cents: int = 0
    total_purchases_cents: int = 0
    total_paid_cents: int = 0

    @property
    def available_credit_cents(self) -> int:
        return self.credit_limit_cents - self.outstanding_cents


@dataclass
class PaymentBehavior:
    """Repayment track record used by the risk policy"""

    total_payments: int = 0
    on_time_payments: int = 0
    late_payments: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    avg_days_late: float = 0.0


@dataclass
class SalesBlock:
    blocked: bool = False
    reason: Optional[str] = None
    blocked_at: Optional[datetime] = None


@dataclass
class LineItem:
    """Single cart line priced from the catalog"""

    item_id: uuid.UUID
    name: str
    quantity: int
    unit_price_cents: int
    sku: Optional[str] = None

    @property
    def total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass
class InstallmentPlan:
    """Requested installment terms for an invoice"""

    count: int
    frequency: Frequency = Frequency.MONTHLY
    down_payment_cents: int = 0
    start_date: Optional[datetime] = None


@dataclass
class Installment:
    """Single payment in a repayment schedule"""

    number: int
    due_date: datetime
    amount_cents: int
    paid_cents: int = 0
    status: InstallmentStatus = InstallmentStatus.PENDING
    paid_at: Optional[datetime] = None

    @property
    def outstanding_cents(self) -> int:
        return self.amount_cents - self.paid_cents


@dataclass(frozen=True)
class PaymentRecord:
    """Immutable entry in an invoice's payment log"""

    amount_cents: int
    paid_at: datetime
    method: str
    reference: Optional[str] = None


@dataclass
class Invoice:
    customer_id: uuid.UUID
    invoice_number: str
    items: List[LineItem]
    total_cents: int
    payment_method: PaymentMethod
    created_at: datetime
    paid_cents: int = 0
    remaining_cents: int = 0
    status: InvoiceStatus = InvoiceStatus.PENDING
    frequency: Optional[Frequency] = None
    down_payment_cents: int = 0
    due_date: Optional[datetime] = None
    installments: List[Installment] = field(default_factory=list)
    payments: List[PaymentRecord] = field(default_factory=list)
    id: Optional[uuid.UUID] = None
    cancelled_at: Optional[datetime] = None


@dataclass
class DomainEvent:
    """Outcome of a ledger operation, dispatched to notifications after commit"""

    event_type: str
    customer_id: uuid.UUID
    occurred_at: datetime
    invoice_id: Optional[uuid.UUID] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event_type,
            "customer_id": str(self.customer_id),
            "invoice_id": str(self.invoice_id) if self.invoice_id else None,
            "occurred_at": self.occurred_at.isoformat(),
            "payload": self.payload,
        }


@dataclass
class StatementEntry:
    date: datetime
    type: EntryType
    invoice_id: Optional[uuid.UUID]
    invoice_number: str
    description: str
    debit_cents: int
    credit_cents: int
    balance_cents: int = 0


@dataclass
class StatementSummary:
    opening_balance_cents: int
    total_purchases_cents: int
    total_payments_cents: int
    current_balance_cents: int
    entry_count: int


@dataclass
class Statement:
    entries: List[StatementEntry]
    summary: StatementSummary


@dataclass
class RiskAssessment:
    """Output of the customer risk policy"""

    score: int
    risk_level: str
    max_installments: int
    allow_deferred: bool
    allow_installments: bool
    utilization: float


@dataclass
class OperationResult:
    """Invoice state after a ledger operation plus the events it produced"""

    invoice: Invoice
    events: List[DomainEvent] = field(default_factory=list)
