"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from installment_ledger.domain.models import (
    EntryType,
    Frequency,
    InstallmentStatus,
    InvoiceStatus,
    PaymentMethod,
)


class CustomerCreateRequest(BaseModel):
    """Request body for POST /v1/customers"""

    name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    credit_limit_cents: Optional[int] = Field(None, ge=0, description="Defaults to the configured credit limit")


class CustomerResponse(BaseModel):
    customer_id: UUID
    name: str
    phone: Optional[str] = None
    credit_limit_cents: int
    outstanding_cents: int
    available_credit_cents: int
    total_purchases_cents: int
    total_paid_cents: int
    sales_blocked: bool
    sales_blocked_reason: Optional[str] = None


class SalesBlockRequest(BaseModel):
    """Request body for PUT /v1/customers/{customer_id}/sales-block"""

    blocked: bool
    reason: Optional[str] = None


class SalesBlockResponse(BaseModel):
    customer_id: UUID
    blocked: bool
    reason: Optional[str] = None


class RiskAssessmentResponse(BaseModel):
    customer_id: UUID
    score: int
    risk_level: str
    max_installments: int
    allow_deferred: bool
    allow_installments: bool
    utilization: float
    sales_blocked: bool


class CartItem(BaseModel):
    item_id: UUID
    quantity: int = Field(..., gt=0)


class InstallmentPlanRequest(BaseModel):
    count: int = Field(..., gt=0, le=60)
    frequency: Frequency = Frequency.MONTHLY
    down_payment_cents: int = Field(0, ge=0)
    start_date: Optional[datetime] = None


class InvoiceCreateRequest(BaseModel):
    """Request body for POST /v1/invoices"""

    customer_id: UUID
    items: List[CartItem] = Field(..., min_length=1)
    payment_method: PaymentMethod
    installment_plan: Optional[InstallmentPlanRequest] = None


class PaymentRequest(BaseModel):
    """Request body for POST /v1/invoices/{invoice_id}/payments"""

    amount_cents: int = Field(..., description="Payment amount in cents; must be positive")
    method: str = Field("cash", min_length=1)
    reference: Optional[str] = None


class PayInFullRequest(BaseModel):
    method: str = Field("cash", min_length=1)


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class LineItemSchema(BaseModel):
    item_id: UUID
    name: str
    sku: Optional[str] = None
    quantity: int
    unit_price_cents: int
    total_cents: int


class InstallmentSchema(BaseModel):
    """Single installment in an invoice schedule"""

    number: int
    due_date: datetime
    amount_cents: int
    paid_cents: int
    status: InstallmentStatus


class PaymentSchema(BaseModel):
    amount_cents: int
    paid_at: datetime
    method: str
    reference: Optional[str] = None


class InvoiceResponse(BaseModel):
    invoice_id: UUID
    invoice_number: str
    customer_id: UUID
    items: List[LineItemSchema]
    total_cents: int
    paid_cents: int
    remaining_cents: int
    status: InvoiceStatus
    payment_method: PaymentMethod
    frequency: Optional[Frequency] = None
    down_payment_cents: int
    due_date: Optional[datetime] = None
    created_at: datetime
    installments: List[InstallmentSchema]
    payments: List[PaymentSchema]


class OverdueSweepResponse(BaseModel):
    newly_overdue: int
    invoice_ids: List[UUID]


class StatementEntrySchema(BaseModel):
    date: datetime
    type: EntryType
    invoice_id: Optional[UUID] = None
    invoice_number: str
    description: str
    debit_cents: int
    credit_cents: int
    balance_cents: int


class StatementSummarySchema(BaseModel):
    opening_balance_cents: int
    total_purchases_cents: int
    total_payments_cents: int
    current_balance_cents: int
    entry_count: int


class StatementResponse(BaseModel):
    """Response for GET /v1/customers/{customer_id}/statement"""

    customer_id: UUID
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    entries: List[StatementEntrySchema]
    summary: StatementSummarySchema
