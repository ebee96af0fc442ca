"""Customer endpoints - accounts, sales gate, statements, risk assessment"""

import uuid
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, BackgroundTasks, Query, Request
from sqlalchemy.orm import Session

from installment_ledger.api.dependencies import get_notification_client, get_request_id
from installment_ledger.api.errors import to_http_exception
from installment_ledger.api.v1.schemas import (
    CustomerCreateRequest,
    CustomerResponse,
    RiskAssessmentResponse,
    SalesBlockRequest,
    SalesBlockResponse,
    StatementEntrySchema,
    StatementResponse,
    StatementSummarySchema,
)
from installment_ledger.domain.exceptions import DomainException
from installment_ledger.infrastructure.clients.notifications import NotificationClient
from installment_ledger.infrastructure.database.models import Customer
from installment_ledger.infrastructure.database.repositories import CustomerRepository
from installment_ledger.infrastructure.database.session import get_db
from installment_ledger.services.customers import CustomerService
from installment_ledger.services.statements import get_statement
from installment_ledger.utils.date_utils import ensure_aware

router = APIRouter()


def parse_customer_id(customer_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(customer_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid customer ID format")


def customer_response(db_customer: Customer) -> CustomerResponse:
    financials = CustomerRepository.financials(db_customer)
    return CustomerResponse(
        customer_id=db_customer.id,
        name=db_customer.name,
        phone=db_customer.phone,
        credit_limit_cents=financials.credit_limit_cents,
        outstanding_cents=financials.outstanding_cents,
        available_credit_cents=financials.available_credit_cents,
        total_purchases_cents=financials.total_purchases_cents,
        total_paid_cents=financials.total_paid_cents,
        sales_blocked=db_customer.sales_blocked,
        sales_blocked_reason=db_customer.sales_blocked_reason,
    )


@router.post("/customers", response_model=CustomerResponse, status_code=201)
def create_customer(request_body: CustomerCreateRequest, request: Request, db: Session = Depends(get_db)):
    request_id = get_request_id(request)
    try:
        db_customer = CustomerService(db).create_customer(
            request_body.name,
            credit_limit_cents=request_body.credit_limit_cents,
            phone=request_body.phone,
        )
    except DomainException as e:
        raise to_http_exception(e, request_id)

    logging.info(
        "Customer created",
        extra={"request_id": request_id, "customer_id": str(db_customer.id), "credit_limit_cents": db_customer.credit_limit_cents},
    )
    return customer_response(db_customer)


@router.get("/customers/{customer_id}", response_model=CustomerResponse)
def get_customer(customer_id: str, request: Request, db: Session = Depends(get_db)):
    """Retrieve a customer's credit position and sales gate"""
    try:
        db_customer = CustomerService(db).get_customer(parse_customer_id(customer_id))
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))
    return customer_response(db_customer)


@router.put("/customers/{customer_id}/sales-block", response_model=SalesBlockResponse)
def set_sales_block(
    customer_id: str,
    request_body: SalesBlockRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """Block or unblock new sales for a customer"""
    request_id = get_request_id(request)
    customer_uuid = parse_customer_id(customer_id)
    service = CustomerService(db)

    try:
        events = service.set_sales_block(customer_uuid, request_body.blocked, request_body.reason)
        db_customer = service.get_customer(customer_uuid)
    except DomainException as e:
        raise to_http_exception(e, request_id)

    background_tasks.add_task(notifier.emit, [event.to_dict() for event in events])
    return SalesBlockResponse(
        customer_id=customer_uuid,
        blocked=db_customer.sales_blocked,
        reason=db_customer.sales_blocked_reason,
    )


@router.get("/customers/{customer_id}/statement", response_model=StatementResponse)
def get_customer_statement(
    customer_id: str,
    request: Request,
    start: Optional[datetime] = Query(None, description="Inclusive range start (ISO 8601)"),
    end: Optional[datetime] = Query(None, description="Inclusive range end (ISO 8601)"),
    db: Session = Depends(get_db),
):
    """
    Chronological statement with running balance.

    Debits are purchases, credits are payments. Entries on the same
    timestamp list the purchase before its payments.
    """
    customer_uuid = parse_customer_id(customer_id)
    start = ensure_aware(start) if start else None
    end = ensure_aware(end) if end else None

    try:
        statement = get_statement(db, customer_uuid, start=start, end=end)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))

    return StatementResponse(
        customer_id=customer_uuid,
        start=start,
        end=end,
        entries=[
            StatementEntrySchema(
                date=entry.date,
                type=entry.type,
                invoice_id=entry.invoice_id,
                invoice_number=entry.invoice_number,
                description=entry.description,
                debit_cents=entry.debit_cents,
                credit_cents=entry.credit_cents,
                balance_cents=entry.balance_cents,
            )
            for entry in statement.entries
        ],
        summary=StatementSummarySchema(
            opening_balance_cents=statement.summary.opening_balance_cents,
            total_purchases_cents=statement.summary.total_purchases_cents,
            total_payments_cents=statement.summary.total_payments_cents,
            current_balance_cents=statement.summary.current_balance_cents,
            entry_count=statement.summary.entry_count,
        ),
    )


@router.post("/customers/{customer_id}/risk-assessment", response_model=RiskAssessmentResponse)
def assess_customer_risk(
    customer_id: str,
    background_tasks: BackgroundTasks,
    request: Request,
    enforce: bool = Query(False, description="Place a sales block when the risk level is 'blocked'"),
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    request_id = get_request_id(request)
    customer_uuid = parse_customer_id(customer_id)
    service = CustomerService(db)

    try:
        assessment, events = service.assess_risk(customer_uuid, enforce=enforce)
        db_customer = service.get_customer(customer_uuid)
    except DomainException as e:
        raise to_http_exception(e, request_id)

    if events:
        background_tasks.add_task(notifier.emit, [event.to_dict() for event in events])

    logging.info(
        "Risk assessed",
        extra={"request_id": request_id, "customer_id": customer_id, "score": assessment.score, "risk_level": assessment.risk_level},
    )
    return RiskAssessmentResponse(
        customer_id=customer_uuid,
        score=assessment.score,
        risk_level=assessment.risk_level,
        max_installments=assessment.max_installments,
        allow_deferred=assessment.allow_deferred,
        allow_installments=assessment.allow_installments,
        utilization=assessment.utilization,
        sales_blocked=db_customer.sales_blocked,
    )
