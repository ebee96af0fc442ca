"""Invoice endpoints - creation, payments, cancellation and overdue sweep"""

import time
import uuid
import logging
from fastapi import APIRouter, Depends, HTTPException, BackgroundTasks, Request
from sqlalchemy.orm import Session

from installment_ledger.api.dependencies import get_notification_client, get_request_id
from installment_ledger.api.errors import to_http_exception
from installment_ledger.api.v1.schemas import (
    CancelRequest,
    InstallmentSchema,
    InvoiceCreateRequest,
    InvoiceResponse,
    LineItemSchema,
    OverdueSweepResponse,
    PayInFullRequest,
    PaymentRequest,
    PaymentSchema,
)
from installment_ledger.domain.exceptions import DomainException
from installment_ledger.domain.models import InstallmentPlan, Invoice, OperationResult
from installment_ledger.infrastructure.clients.notifications import NotificationClient
from installment_ledger.infrastructure.database.repositories import InvoiceRepository
from installment_ledger.infrastructure.database.session import get_db
from installment_ledger.infrastructure.observability.logging import log_invoice_created, log_payment_applied
from installment_ledger.services.invoice_factory import CartLine, InvoiceFactory
from installment_ledger.services.overdue_sweep import sweep_overdue
from installment_ledger.services.payment_processor import PaymentProcessor
from installment_ledger.utils.date_utils import ensure_aware

router = APIRouter()


def parse_invoice_id(invoice_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(invoice_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid invoice ID format")


def invoice_response(invoice: Invoice) -> InvoiceResponse:
    return InvoiceResponse(
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
        customer_id=invoice.customer_id,
        items=[
            LineItemSchema(
                item_id=line.item_id,
                name=line.name,
                sku=line.sku,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                total_cents=line.total_cents,
            )
            for line in invoice.items
        ],
        total_cents=invoice.total_cents,
        paid_cents=invoice.paid_cents,
        remaining_cents=invoice.remaining_cents,
        status=invoice.status,
        payment_method=invoice.payment_method,
        frequency=invoice.frequency,
        down_payment_cents=invoice.down_payment_cents,
        due_date=invoice.due_date,
        created_at=invoice.created_at,
        installments=[
            InstallmentSchema(
                number=inst.number,
                due_date=inst.due_date,
                amount_cents=inst.amount_cents,
                paid_cents=inst.paid_cents,
                status=inst.status,
            )
            for inst in invoice.installments
        ],
        payments=[
            PaymentSchema(amount_cents=p.amount_cents, paid_at=p.paid_at, method=p.method, reference=p.reference)
            for p in invoice.payments
        ],
    )


def _dispatch(background_tasks: BackgroundTasks, notifier: NotificationClient, result: OperationResult) -> None:
    """Hand events to the dispatcher after commit; delivery never affects the response"""
    if result.events:
        background_tasks.add_task(notifier.emit, [event.to_dict() for event in result.events])


@router.post("/invoices", response_model=InvoiceResponse, status_code=201)
def create_invoice(
    request_body: InvoiceCreateRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """
    Create an invoice from a cart.

    Flow:
    1. Sales gate check
    2. Stock validation
    3. Credit reservation
    4. Installment schedule (installment terms only)
    5. Stock decrement + persist, all in one transaction
    6. Notify dispatcher in the background
    """
    start_time = time.time()
    request_id = get_request_id(request)

    plan = None
    if request_body.installment_plan is not None:
        p = request_body.installment_plan
        plan = InstallmentPlan(
            count=p.count,
            frequency=p.frequency,
            down_payment_cents=p.down_payment_cents,
            start_date=ensure_aware(p.start_date) if p.start_date else None,
        )

    try:
        result = InvoiceFactory(db).create_invoice(
            customer_id=request_body.customer_id,
            lines=[CartLine(item_id=item.item_id, quantity=item.quantity) for item in request_body.items],
            payment_method=request_body.payment_method,
            plan=plan,
        )
    except DomainException as e:
        raise to_http_exception(e, request_id)
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    _dispatch(background_tasks, notifier, result)

    duration_ms = (time.time() - start_time) * 1000
    log_invoice_created(
        request_id,
        str(result.invoice.customer_id),
        str(result.invoice.id),
        result.invoice.payment_method.value,
        result.invoice.total_cents,
        duration_ms,
    )
    return invoice_response(result.invoice)


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: str, db: Session = Depends(get_db)):
    """Retrieve an invoice with its installment schedule and payment log"""
    db_invoice = InvoiceRepository(db).get_invoice(parse_invoice_id(invoice_id))
    if not db_invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice_response(InvoiceRepository.to_domain(db_invoice))


@router.post("/invoices/{invoice_id}/payments", response_model=InvoiceResponse)
def apply_payment(
    invoice_id: str,
    request_body: PaymentRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """Apply a payment to the oldest open installments first"""
    request_id = get_request_id(request)
    invoice_uuid = parse_invoice_id(invoice_id)

    try:
        result = PaymentProcessor(db).apply_payment(
            invoice_uuid,
            request_body.amount_cents,
            method=request_body.method,
            reference=request_body.reference,
        )
    except DomainException as e:
        raise to_http_exception(e, request_id)
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    _dispatch(background_tasks, notifier, result)
    log_payment_applied(
        request_id, invoice_id, request_body.amount_cents, result.invoice.remaining_cents, result.invoice.status.value
    )
    return invoice_response(result.invoice)


@router.post("/invoices/{invoice_id}/pay-in-full", response_model=InvoiceResponse)
def pay_in_full(
    invoice_id: str,
    request_body: PayInFullRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """Settle the full remaining balance"""
    request_id = get_request_id(request)
    invoice_uuid = parse_invoice_id(invoice_id)

    try:
        result = PaymentProcessor(db).pay_in_full(invoice_uuid, method=request_body.method)
    except DomainException as e:
        raise to_http_exception(e, request_id)
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    _dispatch(background_tasks, notifier, result)
    log_payment_applied(
        request_id,
        invoice_id,
        result.invoice.payments[-1].amount_cents,
        result.invoice.remaining_cents,
        result.invoice.status.value,
    )
    return invoice_response(result.invoice)


@router.post("/invoices/{invoice_id}/cancel", response_model=InvoiceResponse)
def cancel_invoice(
    invoice_id: str,
    request_body: CancelRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """Cancel an invoice that has no payments; restores stock and credit"""
    request_id = get_request_id(request)
    invoice_uuid = parse_invoice_id(invoice_id)

    try:
        result = InvoiceFactory(db).cancel_invoice(invoice_uuid, reason=request_body.reason)
    except DomainException as e:
        raise to_http_exception(e, request_id)

    _dispatch(background_tasks, notifier, result)
    return invoice_response(result.invoice)


@router.post("/invoices/overdue-sweep", response_model=OverdueSweepResponse)
def run_overdue_sweep(
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """Entry point for the external due-date scheduler"""
    request_id = get_request_id(request)
    try:
        events = sweep_overdue(db)
    except DomainException as e:
        raise to_http_exception(e, request_id)

    if events:
        background_tasks.add_task(notifier.emit, [event.to_dict() for event in events])
    return OverdueSweepResponse(newly_overdue=len(events), invoice_ids=[e.invoice_id for e in events])
