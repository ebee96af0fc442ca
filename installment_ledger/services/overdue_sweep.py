"""Due-date sweep, triggered by an external scheduler"""

import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from installment_ledger.domain.models import DomainEvent
from installment_ledger.domain.overdue import SWEEPABLE_STATUSES, mark_overdue
from installment_ledger.infrastructure.database.repositories import InvoiceRepository
from installment_ledger.infrastructure.database.session import run_in_transaction
from installment_ledger.utils.date_utils import utcnow

logger = logging.getLogger(__name__)


def sweep_overdue(db: Session, now: Optional[datetime] = None) -> List[DomainEvent]:
    """Flip past-due invoices and installments to overdue; one event per newly overdue invoice"""
    now = now or utcnow()
    repo = InvoiceRepository(db)

    def unit_of_work() -> List[DomainEvent]:
        events = []
        for db_invoice in repo.list_by_status([s.value for s in SWEEPABLE_STATUSES], for_update=True):
            invoice = InvoiceRepository.to_domain(db_invoice)
            newly_overdue = mark_overdue(invoice, now)
            repo.store(db_invoice, invoice)
            if newly_overdue:
                events.append(
                    DomainEvent(
                        event_type="invoice.overdue",
                        customer_id=invoice.customer_id,
                        invoice_id=invoice.id,
                        occurred_at=now,
                        payload={
                            "invoice_number": invoice.invoice_number,
                            "remaining_cents": invoice.remaining_cents,
                        },
                    )
                )
        return events

    events = run_in_transaction(db, unit_of_work)
    logger.info("Overdue sweep completed", extra={"newly_overdue": len(events)})
    return events
