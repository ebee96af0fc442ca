"""Customer statements over committed invoice and payment history (read-only, lock-free)"""

import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session

from installment_ledger.domain import statements
from installment_ledger.domain.exceptions import NotFound, ValidationError
from installment_ledger.domain.models import Statement
from installment_ledger.infrastructure.database.repositories import CustomerRepository, InvoiceRepository


def get_statement(
    db: Session,
    customer_id: uuid.UUID,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Statement:
    """
    Build a customer's statement for an optional date range.

    The opening balance is the net of everything before start, so a
    ranged statement closes on the same balance a full-history one would.
    """
    if start is not None and end is not None and start > end:
        raise ValidationError("Statement start is after end", start=start.isoformat(), end=end.isoformat())
    if CustomerRepository(db).get_customer(customer_id) is None:
        raise NotFound("Customer", customer_id)

    invoices = [InvoiceRepository.to_domain(i) for i in InvoiceRepository(db).list_for_customer(customer_id)]
    opening = statements.net_before(invoices, start) if start is not None else 0
    return statements.generate(invoices, start=start, end=end, opening_balance_cents=opening)
