"""Customer accounts: creation, sales gate and risk-policy enforcement"""

import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional, Tuple
from sqlalchemy.orm import Session

from installment_ledger.config import settings
from installment_ledger.domain import sales_gate
from installment_ledger.domain.exceptions import NotFound, ValidationError
from installment_ledger.domain.models import DomainEvent, RiskAssessment
from installment_ledger.domain.scoring import assess_risk
from installment_ledger.infrastructure.database.models import Customer
from installment_ledger.infrastructure.database.repositories import CustomerRepository
from installment_ledger.infrastructure.database.session import run_in_transaction
from installment_ledger.utils.date_utils import utcnow

logger = logging.getLogger(__name__)


class CustomerService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock
        self.customers = CustomerRepository(db)

    def create_customer(self, name: str, credit_limit_cents: Optional[int] = None, phone: Optional[str] = None) -> Customer:
        limit = settings.default_credit_limit_cents if credit_limit_cents is None else credit_limit_cents
        if limit < 0:
            raise ValidationError("Credit limit cannot be negative", credit_limit_cents=limit)

        db_customer = run_in_transaction(
            self.db, lambda: self.customers.create_customer(name, limit, self.clock(), phone=phone)
        )
        self.db.refresh(db_customer)
        return db_customer

    def get_customer(self, customer_id: uuid.UUID) -> Customer:
        db_customer = self.customers.get_customer(customer_id)
        if db_customer is None:
            raise NotFound("Customer", customer_id)
        return db_customer

    def set_sales_block(self, customer_id: uuid.UUID, blocked: bool, reason: Optional[str] = None) -> List[DomainEvent]:
        """Explicit block/unblock; the invoice factory honors the flag before any ledger mutation"""
        return run_in_transaction(self.db, lambda: self._set_sales_block(customer_id, blocked, reason))

    def _set_sales_block(self, customer_id: uuid.UUID, blocked: bool, reason: Optional[str]) -> List[DomainEvent]:
        now = self.clock()
        db_customer = self.customers.get_for_update(customer_id)
        gate = CustomerRepository.sales_gate(db_customer)

        if blocked:
            updated = sales_gate.block(gate, reason, now)
            event_type = "customer.sales_blocked"
        else:
            updated = sales_gate.unblock(gate)
            event_type = "customer.sales_unblocked"

        CustomerRepository.store_sales_gate(db_customer, updated)
        logger.info("Sales gate updated", extra={"customer_id": str(customer_id), "blocked": blocked, "reason": updated.reason})

        return [
            DomainEvent(
                event_type=event_type,
                customer_id=customer_id,
                occurred_at=now,
                payload={"reason": updated.reason},
            )
        ]

    def assess_risk(self, customer_id: uuid.UUID, enforce: bool = False) -> Tuple[RiskAssessment, List[DomainEvent]]:
        """
        Score the customer's repayment behavior.

        With enforce=True a "blocked" risk level places a sales block;
        it never lifts one.
        """
        db_customer = self.get_customer(customer_id)
        assessment = assess_risk(
            CustomerRepository.financials(db_customer),
            CustomerRepository.behavior(db_customer),
        )

        events: List[DomainEvent] = []
        already_blocked = sales_gate.is_blocked(CustomerRepository.sales_gate(db_customer))
        if enforce and assessment.risk_level == "blocked" and not already_blocked:
            events = self.set_sales_block(
                customer_id,
                blocked=True,
                reason=f"Risk score {assessment.score} below threshold",
            )
        return assessment, events
