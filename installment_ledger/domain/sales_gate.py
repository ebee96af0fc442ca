"""Sales gate - explicit per-customer block on new invoices"""

from dataclasses import replace
from datetime import datetime
from typing import Optional
from installment_ledger.domain.exceptions import SalesBlocked
from installment_ledger.domain.models import CustomerFinancials, SalesBlock

DEFAULT_BLOCK_REASON = "Sales blocked due to high risk"


def is_blocked(gate: SalesBlock) -> bool:
    return gate.blocked


def ensure_sales_allowed(gate: SalesBlock) -> None:
    """Raises SalesBlocked with the stored reason when the flag is set"""
    if is_blocked(gate):
        raise SalesBlocked(gate.reason)


def block(gate: SalesBlock, reason: Optional[str], now: datetime) -> SalesBlock:
    return replace(gate, blocked=True, reason=reason or DEFAULT_BLOCK_REASON, blocked_at=now)


def unblock(gate: SalesBlock) -> SalesBlock:
    return replace(gate, blocked=False, reason=None, blocked_at=None)


def eligible_for_unblock(gate: SalesBlock, financials: CustomerFinancials, has_overdue: bool) -> bool:
    """
    Re-evaluated after every payment. Eligibility is only reported;
    lifting the block stays an explicit admin action.
    """
    if not gate.blocked:
        return False
    return not has_overdue and financials.outstanding_cents <= financials.credit_limit_cents
