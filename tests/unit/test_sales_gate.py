"""Unit tests for the sales gate"""

import pytest
from datetime import datetime, timezone
from installment_ledger.domain import sales_gate
from installment_ledger.domain.exceptions import SalesBlocked
from installment_ledger.domain.models import CustomerFinancials, SalesBlock

NOW = datetime(2024, 1, 15, tzinfo=timezone.utc)


def test_open_gate_allows_sales():
    gate = SalesBlock()
    assert sales_gate.is_blocked(gate) is False
    sales_gate.ensure_sales_allowed(gate)


def test_block_carries_reason():
    gate = sales_gate.block(SalesBlock(), "Chargeback under review", NOW)

    assert gate.blocked_at == NOW
    with pytest.raises(SalesBlocked) as exc_info:
        sales_gate.ensure_sales_allowed(gate)
    assert exc_info.value.details["reason"] == "Chargeback under review"


def test_block_without_reason_uses_default():
    gate = sales_gate.block(SalesBlock(), None, NOW)
    assert gate.reason == sales_gate.DEFAULT_BLOCK_REASON


def test_unblock_clears_everything():
    gate = sales_gate.unblock(sales_gate.block(SalesBlock(), "x", NOW))
    assert gate == SalesBlock()


def test_unblock_eligibility():
    gate = sales_gate.block(SalesBlock(), "x", NOW)
    within_limit = CustomerFinancials(credit_limit_cents=1000, outstanding_cents=400)
    over_limit = CustomerFinancials(credit_limit_cents=1000, outstanding_cents=1200)

    assert sales_gate.eligible_for_unblock(gate, within_limit, has_overdue=False) is True
    assert sales_gate.eligible_for_unblock(gate, within_limit, has_overdue=True) is False
    assert sales_gate.eligible_for_unblock(gate, over_limit, has_overdue=False) is False
    assert sales_gate.eligible_for_unblock(SalesBlock(), within_limit, has_overdue=False) is False
