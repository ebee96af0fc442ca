"""Unit tests for installment schedule generation"""

import pytest
from datetime import datetime, timezone
from installment_ledger.domain.exceptions import ValidationError
from installment_ledger.domain.installments import due_date_for, schedule
from installment_ledger.domain.models import Frequency, InstallmentStatus

START = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def test_schedule_equal_split():
    """Test schedule with evenly divisible amount"""
    installments = schedule(90000, 3, Frequency.MONTHLY, START)

    assert len(installments) == 3
    assert all(inst.amount_cents == 30000 for inst in installments)
    assert sum(inst.amount_cents for inst in installments) == 90000


def test_schedule_rounding():
    """Test last installment absorbs remainder"""
    installments = schedule(100000, 3, Frequency.MONTHLY, START)

    assert [inst.amount_cents for inst in installments] == [33333, 33333, 33334]
    assert sum(inst.amount_cents for inst in installments) == 100000


@pytest.mark.parametrize("total,count", [(1, 3), (1000, 3), (99999, 7), (12345678, 12), (5, 5)])
def test_schedule_sum_is_exact(total, count):
    installments = schedule(total, count, Frequency.WEEKLY, START)
    assert sum(inst.amount_cents for inst in installments) == total
    assert [inst.number for inst in installments] == list(range(1, count + 1))


def test_schedule_monthly_dates():
    """Test due dates one, two and three months out"""
    installments = schedule(1000, 3, Frequency.MONTHLY, START)

    assert installments[0].due_date == datetime(2024, 2, 15, 12, 0, tzinfo=timezone.utc)
    assert installments[1].due_date == datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
    assert installments[2].due_date == datetime(2024, 4, 15, 12, 0, tzinfo=timezone.utc)


def test_schedule_weekly_and_biweekly_dates():
    weekly = schedule(300, 3, Frequency.WEEKLY, START)
    biweekly = schedule(300, 3, Frequency.BIWEEKLY, START)

    assert [(i.due_date - START).days for i in weekly] == [7, 14, 21]
    assert [(i.due_date - START).days for i in biweekly] == [15, 30, 45]


def test_schedule_bimonthly_dates():
    installments = schedule(200, 2, Frequency.BIMONTHLY, START)

    assert installments[0].due_date == datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
    assert installments[1].due_date == datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


def test_month_end_dates_are_clamped_without_drift():
    """Jan 31 start lands on Feb 29, then back on Mar 31"""
    start = datetime(2024, 1, 31, tzinfo=timezone.utc)

    assert due_date_for(start, Frequency.MONTHLY, 1) == datetime(2024, 2, 29, tzinfo=timezone.utc)
    assert due_date_for(start, Frequency.MONTHLY, 2) == datetime(2024, 3, 31, tzinfo=timezone.utc)


def test_schedule_starts_pending():
    installments = schedule(1000, 2, Frequency.MONTHLY, START)
    assert all(inst.status == InstallmentStatus.PENDING for inst in installments)
    assert all(inst.paid_cents == 0 for inst in installments)


def test_schedule_zero_amount():
    """Test handling of zero amount"""
    assert schedule(0, 3, Frequency.MONTHLY, START) == []


@pytest.mark.parametrize("count", [0, -1])
def test_schedule_rejects_non_positive_count(count):
    with pytest.raises(ValidationError):
        schedule(1000, count, Frequency.MONTHLY, START)


def test_schedule_rejects_negative_total():
    with pytest.raises(ValidationError):
        schedule(-1, 3, Frequency.MONTHLY, START)
