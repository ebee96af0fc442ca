"""Unit tests for date helpers"""

import pytest
from datetime import datetime, timedelta, timezone
from installment_ledger.utils.date_utils import add_months, days_late, ensure_aware, utcnow


def test_utcnow_is_aware():
    assert utcnow().tzinfo is not None


def test_ensure_aware_attaches_utc_to_naive():
    assert ensure_aware(datetime(2024, 1, 1, 8, 0)) == datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


def test_ensure_aware_normalizes_offsets():
    local = datetime(2024, 1, 1, 8, 0, tzinfo=timezone(timedelta(hours=-5)))
    assert ensure_aware(local).hour == 13
    assert ensure_aware(local).tzinfo == timezone.utc


@pytest.mark.parametrize(
    "start,months,expected",
    [
        (datetime(2024, 1, 31), 1, datetime(2024, 2, 29)),
        (datetime(2023, 1, 31), 1, datetime(2023, 2, 28)),
        (datetime(2024, 11, 15), 2, datetime(2025, 1, 15)),
        (datetime(2024, 12, 31), 12, datetime(2025, 12, 31)),
    ],
)
def test_add_months(start, months, expected):
    assert add_months(start, months) == expected


def test_days_late_never_negative():
    due = datetime(2024, 1, 10, tzinfo=timezone.utc)
    assert days_late(due, due - timedelta(days=3)) == 0
    assert days_late(due, due + timedelta(days=4, hours=5)) == 4
