"""Installment schedule generation for invoice repayment"""

from datetime import datetime
from typing import List
from installment_ledger.domain.exceptions import ValidationError
from installment_ledger.domain.models import Frequency, Installment
from installment_ledger.utils.date_utils import add_days, add_months


def due_date_for(start_date: datetime, frequency: Frequency, step: int) -> datetime:
    """Due date of the step-th installment, counted from start_date (never chained)"""
    if frequency == Frequency.WEEKLY:
        return add_days(start_date, 7 * step)
    if frequency == Frequency.BIWEEKLY:
        return add_days(start_date, 15 * step)
    if frequency == Frequency.BIMONTHLY:
        return add_months(start_date, 2 * step)
    return add_months(start_date, step)


def schedule(
    total_cents: int,
    count: int,
    frequency: Frequency,
    start_date: datetime,
) -> List[Installment]:
    """
    Split an amount into a due-dated installment schedule.

    Requirements:
    - Every installment but the last receives floor(total / count)
    - Last installment absorbs the remainder so the sum is exact
    - First due date is one frequency step after start_date

    Example:
        100000 cents in 3 → [33333, 33333, 33334]
    """
    if count <= 0:
        raise ValidationError("Installment count must be positive", count=count)
    if total_cents < 0:
        raise ValidationError("Installment total cannot be negative", total_cents=total_cents)
    if total_cents == 0:
        return []

    frequency = Frequency(frequency)
    base_amount = total_cents // count

    installments = []
    for number in range(1, count + 1):
        # Last installment absorbs remainder to ensure exact total
        amount = total_cents - base_amount * (count - 1) if number == count else base_amount

        installments.append(
            Installment(
                number=number,
                due_date=due_date_for(start_date, frequency, number),
                amount_cents=amount,
            )
        )

    return installments
