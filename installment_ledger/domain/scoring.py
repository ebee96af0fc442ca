"""Customer risk policy - repayment behavior scoring for sales-block decisions"""

from dataclasses import replace
from installment_ledger.domain.models import CustomerFinancials, PaymentBehavior, RiskAssessment


def record_payment_behavior(behavior: PaymentBehavior, days_late: int) -> PaymentBehavior:
    """
    Fold one payment into the customer's repayment track record.

    - On time (days_late == 0) extends the streak
    - Late resets the streak and moves the running average of days late
    """
    total = behavior.total_payments + 1

    if days_late <= 0:
        streak = behavior.current_streak + 1
        return replace(
            behavior,
            total_payments=total,
            on_time_payments=behavior.on_time_payments + 1,
            current_streak=streak,
            longest_streak=max(behavior.longest_streak, streak),
        )

    late = behavior.late_payments + 1
    avg_days_late = ((behavior.avg_days_late * behavior.late_payments) + days_late) / late
    return replace(
        behavior,
        total_payments=total,
        late_payments=late,
        current_streak=0,
        avg_days_late=round(avg_days_late, 2),
    )


def calculate_credit_score(financials: CustomerFinancials, behavior: PaymentBehavior) -> int:
    """
    Calculate a 0-100 score, 100 being the safest customer.

    Weights:
    - 40: Payment history (share of on-time payments)
    - 20: Late payment frequency (only past 3 late payments)
    - 20: Credit utilization (outstanding / limit)
    - 10: Average days late
    - +5: Current on-time streak bonus
    """
    score = 100

    if behavior.total_payments > 0:
        on_time_ratio = behavior.on_time_payments / behavior.total_payments
        score -= round((1 - on_time_ratio) * 40)

    if behavior.late_payments > 3:
        score -= min(behavior.late_payments * 3, 20)

    utilization = utilization_ratio(financials)
    if utilization > 1:
        score -= 20
    elif utilization > 0.8:
        score -= 15
    elif utilization > 0.5:
        score -= 8

    if behavior.avg_days_late > 30:
        score -= 10
    elif behavior.avg_days_late > 14:
        score -= 6
    elif behavior.avg_days_late > 7:
        score -= 3

    if behavior.current_streak >= 5:
        score += 5
    elif behavior.current_streak >= 3:
        score += 3

    return max(0, min(100, score))


def utilization_ratio(financials: CustomerFinancials) -> float:
    if financials.credit_limit_cents <= 0:
        return 0.0
    return financials.outstanding_cents / financials.credit_limit_cents


def determine_risk_level(score: int) -> tuple[str, int, bool, bool]:
    """
    Map score to risk band.

    Returns: (risk_level, max_installments, allow_deferred, allow_installments)
    """
    if score >= 70:
        return "low", 12, True, True
    elif score >= 50:
        return "medium", 6, True, True
    elif score >= 30:
        return "high", 3, False, True
    else:
        return "blocked", 0, False, False


def assess_risk(financials: CustomerFinancials, behavior: PaymentBehavior) -> RiskAssessment:
    """Main entry point: score the customer and map it to a risk band"""
    score = calculate_credit_score(financials, behavior)
    risk_level, max_installments, allow_deferred, allow_installments = determine_risk_level(score)

    return RiskAssessment(
        score=score,
        risk_level=risk_level,
        max_installments=max_installments,
        allow_deferred=allow_deferred,
        allow_installments=allow_installments,
        utilization=round(utilization_ratio(financials), 4),
    )
