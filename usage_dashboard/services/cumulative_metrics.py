"""
Lifetime ROI figures: how the total API-equivalent value compares with what
the subscription has cost so far.
"""

from dataclasses import dataclass
from datetime import date

PLAN_PRICING = {100: 100, 200: 200}

# Monthly API-equivalent cost thresholds (USD)
USER_TIER_THRESHOLDS = (
    (200, "Heavy User", "Exceptional value with intensive usage - maximizing your investment!"),
    (100, "Power User", "Strong value with consistent usage patterns."),
    (50, "Regular User", "Building steady value through regular usage."),
)
LIGHT_USER = ("Light User", "Opportunity to explore more features for greater value.")


@dataclass(frozen=True)
class UserStatus:
    tier: str
    subtitle: str


@dataclass(frozen=True)
class CumulativeMetrics:
    total_cost_all_time: float
    total_tokens_all_time: int
    total_active_days: int
    total_subscription_days: int
    subscription_start_date: date
    total_months: int
    avg_monthly_cost: float
    subscription_plan: int
    total_saved_vs_plan: float
    total_saved_vs_100: float
    total_saved_vs_200: float
    earliest_date: date | None
    latest_date: date | None
    user_status: UserStatus


def get_user_status(monthly_cost: float) -> UserStatus:
    for threshold, tier, subtitle in USER_TIER_THRESHOLDS:
        if monthly_cost >= threshold:
            return UserStatus(tier=tier, subtitle=subtitle)
    return UserStatus(tier=LIGHT_USER[0], subtitle=LIGHT_USER[1])


def count_subscription_months(subscription_start: date, today: date) -> int:
    """Months billed so far, counting the current month once its billing day has come."""
    months = (today.year - subscription_start.year) * 12 + (
        today.month - subscription_start.month
    )
    if today.day >= subscription_start.day:
        months += 1
    return max(months, 1)


def calculate_cumulative_metrics(
    total_cost: float,
    total_tokens: int,
    active_days: int,
    earliest_date: date | None,
    latest_date: date | None,
    subscription_start: date,
    today: date,
    subscription_plan: int,
) -> CumulativeMetrics:
    total_months = count_subscription_months(subscription_start, today)
    subscription_days = max((today - subscription_start).days + 1, 0)
    avg_monthly_cost = total_cost / total_months
    plan_price = PLAN_PRICING.get(subscription_plan, PLAN_PRICING[200])

    return CumulativeMetrics(
        total_cost_all_time=total_cost,
        total_tokens_all_time=total_tokens,
        total_active_days=active_days,
        total_subscription_days=subscription_days,
        subscription_start_date=subscription_start,
        total_months=total_months,
        avg_monthly_cost=avg_monthly_cost,
        subscription_plan=subscription_plan,
        total_saved_vs_plan=total_cost - plan_price * total_months,
        total_saved_vs_100=total_cost - PLAN_PRICING[100] * total_months,
        total_saved_vs_200=total_cost - PLAN_PRICING[200] * total_months,
        earliest_date=earliest_date,
        latest_date=latest_date,
        user_status=get_user_status(avg_monthly_cost),
    )
