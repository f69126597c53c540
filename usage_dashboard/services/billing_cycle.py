"""
Billing cycle arithmetic.

A cycle is anchored on the day-of-month of the subscription start date and
runs until the day before the next anchor. Months that are too short for the
anchor day (e.g. the 31st in February) use their last day instead, so cycles
always tile the calendar without gaps or overlaps.
"""

import calendar
from dataclasses import dataclass
from datetime import date, timedelta


@dataclass(frozen=True)
class BillingCycle:
    start_date: date
    end_date: date

    @property
    def label(self) -> str:
        start = f"{self.start_date:%b} {self.start_date.day}"
        end = f"{self.end_date:%b} {self.end_date.day}, {self.end_date.year}"
        return f"{start} - {end}"


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def anchor_in_month(year: int, month: int, anchor_day: int) -> date:
    """The cycle start inside the given month, clamped to the month length."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(anchor_day, last_day))


def get_current_billing_cycle(billing_start_date: date, today: date) -> BillingCycle:
    anchor_day = billing_start_date.day
    this_month_anchor = anchor_in_month(today.year, today.month, anchor_day)

    if today >= this_month_anchor:
        start = this_month_anchor
    else:
        year, month = _shift_month(today.year, today.month, -1)
        start = anchor_in_month(year, month, anchor_day)

    next_year, next_month = _shift_month(start.year, start.month, 1)
    next_start = anchor_in_month(next_year, next_month, anchor_day)
    return BillingCycle(start_date=start, end_date=next_start - timedelta(days=1))


def get_previous_billing_cycle(billing_start_date: date, today: date) -> BillingCycle:
    current = get_current_billing_cycle(billing_start_date, today)
    year, month = _shift_month(current.start_date.year, current.start_date.month, -1)
    start = anchor_in_month(year, month, billing_start_date.day)
    return BillingCycle(start_date=start, end_date=current.start_date - timedelta(days=1))


def get_days_remaining_in_cycle(billing_start_date: date, today: date) -> int:
    """Days left in the current cycle, counting today."""
    cycle = get_current_billing_cycle(billing_start_date, today)
    return max(0, (cycle.end_date - today).days + 1)
