"""
Client-side derivations over the /api/usage-stats payload.

The dashboard fetches the payload once; every filter, chart series and
comparison shown afterwards is computed here from that single response.
"""

import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from usage_dashboard.services.cumulative_metrics import PLAN_PRICING, UserStatus, get_user_status

TIME_RANGES = ("all", "7d", "14d", "30d", "custom")
TIME_RANGE_DAYS = {"7d": 7, "14d": 14, "30d": 30}

DEFAULT_PAGE_SIZE = 10


def _as_date(value: Any) -> date | None:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def filter_by_time_range(
    records: list[dict],
    time_range: str,
    today: date,
    custom_start: date | None = None,
    custom_end: date | None = None,
) -> list[dict]:
    """Keep the records whose ``date`` falls inside the selected range.

    ``7d``/``14d``/``30d`` keep dates on or after ``today - N days``. ``custom``
    is inclusive on both ends; without both bounds it keeps everything.
    """
    if time_range not in TIME_RANGES:
        raise ValueError(f"Unknown time range: {time_range!r}")
    if time_range == "all":
        return list(records)

    if time_range == "custom":
        if custom_start is None or custom_end is None:
            return list(records)
        start, end = custom_start, custom_end
    else:
        start, end = today - timedelta(days=TIME_RANGE_DAYS[time_range]), None

    kept = []
    for record in records:
        day = _as_date(record.get("date"))
        if day is None or day < start or (end is not None and day > end):
            continue
        kept.append(record)
    return kept


def device_label(device: dict) -> str:
    return device.get("displayName") or device.get("deviceName") or device.get("deviceId", "")


def build_device_series(device_data: list[dict], devices: list[dict]) -> tuple[list[str], list[dict]]:
    """Pivot per-device daily rows into one row per date.

    Returns ``(labels, rows)`` where each row is ``{"date": ..., label: cost}``
    with a 0 for every device that has no usage that day. Rows are sorted by
    date; labels follow the order of ``devices``.
    """
    labels_by_id = {device["deviceId"]: device_label(device) for device in devices}
    labels = list(dict.fromkeys(labels_by_id.values()))
    for record in device_data:
        device_id = record.get("deviceId")
        if device_id not in labels_by_id:
            labels_by_id[device_id] = device_id
            labels.append(device_id)

    rows: dict[str, dict] = {}
    for record in device_data:
        day = str(record.get("date"))
        row = rows.setdefault(day, {"date": day, **{label: 0.0 for label in labels}})
        row[labels_by_id[record.get("deviceId")]] += float(record.get("totalCost") or 0)

    for row in rows.values():
        for label in labels:
            row.setdefault(label, 0.0)
    return labels, [rows[day] for day in sorted(rows)]


@dataclass(frozen=True)
class PlanValue:
    plan: int
    value: float
    roi_percent: float

    @property
    def gained(self) -> bool:
        return self.value > 0


@dataclass(frozen=True)
class PlanComparison:
    current_cycle_cost: float
    plans: tuple[PlanValue, ...]
    recommendation: str


def plan_comparison(current_cycle_cost: float) -> PlanComparison:
    """Value of this cycle's usage against each subscription plan."""
    plans = tuple(
        PlanValue(
            plan=plan,
            value=current_cycle_cost - price,
            roi_percent=current_cycle_cost / price * 100,
        )
        for plan, price in sorted(PLAN_PRICING.items())
    )
    if current_cycle_cost <= PLAN_PRICING[100]:
        recommendation = "Perfect for $100 Plan"
    elif current_cycle_cost <= PLAN_PRICING[200]:
        recommendation = "Perfect for $200 Plan"
    else:
        recommendation = "Heavy User - Great Value!"
    return PlanComparison(current_cycle_cost, plans, recommendation)


def paginate(items: list, page: int, page_size: int = DEFAULT_PAGE_SIZE) -> tuple[list, int]:
    """Return the 1-based ``page`` of ``items`` and the page count.

    Out-of-range pages are clamped; an empty list has one empty page.
    """
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    page_count = max(math.ceil(len(items) / page_size), 1)
    page = min(max(page, 1), page_count)
    start = (page - 1) * page_size
    return items[start : start + page_size], page_count


def user_status(monthly_cost: float) -> UserStatus:
    return get_user_status(monthly_cost)


def format_currency(amount: float) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_savings(amount: float) -> str:
    """+$12.00 for value gained over a plan, -$12.00 for the shortfall."""
    sign = "+" if amount > 0 else "-"
    return f"{sign}${abs(amount):,.2f}"
