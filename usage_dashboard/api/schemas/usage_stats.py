import datetime

from usage_dashboard.api.schemas.base import CamelModel


class AggregatedMetrics(CamelModel):
    total_cost: float = 0
    total_tokens: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cache_creation_tokens: int = 0
    total_cache_read_tokens: int = 0
    total_credits: float = 0
    active_days: int = 0
    avg_daily_cost: float = 0


class BillingCycleInfo(CamelModel):
    billing_start_date: datetime.date
    start_date: datetime.date
    end_date: datetime.date
    label: str
    days_remaining: int


class DailyUsage(CamelModel):
    date: datetime.date
    total_cost: float
    total_tokens: int
    input_tokens: int
    output_tokens: int
    cache_creation_tokens: int
    cache_read_tokens: int
    credits: float = 0


class DeviceDailyUsage(DailyUsage):
    device_id: str


class AgentDailyUsage(DailyUsage):
    agent_type: str


class DeviceSummary(CamelModel):
    device_id: str
    device_name: str
    display_name: str | None = None
    record_count: int
    total_cost: float
    last_active_date: datetime.date | None = None
    agent_types: list[str] = []
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None


class UserStatusInfo(CamelModel):
    tier: str
    subtitle: str


class CumulativeSummary(CamelModel):
    total_cost_all_time: float
    total_tokens_all_time: int
    total_active_days: int
    total_subscription_days: int
    subscription_start_date: datetime.date
    total_months: int
    avg_monthly_cost: float
    subscription_plan: int
    total_saved_vs_plan: float
    total_saved_vs_100: float
    total_saved_vs_200: float
    earliest_date: datetime.date | None = None
    latest_date: datetime.date | None = None
    user_status: UserStatusInfo


class UsageStatsResponse(CamelModel):
    billing_cycle: BillingCycleInfo
    totals: AggregatedMetrics
    current_cycle: AggregatedMetrics
    previous_cycle: AggregatedMetrics
    last_30_days: AggregatedMetrics
    daily: list[DailyUsage]
    device_data: list[DeviceDailyUsage]
    agent_data: list[AgentDailyUsage]
    devices: list[DeviceSummary]
    cumulative: CumulativeSummary
