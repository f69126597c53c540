from datetime import date, timedelta
from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from usage_dashboard.api.schemas.usage_stats import (
    AgentDailyUsage,
    AggregatedMetrics,
    BillingCycleInfo,
    CumulativeSummary,
    DailyUsage,
    DeviceDailyUsage,
    DeviceSummary,
    UsageStatsResponse,
    UserStatusInfo,
)
from usage_dashboard.core.logger import get_logger
from usage_dashboard.models.device import Device
from usage_dashboard.models.usage_record import UsageRecord
from usage_dashboard.services.billing_cycle import (
    get_current_billing_cycle,
    get_days_remaining_in_cycle,
    get_previous_billing_cycle,
)
from usage_dashboard.services.cumulative_metrics import calculate_cumulative_metrics
from usage_dashboard.utils.numeric import to_number

logger = get_logger(name="usage_stats")

DAILY_RECORDS_LIMIT = 30
DEVICE_RECORDS_LIMIT = 300
LAST_N_DAYS = 30


def _usage_sums() -> list:
    return [
        func.sum(UsageRecord.total_cost).label("total_cost"),
        func.sum(UsageRecord.total_tokens).label("total_tokens"),
        func.sum(UsageRecord.input_tokens).label("input_tokens"),
        func.sum(UsageRecord.output_tokens).label("output_tokens"),
        func.sum(UsageRecord.cache_creation_tokens).label("cache_creation_tokens"),
        func.sum(UsageRecord.cache_read_tokens).label("cache_read_tokens"),
        func.sum(UsageRecord.credits).label("credits"),
    ]


def _daily_fields(row: Any) -> dict[str, Any]:
    return {
        "date": row.date,
        "total_cost": to_number(row.total_cost),
        "total_tokens": to_number(row.total_tokens),
        "input_tokens": to_number(row.input_tokens),
        "output_tokens": to_number(row.output_tokens),
        "cache_creation_tokens": to_number(row.cache_creation_tokens),
        "cache_read_tokens": to_number(row.cache_read_tokens),
        "credits": to_number(row.credits),
    }


def average_daily_cost(total_cost: float, active_days: int) -> float:
    return total_cost / active_days if active_days > 0 else 0


class UsageStatsService:
    """Aggregation queries behind the dashboard's stats payload."""

    @staticmethod
    async def get_aggregated_metrics(
        db: AsyncSession,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> AggregatedMetrics:
        """Sum every usage row whose date falls in [start_date, end_date]."""
        query = select(
            *_usage_sums(),
            func.count(func.distinct(UsageRecord.date)).label("active_days"),
        )
        if start_date is not None:
            query = query.where(UsageRecord.date >= start_date)
        if end_date is not None:
            query = query.where(UsageRecord.date <= end_date)

        row = (await db.execute(query)).one()
        total_cost = to_number(row.total_cost)
        active_days = to_number(row.active_days)
        return AggregatedMetrics(
            total_cost=total_cost,
            total_tokens=to_number(row.total_tokens),
            total_input_tokens=to_number(row.input_tokens),
            total_output_tokens=to_number(row.output_tokens),
            total_cache_creation_tokens=to_number(row.cache_creation_tokens),
            total_cache_read_tokens=to_number(row.cache_read_tokens),
            total_credits=to_number(row.credits),
            active_days=active_days,
            avg_daily_cost=average_daily_cost(total_cost, active_days),
        )

    @staticmethod
    async def get_daily_usage(
        db: AsyncSession, limit: int = DAILY_RECORDS_LIMIT
    ) -> list[DailyUsage]:
        """Per-day sums across all devices for the most recent ``limit`` dates."""
        query = (
            select(UsageRecord.date.label("date"), *_usage_sums())
            .group_by(UsageRecord.date)
            .order_by(desc(UsageRecord.date))
            .limit(limit)
        )
        rows = (await db.execute(query)).fetchall()
        return [DailyUsage(**_daily_fields(row)) for row in reversed(rows)]

    @staticmethod
    async def get_device_daily_usage(
        db: AsyncSession, limit: int = DEVICE_RECORDS_LIMIT
    ) -> list[DeviceDailyUsage]:
        query = (
            select(
                UsageRecord.date.label("date"),
                UsageRecord.device_id.label("device_id"),
                *_usage_sums(),
            )
            .group_by(UsageRecord.date, UsageRecord.device_id)
            .order_by(desc(UsageRecord.date), desc(UsageRecord.device_id))
            .limit(limit)
        )
        rows = (await db.execute(query)).fetchall()
        return [
            DeviceDailyUsage(device_id=row.device_id, **_daily_fields(row))
            for row in reversed(rows)
        ]

    @staticmethod
    async def get_agent_daily_usage(
        db: AsyncSession, limit: int = DEVICE_RECORDS_LIMIT
    ) -> list[AgentDailyUsage]:
        query = (
            select(
                UsageRecord.date.label("date"),
                UsageRecord.agent_type.label("agent_type"),
                *_usage_sums(),
            )
            .group_by(UsageRecord.date, UsageRecord.agent_type)
            .order_by(desc(UsageRecord.date), desc(UsageRecord.agent_type))
            .limit(limit)
        )
        rows = (await db.execute(query)).fetchall()
        return [
            AgentDailyUsage(agent_type=row.agent_type, **_daily_fields(row))
            for row in reversed(rows)
        ]

    @staticmethod
    async def get_device_summaries(db: AsyncSession) -> list[DeviceSummary]:
        """One entry per known device, including devices with no usage yet."""
        query = (
            select(
                Device.device_id,
                Device.device_name,
                Device.display_name,
                Device.created_at,
                Device.updated_at,
                func.count(UsageRecord.id).label("record_count"),
                func.coalesce(func.sum(UsageRecord.total_cost), 0).label("total_cost"),
                func.max(UsageRecord.date).label("last_active_date"),
            )
            .outerjoin(UsageRecord, UsageRecord.device_id == Device.device_id)
            .group_by(
                Device.id,
                Device.device_id,
                Device.device_name,
                Device.display_name,
                Device.created_at,
                Device.updated_at,
            )
            .order_by(Device.device_name, Device.device_id)
        )
        rows = (await db.execute(query)).fetchall()

        agent_rows = (
            await db.execute(
                select(UsageRecord.device_id, UsageRecord.agent_type)
                .distinct()
                .order_by(UsageRecord.device_id, UsageRecord.agent_type)
            )
        ).fetchall()
        agent_types: dict[str, list[str]] = {}
        for agent_row in agent_rows:
            agent_types.setdefault(agent_row.device_id, []).append(agent_row.agent_type)

        return [
            DeviceSummary(
                device_id=row.device_id,
                device_name=row.device_name,
                display_name=row.display_name,
                record_count=to_number(row.record_count),
                total_cost=to_number(row.total_cost),
                last_active_date=row.last_active_date,
                agent_types=agent_types.get(row.device_id, []),
                created_at=row.created_at,
                updated_at=row.updated_at,
            )
            for row in rows
        ]

    @staticmethod
    async def get_date_span(db: AsyncSession) -> tuple[date | None, date | None]:
        row = (
            await db.execute(
                select(
                    func.min(UsageRecord.date).label("earliest"),
                    func.max(UsageRecord.date).label("latest"),
                )
            )
        ).one()
        return row.earliest, row.latest

    @staticmethod
    async def get_usage_stats(
        db: AsyncSession,
        billing_start_date: date,
        today: date,
        subscription_plan: int,
    ) -> UsageStatsResponse:
        """Compose the full dashboard payload.

        The queries run one after another on the same session without a
        shared snapshot, so a sync landing mid-request can show up in some
        sections and not others.
        """
        current = get_current_billing_cycle(billing_start_date, today)
        previous = get_previous_billing_cycle(billing_start_date, today)

        totals = await UsageStatsService.get_aggregated_metrics(db)
        current_cycle = await UsageStatsService.get_aggregated_metrics(
            db, current.start_date, current.end_date
        )
        previous_cycle = await UsageStatsService.get_aggregated_metrics(
            db, previous.start_date, previous.end_date
        )
        last_30_days = await UsageStatsService.get_aggregated_metrics(
            db, today - timedelta(days=LAST_N_DAYS - 1), today
        )
        daily = await UsageStatsService.get_daily_usage(db)
        device_data = await UsageStatsService.get_device_daily_usage(db)
        agent_data = await UsageStatsService.get_agent_daily_usage(db)
        devices = await UsageStatsService.get_device_summaries(db)
        earliest, latest = await UsageStatsService.get_date_span(db)

        cumulative = calculate_cumulative_metrics(
            total_cost=totals.total_cost,
            total_tokens=totals.total_tokens,
            active_days=totals.active_days,
            earliest_date=earliest,
            latest_date=latest,
            subscription_start=billing_start_date,
            today=today,
            subscription_plan=subscription_plan,
        )

        return UsageStatsResponse(
            billing_cycle=BillingCycleInfo(
                billing_start_date=billing_start_date,
                start_date=current.start_date,
                end_date=current.end_date,
                label=current.label,
                days_remaining=get_days_remaining_in_cycle(billing_start_date, today),
            ),
            totals=totals,
            current_cycle=current_cycle,
            previous_cycle=previous_cycle,
            last_30_days=last_30_days,
            daily=daily,
            device_data=device_data,
            agent_data=agent_data,
            devices=devices,
            cumulative=CumulativeSummary(
                total_cost_all_time=to_number(cumulative.total_cost_all_time),
                total_tokens_all_time=to_number(cumulative.total_tokens_all_time),
                total_active_days=cumulative.total_active_days,
                total_subscription_days=cumulative.total_subscription_days,
                subscription_start_date=cumulative.subscription_start_date,
                total_months=cumulative.total_months,
                avg_monthly_cost=to_number(cumulative.avg_monthly_cost),
                subscription_plan=cumulative.subscription_plan,
                total_saved_vs_plan=to_number(cumulative.total_saved_vs_plan),
                total_saved_vs_100=to_number(cumulative.total_saved_vs_100),
                total_saved_vs_200=to_number(cumulative.total_saved_vs_200),
                earliest_date=cumulative.earliest_date,
                latest_date=cumulative.latest_date,
                user_status=UserStatusInfo(
                    tier=cumulative.user_status.tier,
                    subtitle=cumulative.user_status.subtitle,
                ),
            ),
        )
