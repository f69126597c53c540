from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from usage_dashboard.api.dependencies import get_async_db, get_today
from usage_dashboard.api.schemas.usage_stats import UsageStatsResponse
from usage_dashboard.core.config import get_billing_start_date, get_subscription_plan
from usage_dashboard.core.logger import get_logger
from usage_dashboard.exceptions.exceptions import UsageStatsQueryException
from usage_dashboard.services.usage_stats_service import UsageStatsService

logger = get_logger(name="usage_stats_route")
router = APIRouter()


@router.get("/usage-stats", response_model=UsageStatsResponse)
async def get_usage_stats(
    db: AsyncSession = Depends(get_async_db),
    today: date = Depends(get_today),
):
    """
    Aggregated usage for the dashboard: lifetime, billing-cycle and 30-day
    totals, recent per-day/per-device/per-agent series and a device list.

    Unlike sync there is no partial result; any failing query fails the request.
    """
    billing_start_date = get_billing_start_date()

    try:
        return await UsageStatsService.get_usage_stats(
            db=db,
            billing_start_date=billing_start_date,
            today=today,
            subscription_plan=get_subscription_plan(),
        )
    except Exception as e:
        logger.exception(f"Error fetching usage stats: {e}")
        raise UsageStatsQueryException(e) from e
