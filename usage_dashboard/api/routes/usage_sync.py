from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from usage_dashboard.api.dependencies import get_async_db, verify_sync_api_key
from usage_dashboard.api.schemas.usage_sync import UsageSyncRequest, UsageSyncResponse
from usage_dashboard.core.logger import get_logger
from usage_dashboard.exceptions.exceptions import (
    BaseUsageTrackerException,
    InvalidSyncPayloadException,
)
from usage_dashboard.services.usage_sync_service import UsageSyncService

logger = get_logger(name="usage_sync_route")
router = APIRouter()


@router.post(
    "/usage-sync",
    response_model=UsageSyncResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(verify_sync_api_key)],
)
async def sync_usage(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
):
    """
    Receive one device's daily usage from a collector and upsert it.

    ``success`` is true whenever the request was processed; per-record
    failures are only visible in ``results``.
    """
    try:
        body = await request.json()
    except ValueError as err:
        raise InvalidSyncPayloadException("body must be valid JSON") from err

    if not isinstance(body, dict) or not isinstance(body.get("daily"), list):
        raise InvalidSyncPayloadException("daily array is required")
    if not isinstance(body.get("device"), dict):
        raise InvalidSyncPayloadException("device information is required")

    try:
        payload = UsageSyncRequest.model_validate(body)
    except ValidationError as err:
        first = err.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise InvalidSyncPayloadException(f"{location}: {first['msg']}") from err

    try:
        return await UsageSyncService.sync_usage(db, payload.device, payload.daily)
    except BaseUsageTrackerException:
        raise
    except Exception as e:
        logger.exception(f"Usage sync error: {e}")
        raise BaseUsageTrackerException("Internal server error") from e
