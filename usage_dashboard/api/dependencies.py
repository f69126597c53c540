import secrets
from datetime import date

from fastapi import Depends
from fastapi.security import APIKeyHeader

from usage_dashboard.core.config import get_sync_api_key
from usage_dashboard.core.database import get_async_db
from usage_dashboard.core.logger import get_logger
from usage_dashboard.exceptions.exceptions import InvalidApiKeyException

logger = get_logger(name="dependencies")

api_key_header = APIKeyHeader(name="x-api-key", auto_error=False)


async def verify_sync_api_key(api_key: str | None = Depends(api_key_header)) -> None:
    """Reject the request unless x-api-key matches the server secret.

    Runs before the database session is used, so a rejected request has no
    side effects.
    """
    expected_api_key = get_sync_api_key()
    # Header values are latin-1 decoded; compare_digest only accepts ASCII str
    if not api_key or not secrets.compare_digest(
        api_key.encode(), expected_api_key.encode()
    ):
        logger.warning("Rejected usage sync with missing or invalid API key")
        raise InvalidApiKeyException()


def get_today() -> date:
    """Reference date for billing-cycle math; overridden in tests."""
    return date.today()


__all__ = ["get_async_db", "get_today", "verify_sync_api_key"]
