"""
Environment-backed settings for the dashboard.

Values are read on each call rather than cached at import so that a redeploy
with new environment variables (or a test overriding them) takes effect
without re-importing the app.
"""

import os
from datetime import date

from dotenv import load_dotenv

from usage_dashboard.exceptions.exceptions import (
    InvalidBillingStartDateException,
    ServerMisconfiguredException,
)

load_dotenv()

APP_NAME = "Agent Usage Tracker"
APP_VERSION = "0.3.0"

DEFAULT_SUBSCRIPTION_PLAN = 200
SUPPORTED_SUBSCRIPTION_PLANS = (100, 200)


def get_sync_api_key() -> str:
    """Return the shared secret collectors must send in ``x-api-key``."""
    api_key = os.getenv("API_KEY")
    if not api_key:
        raise ServerMisconfiguredException("API key not configured on server")
    return api_key


def get_billing_start_date() -> date:
    """Parse CLAUDE_BILLING_CYCLE_START_DATE (YYYY-MM-DD)."""
    raw = os.getenv("CLAUDE_BILLING_CYCLE_START_DATE")
    if not raw:
        raise ServerMisconfiguredException(
            "CLAUDE_BILLING_CYCLE_START_DATE is not configured"
        )
    try:
        return date.fromisoformat(raw.strip())
    except ValueError as err:
        raise InvalidBillingStartDateException(raw) from err


def get_subscription_plan() -> int:
    """Monthly plan price in USD; anything other than 100 falls back to 200."""
    raw = os.getenv("NEXT_PUBLIC_SUBSCRIPTION_PLAN")
    try:
        plan = int(raw) if raw else DEFAULT_SUBSCRIPTION_PLAN
    except ValueError:
        plan = DEFAULT_SUBSCRIPTION_PLAN
    return plan if plan in SUPPORTED_SUBSCRIPTION_PLANS else DEFAULT_SUBSCRIPTION_PLAN


def get_owner_name() -> str | None:
    return os.getenv("NEXT_PUBLIC_OWNER_NAME") or None


def get_app_url() -> str | None:
    return os.getenv("NEXT_PUBLIC_APP_URL") or None
