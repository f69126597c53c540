import os
from datetime import date
from unittest import IsolatedAsyncioTestCase
from unittest.mock import patch

from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from usage_dashboard.api.dependencies import get_async_db, get_today
from usage_dashboard.main import create_app
from usage_dashboard.models import Base

TEST_API_KEY = "test-sync-key"
BILLING_START = "2025-01-15"


def daily_record(day: str, cost: float = 1.5, tokens: int = 100, **extra) -> dict:
    record = {
        "date": day,
        "inputTokens": tokens // 2,
        "outputTokens": tokens // 4,
        "cacheCreationTokens": tokens // 8,
        "cacheReadTokens": tokens // 8,
        "totalTokens": tokens,
        "totalCost": cost,
        "modelsUsed": ["claude-sonnet-4-20250514"],
    }
    record.update(extra)
    return record


def device_payload(device_id: str = "device-1", name: str = "laptop", **extra) -> dict:
    device = {"deviceId": device_id, "deviceName": name}
    device.update(extra)
    return device


class ApiTestCase(IsolatedAsyncioTestCase):
    """App wired to a private in-memory SQLite database.

    ``today`` is pinned so billing-cycle boundaries are predictable.
    """

    today = date(2025, 2, 10)
    env = {
        "API_KEY": TEST_API_KEY,
        "CLAUDE_BILLING_CYCLE_START_DATE": BILLING_START,
        "NEXT_PUBLIC_SUBSCRIPTION_PLAN": "200",
    }

    async def asyncSetUp(self):
        self.engine = create_async_engine(
            "sqlite+aiosqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

        async def override_get_async_db():
            async with self.session_factory() as session:
                yield session

        self.app = create_app()
        self.app.dependency_overrides[get_async_db] = override_get_async_db
        self.app.dependency_overrides[get_today] = lambda: self.today

        self.env_patch = patch.dict(os.environ, self.env)
        self.env_patch.start()
        self.client = AsyncClient(transport=ASGITransport(app=self.app), base_url="http://test")

    async def asyncTearDown(self):
        await self.client.aclose()
        self.env_patch.stop()
        await self.engine.dispose()

    async def sync(self, device: dict, daily: list, api_key: str | None = TEST_API_KEY):
        headers = {"x-api-key": api_key} if api_key is not None else {}
        return await self.client.post(
            "/api/usage-sync", json={"device": device, "daily": daily}, headers=headers
        )

    async def count(self, model) -> int:
        async with self.session_factory() as session:
            return (await session.execute(select(func.count()).select_from(model))).scalar_one()

    async def fetch_all(self, model) -> list:
        async with self.session_factory() as session:
            return list((await session.execute(select(model))).scalars())
