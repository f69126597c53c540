from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from usage_dashboard.api.schemas.usage_sync import (
    UsageSyncDevice,
    UsageSyncResponse,
    UsageSyncResult,
)
from usage_dashboard.core.logger import get_logger
from usage_dashboard.models.device import Device
from usage_dashboard.models.usage_record import DEFAULT_AGENT_TYPE, UsageRecord
from usage_dashboard.utils.numeric import is_number

logger = get_logger(name="usage_sync")

# Columns overwritten when a (device, date, agent) row already exists
UPSERT_COLUMNS = (
    "input_tokens",
    "output_tokens",
    "cache_creation_tokens",
    "cache_read_tokens",
    "total_tokens",
    "total_cost",
    "credits",
    "models_used",
    "raw_data",
    "updated_at",
)


def dialect_insert(db: AsyncSession):
    """Return the dialect's ``insert`` construct, which supports ON CONFLICT."""
    if db.bind.dialect.name == "sqlite":
        return sqlite.insert
    return postgresql.insert


def validate_daily_record(record: Any) -> str | None:
    """Return an error message for an unusable record, or None if it can be stored."""
    if not isinstance(record, dict):
        return "Missing required fields"
    if (
        not record.get("date")
        or not is_number(record.get("totalTokens"))
        or not is_number(record.get("totalCost"))
    ):
        return "Missing required fields"
    try:
        date.fromisoformat(str(record["date"]))
    except ValueError:
        return f"Invalid date format: {record['date']}"
    return None


def _int_field(record: dict, key: str) -> int:
    value = record.get(key)
    return int(value) if is_number(value) else 0


def _decimal_field(record: dict, key: str) -> Decimal | None:
    value = record.get(key)
    # str() first so floats like 0.1 keep their short repr
    return Decimal(str(value)) if is_number(value) else None


def build_usage_row(
    device_id: str, agent_type: str, record: dict, now: datetime
) -> dict[str, Any]:
    models_used = record.get("modelsUsed")
    return {
        "device_id": device_id,
        "agent_type": agent_type,
        "date": date.fromisoformat(str(record["date"])),
        "input_tokens": _int_field(record, "inputTokens"),
        "output_tokens": _int_field(record, "outputTokens"),
        "cache_creation_tokens": _int_field(record, "cacheCreationTokens"),
        "cache_read_tokens": _int_field(record, "cacheReadTokens"),
        # Trusted as sent; not recomputed from the four components
        "total_tokens": int(record["totalTokens"]),
        "total_cost": Decimal(str(record["totalCost"])),
        "credits": _decimal_field(record, "credits") or Decimal("0"),
        "models_used": models_used if isinstance(models_used, list) else [],
        "raw_data": record,
        "created_at": now,
        "updated_at": now,
    }


class UsageSyncService:
    """Stores device metadata and daily usage pushed by collectors."""

    @staticmethod
    async def upsert_device(
        db: AsyncSession, device: UsageSyncDevice, now: datetime
    ) -> None:
        insert = dialect_insert(db)
        stmt = insert(Device).values(
            device_id=device.device_id,
            device_name=device.device_name,
            display_name=device.display_name,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Device.device_id],
            set_={
                "device_name": stmt.excluded.device_name,
                "display_name": stmt.excluded.display_name,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await db.execute(stmt)
        await db.commit()

    @staticmethod
    async def upsert_usage_rows(db: AsyncSession, rows: list[dict[str, Any]]) -> None:
        insert = dialect_insert(db)
        stmt = insert(UsageRecord).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=[
                UsageRecord.device_id,
                UsageRecord.date,
                UsageRecord.agent_type,
            ],
            set_={column: stmt.excluded[column] for column in UPSERT_COLUMNS},
        )
        await db.execute(stmt)
        await db.commit()

    @staticmethod
    async def sync_usage(
        db: AsyncSession, device: UsageSyncDevice, daily: list[Any]
    ) -> UsageSyncResponse:
        """Upsert the device, then all valid daily records in one statement.

        Invalid records are reported individually and never written. If the
        batch statement fails every record in it is reported with the failure
        message; there is no per-row retry.
        """
        now = datetime.now(UTC)
        agent_type = device.agent_type or DEFAULT_AGENT_TYPE

        await UsageSyncService.upsert_device(db, device, now)

        results: list[UsageSyncResult | None] = [None] * len(daily)
        # Keyed by date so a repeated date in one payload keeps the last copy;
        # a single ON CONFLICT statement can't touch the same row twice.
        rows_by_date: dict[date, dict[str, Any]] = {}
        valid_indexes: list[int] = []

        for index, record in enumerate(daily):
            error = validate_daily_record(record)
            record_date = record.get("date") if isinstance(record, dict) else None
            if error:
                results[index] = UsageSyncResult(
                    date=record_date, status="error", message=error
                )
                continue
            row = build_usage_row(device.device_id, agent_type, record, now)
            rows_by_date[row["date"]] = row
            valid_indexes.append(index)

        if rows_by_date:
            try:
                await UsageSyncService.upsert_usage_rows(db, list(rows_by_date.values()))
                batch_error = None
            except Exception as e:
                logger.error(
                    f"Usage upsert failed for device {device.device_id} "
                    f"({len(rows_by_date)} records): {e}"
                )
                await db.rollback()
                batch_error = str(e)

            for index in valid_indexes:
                results[index] = UsageSyncResult(
                    date=daily[index]["date"],
                    status="error" if batch_error else "success",
                    message=batch_error,
                )

        failed = sum(1 for result in results if result.status == "error")
        logger.info(
            f"Synced {len(daily)} {agent_type} records for device "
            f"{device.device_id} ({failed} errors)"
        )
        return UsageSyncResponse(success=True, processed=len(results), results=results)
