from typing import Any, Literal

from pydantic import Field, field_validator

from usage_dashboard.api.schemas.base import CamelModel
from usage_dashboard.models.usage_record import AGENT_TYPES


class UsageSyncDevice(CamelModel):
    device_id: str = Field(min_length=1, max_length=255)
    device_name: str = Field(min_length=1, max_length=255)
    display_name: str | None = Field(default=None, max_length=255)
    agent_type: str | None = None

    @field_validator("agent_type")
    @classmethod
    def check_agent_type(cls, v: str | None) -> str | None:
        if v is not None and v not in AGENT_TYPES:
            raise ValueError(f"unsupported agent type {v!r}")
        return v


class UsageSyncRequest(CamelModel):
    device: UsageSyncDevice
    # Records are validated one by one so a bad record can't reject the batch
    daily: list[Any]


class UsageSyncResult(CamelModel):
    date: Any = None
    status: Literal["success", "error"]
    message: str | None = None


class UsageSyncResponse(CamelModel):
    success: bool
    processed: int
    results: list[UsageSyncResult]
