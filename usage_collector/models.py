from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

AgentType = Literal["claude-code", "amp", "codex", "opencode"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class DeviceInfo(CamelModel):
    device_id: str
    device_name: str
    display_name: str | None = None
    agent_type: AgentType | None = None


class UsageTotals(CamelModel):
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    total_tokens: int = 0
    total_cost: float = 0
    credits: float | None = None


class UsageData(CamelModel):
    device: DeviceInfo
    # Already in canonical camelCase shape, see parsing.normalize_daily_record
    daily: list[dict[str, Any]]
    totals: UsageTotals


class RecordResult(CamelModel):
    date: Any = None
    status: Literal["success", "error"]
    message: str | None = None


class SyncResult(CamelModel):
    success: bool
    processed: int = 0
    results: list[RecordResult] = Field(default_factory=list)

    @property
    def errors(self) -> list[RecordResult]:
        return [result for result in self.results if result.status == "error"]
