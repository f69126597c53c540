import json
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from usage_collector.exceptions import ConfigError
from usage_collector.logger import get_logger

logger = get_logger(name="config")

CONFIG_DIR_NAME = ".ccusage-collector"
CONFIG_FILE_NAME = "config.json"
SYNC_PATH = "/api/usage-sync"

DEFAULT_SCHEDULE = "0 */4 * * *"
DEFAULT_SCHEDULE_LABEL = "Every 4 hours"
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 1000
DEFAULT_TIMEOUT_SECONDS = 30

SCHEDULE_OPTIONS = [
    {"value": "*/30 * * * *", "label": "Every 30 minutes"},
    {"value": "0 * * * *", "label": "Every 1 hour"},
    {"value": "0 */2 * * *", "label": "Every 2 hours"},
    {"value": "0 */4 * * *", "label": "Every 4 hours"},
    {"value": "0 */8 * * *", "label": "Every 8 hours"},
    {"value": "0 0 * * *", "label": "Once daily"},
]

AGENT_OPTIONS = [
    {"value": "claude-code", "label": "Claude Code"},
    {"value": "amp", "label": "Amp"},
    {"value": "codex", "label": "Codex"},
    {"value": "opencode", "label": "OpenCode"},
]


class CollectorConfig(BaseModel):
    """Everything the collector needs, as stored in the config file."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    api_key: str = Field(min_length=1)
    endpoint: str = Field(min_length=1)
    schedule: str = DEFAULT_SCHEDULE
    schedule_label: str = DEFAULT_SCHEDULE_LABEL
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=1)
    # Milliseconds, like the config files written by older collector releases
    retry_delay: int = Field(default=DEFAULT_RETRY_DELAY_MS, ge=0)
    timeout: int = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    device_id: str | None = None
    device_name: str | None = None
    display_name: str | None = None
    agent_types: list[str] = Field(default_factory=lambda: ["claude-code"])

    def to_file_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


def endpoint_from_base_url(base_url: str) -> str:
    """``https://host/`` -> ``https://host/api/usage-sync``"""
    return base_url.strip().rstrip("/") + SYNC_PATH


def base_url_from_endpoint(endpoint: str) -> str:
    return endpoint[: -len(SYNC_PATH)] if endpoint.endswith(SYNC_PATH) else endpoint


def default_config_dir() -> Path:
    override = os.getenv("USAGE_COLLECTOR_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / CONFIG_DIR_NAME


class ConfigManager:
    """Reads and writes the collector config file (JSON, mode 600)."""

    def __init__(self, config_dir: Path | None = None):
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.config_path = self.config_dir / CONFIG_FILE_NAME

    def has_config(self) -> bool:
        return self.config_path.exists()

    def load_config(self) -> CollectorConfig | None:
        """Return the stored config, or None if missing, unreadable or incomplete."""
        if not self.has_config():
            return None
        try:
            data = json.loads(self.config_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load config from {self.config_path}: {e}")
            return None

        # Older files stored a single agentType
        if "agentTypes" not in data and data.get("agentType"):
            data["agentTypes"] = [data["agentType"]]

        try:
            return CollectorConfig.model_validate(data)
        except ValidationError as e:
            logger.error(f"Invalid config in {self.config_path}: {e.errors()[0]['msg']}")
            return None

    def save_config(self, config: CollectorConfig) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(
            json.dumps(config.to_file_dict(), indent=2), encoding="utf-8"
        )
        # User read/write only; the file holds the API key
        os.chmod(self.config_path, 0o600)
        logger.debug(f"Configuration saved to {self.config_path}")

    def update_device_info(self, device_id: str, device_name: str) -> CollectorConfig:
        config = self.load_config()
        if config is None:
            raise ConfigError(f"No configuration found at {self.config_path}")
        updated = config.model_copy(update={"device_id": device_id, "device_name": device_name})
        self.save_config(updated)
        return updated
