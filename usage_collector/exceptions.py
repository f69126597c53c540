class CollectorError(Exception):
    """Base class for collector failures."""


class ConfigError(CollectorError):
    """Raised when the collector has no usable configuration."""


class CommandNotFoundError(CollectorError):
    """Raised when no way to run an agent's usage-reporting command exists."""

    def __init__(self, agent_type: str, binary: str):
        self.agent_type = agent_type
        self.binary = binary
        super().__init__(
            f"No command available for {agent_type}: install {binary} or make bunx/npx available"
        )


class UsageCollectionError(CollectorError):
    """Raised when collecting usage for one agent fails."""

    def __init__(self, agent_type: str, reason: str):
        self.agent_type = agent_type
        self.reason = reason
        super().__init__(f"Failed to collect {agent_type} usage data: {reason}")


class SyncAuthenticationError(CollectorError):
    """Raised on HTTP 401/403 from the sync endpoint. Never retried."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"Authentication failed ({status_code}): {message}")


class SyncError(CollectorError):
    """Raised when every sync attempt has failed."""

    def __init__(self, attempts: int, message: str):
        self.attempts = attempts
        super().__init__(f"Sync failed after {attempts} attempts: {message}")
