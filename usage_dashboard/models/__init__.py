from .base import Base
from .device import Device
from .usage_record import AGENT_TYPES, DEFAULT_AGENT_TYPE, UsageRecord

__all__ = ["Base", "Device", "UsageRecord", "AGENT_TYPES", "DEFAULT_AGENT_TYPE"]
