from sqlalchemy import (
    DECIMAL,
    JSON,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    String,
)
from sqlalchemy.dialects.postgresql import JSONB

from .base import Base
from .device import utcnow

AGENT_TYPES = ("claude-code", "amp", "codex", "opencode")
DEFAULT_AGENT_TYPE = "claude-code"

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class UsageRecord(Base):
    """Daily token usage and cost for one device and one agent"""

    __tablename__ = "usage_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(String(255), nullable=False)
    agent_type = Column(String(50), nullable=False, default=DEFAULT_AGENT_TYPE)
    date = Column(Date, nullable=False)
    input_tokens = Column(Integer, nullable=False, default=0)
    output_tokens = Column(Integer, nullable=False, default=0)
    cache_creation_tokens = Column(Integer, nullable=False, default=0)
    cache_read_tokens = Column(Integer, nullable=False, default=0)
    total_tokens = Column(Integer, nullable=False, default=0)
    total_cost = Column(DECIMAL(10, 4), nullable=False, default=0)
    # Pay-as-you-go agents (amp) report credits alongside the dollar cost
    credits = Column(DECIMAL(10, 4), nullable=True, default=0)
    models_used = Column(JSONType, nullable=False, default=list)
    # Verbatim record as sent by the collector, kept for auditing
    raw_data = Column(JSONType, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("usage_records_device_id_idx", "device_id"),
        Index("usage_records_date_idx", "date"),
        Index("usage_records_agent_type_idx", "agent_type"),
        Index("usage_records_created_at_idx", "created_at"),
        Index(
            "usage_records_unique_device_date_agent_idx",
            "device_id",
            "date",
            "agent_type",
            unique=True,
        ),
    )
