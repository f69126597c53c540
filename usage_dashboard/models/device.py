import datetime
from datetime import UTC

from sqlalchemy import Column, DateTime, Index, Integer, String

from .base import Base


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(UTC)


class Device(Base):
    """A machine or installation that reports usage"""

    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(String(255), unique=True, nullable=False)
    device_name = Column(String(255), nullable=False)
    # Optional operator-chosen label shown instead of the hostname
    display_name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("devices_device_id_idx", "device_id"),
        Index("devices_created_at_idx", "created_at"),
    )
