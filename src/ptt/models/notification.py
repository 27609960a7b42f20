"""
Notification log models for the Production Timeline Tracker.

One row per attempt to tell a department that a task needs its attention.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ptt.utils.dates import utcnow

from .base import Base


class DeliveryStatus(StrEnum):
    """Outcome of a notification attempt."""

    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"  # notifications disabled or nobody to notify


class NotificationLog(BaseModel):
    """Complete notification log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    season_id: str
    recipients: list[str] = Field(default_factory=list)
    subject: str
    status: DeliveryStatus
    error: str | None = None
    created_at: datetime


class NotificationLogModel(Base):
    """SQLAlchemy model for notification_logs table."""

    __tablename__ = "notification_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    season_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    recipients: Mapped[list[str]] = mapped_column(JSON, default=list)
    subject: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
