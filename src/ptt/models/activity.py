"""
Activity log models for the Production Timeline Tracker.

Append-only record of user-visible changes to a season (audit trail).
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict
from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ptt.utils.dates import utcnow

from .base import Base


class ActivityAction(StrEnum):
    """Types of activity entries."""

    CREATE_SEASON = "CREATE_SEASON"
    UPDATE_REMARKS = "UPDATE_REMARKS"
    UPDATE_COMPLETION_DATE = "UPDATE_COMPLETION_DATE"
    UPLOAD_ATTACHMENT = "UPLOAD_ATTACHMENT"
    DELETE_ATTACHMENT = "DELETE_ATTACHMENT"
    UPDATE_STATUS = "UPDATE_STATUS"
    UPDATE_SEASON_NAME = "UPDATE_SEASON_NAME"
    UPDATE_SEASON_BUYER = "UPDATE_SEASON_BUYER"


# ============================================================================
# Pydantic Models (for API/validation)
# ============================================================================


class ActivityCreate(BaseModel):
    """An activity entry waiting to be recorded."""

    season_id: str
    actor_id: str
    action: ActivityAction
    details: str = ""
    task_id: str | None = None
    task_name: str | None = None


class ActivityLog(ActivityCreate):
    """Complete activity entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime


# ============================================================================
# SQLAlchemy Models (for database)
# ============================================================================


class ActivityLogModel(Base):
    """SQLAlchemy model for activity_logs table."""

    __tablename__ = "activity_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    season_id: Mapped[str] = mapped_column(String, nullable=False)
    task_id: Mapped[str | None] = mapped_column(String, nullable=True)
    task_name: Mapped[str | None] = mapped_column(String, nullable=True)
    actor_id: Mapped[str] = mapped_column(String, nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    details: Mapped[str] = mapped_column(Text, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (Index("idx_activity_logs_season", "season_id", "created_at"),)
