"""
Season models for the Production Timeline Tracker.

A season is one production run for a buyer. Its status drives whether any
department is asked to act on it.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class SeasonStatus(str, Enum):
    """Season lifecycle status."""

    OPEN = "Open"
    ON_HOLD = "On-Hold"
    CLOSED = "Closed"
    CANCELED = "Canceled"


# ============================================================================
# Pydantic Models (for API/validation)
# ============================================================================


class SeasonCreate(BaseModel):
    """Schema for creating a new season."""

    name: str = Field(..., min_length=1, max_length=200)
    buyer: str = Field(..., min_length=1, description="Buyer reference")
    created_by: str = Field(..., min_length=1, description="Creator reference")


class SeasonUpdate(BaseModel):
    """Schema for editing season details. Status changes go through the lifecycle."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    buyer: str | None = Field(default=None, min_length=1)


class Season(BaseModel):
    """Complete season entity."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    buyer: str
    status: SeasonStatus = SeasonStatus.OPEN
    require_attention: list[str] = Field(default_factory=list)
    created_by: str

    created_at: datetime
    updated_at: datetime


class StatusChangeResult(BaseModel):
    """Outcome of a season status change request."""

    changed: bool
    old_status: SeasonStatus
    new_status: SeasonStatus
    message: str
    season: Season


# ============================================================================
# SQLAlchemy Models (for database)
# ============================================================================


class SeasonModel(Base, TimestampMixin):
    """SQLAlchemy model for seasons table."""

    __tablename__ = "seasons"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    buyer: Mapped[str] = mapped_column(String, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default=SeasonStatus.OPEN.value)
    require_attention: Mapped[list[str]] = mapped_column(JSON, default=list)
    created_by: Mapped[str] = mapped_column(String, nullable=False)
