"""
Task template models for the Production Timeline Tracker.

A TaskTemplate is a LIBRARY LAYER entity - season independent. Seasons copy
the template graph into their own snapshot at creation time and never read
templates again.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import JSON, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin

ORDER_CODE_PATTERN = r"^[A-Z]+$"


# ============================================================================
# Pydantic Models (for API/validation)
# ============================================================================


class TaskTemplateBase(BaseModel):
    """Base fields for template creation and updates."""

    order: str = Field(..., pattern=ORDER_CODE_PATTERN, description="Order code, e.g. 'A', 'AB'")
    name: str = Field(..., min_length=1, max_length=500)
    responsible: list[str] = Field(..., min_length=1, description="Responsible department codes")
    preceding: list[str] = Field(default_factory=list, description="Preceding order codes")
    lead_time: int = Field(default=1, ge=0, description="Lead time in calendar days")


class TaskTemplateCreate(TaskTemplateBase):
    """Schema for creating a new template."""

    is_active: bool = True


class TaskTemplateUpdate(BaseModel):
    """
    Schema for updating an existing template. All fields optional.

    An explicit `preceding=[]` clears the predecessors; omitting the field
    leaves them untouched.
    """

    order: str | None = Field(default=None, pattern=ORDER_CODE_PATTERN)
    name: str | None = Field(default=None, min_length=1, max_length=500)
    responsible: list[str] | None = Field(default=None, min_length=1)
    preceding: list[str] | None = None
    lead_time: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class TaskTemplate(BaseModel):
    """Complete template entity returned from database."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    order: str
    name: str
    responsible: list[str] = Field(default_factory=list)
    preceding: list[str] = Field(default_factory=list)
    # Legacy rows may carry no lead time; the materializer substitutes a default
    lead_time: int | None = None
    is_active: bool = True

    created_at: datetime
    updated_at: datetime


# ============================================================================
# SQLAlchemy Models (for database)
# ============================================================================


class TaskTemplateModel(Base, TimestampMixin):
    """SQLAlchemy model for task_templates table."""

    __tablename__ = "task_templates"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    order: Mapped[str] = mapped_column(String(16), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)

    responsible: Mapped[list[str]] = mapped_column(JSON, default=list)
    preceding: Mapped[list[str]] = mapped_column(JSON, default=list)

    lead_time: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
