"""
Season snapshot models for the Production Timeline Tracker.

The snapshot is the INSTANCE LAYER: a frozen copy of the template graph taken
when the season was created, mutated afterwards only through the lifecycle
services. Preceding codes reference entries within the same snapshot.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy import JSON, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class TaskEntryStatus(str, Enum):
    """Status of a task entry within a season."""

    PENDING = "pending"
    COMPLETED = "completed"
    BLOCKED = "blocked"


# ============================================================================
# Pydantic Models (for API/validation)
# ============================================================================


class ComputedDates(BaseModel):
    """Planned window for a task entry. Both bounds are set or both are null."""

    start: datetime | None = None
    end: datetime | None = None

    @model_validator(mode="after")
    def _both_or_neither(self) -> "ComputedDates":
        if (self.start is None) != (self.end is None):
            raise ValueError("computed dates must have both start and end, or neither")
        return self

    @property
    def is_scheduled(self) -> bool:
        return self.start is not None


class Attachment(BaseModel):
    """Attachment metadata. The blob itself lives in an external store."""

    id: str
    filename: str
    path: str
    mimetype: str = "application/octet-stream"
    uploaded_at: datetime
    uploaded_by: str | None = None


class AttachmentCreate(BaseModel):
    """Schema for registering an uploaded attachment on a task entry."""

    filename: str = Field(..., min_length=1)
    path: str = Field(..., min_length=1)
    mimetype: str = "application/octet-stream"


class TaskEntry(BaseModel):
    """A single task within a season snapshot."""

    id: str
    order: str
    name: str
    responsible: list[str] = Field(default_factory=list)
    preceding: list[str] = Field(default_factory=list)
    lead_time: int = Field(default=1, ge=0)

    status: TaskEntryStatus = TaskEntryStatus.PENDING
    actual_completion: datetime | None = None
    computed_dates: ComputedDates = Field(default_factory=ComputedDates)

    remarks: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)
    source_template_active: bool = True

    @property
    def label(self) -> str:
        """Display label in the 'ORDER - Name' form used by activity entries."""
        return f"{self.order} - {self.name}"

    @property
    def is_completed(self) -> bool:
        return self.status == TaskEntryStatus.COMPLETED


class TaskEntryUpdate(BaseModel):
    """
    Fields a caller may change on a task entry.

    actual_completion is kept loosely typed so that malformed input reaches
    the lifecycle controller and is reported as a ValidationError there.
    """

    actual_completion: datetime | str | None = None
    remarks: str | None = None


class SeasonSnapshot(BaseModel):
    """Complete snapshot entity."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    season_id: str
    tasks: list[TaskEntry] = Field(default_factory=list)
    version: int = 1

    created_at: datetime
    updated_at: datetime

    def find_task(self, task_id: str) -> TaskEntry | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None


# ============================================================================
# SQLAlchemy Models (for database)
# ============================================================================


class SeasonSnapshotModel(Base, TimestampMixin):
    """
    SQLAlchemy model for season_snapshots table.

    Task entries are stored as one JSON document. `version` is the mapper's
    version counter: an UPDATE against a stale version matches no rows and
    SQLAlchemy raises StaleDataError.
    """

    __tablename__ = "season_snapshots"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    season_id: Mapped[str] = mapped_column(
        String, ForeignKey("seasons.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    tasks: Mapped[list[dict]] = mapped_column(JSON, default=list)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
