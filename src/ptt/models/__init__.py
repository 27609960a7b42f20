"""
Production Timeline Tracker Models.

Exports all Pydantic and SQLAlchemy models for easy importing.
"""

# Activity
from .activity import ActivityAction, ActivityCreate, ActivityLog, ActivityLogModel

# Actor
from .actor import Actor

# Base
from .base import Base, TimestampMixin

# Notification
from .notification import DeliveryStatus, NotificationLog, NotificationLogModel

# Season
from .season import (
    Season,
    SeasonCreate,
    SeasonModel,
    SeasonStatus,
    SeasonUpdate,
    StatusChangeResult,
)

# Snapshot
from .snapshot import (
    Attachment,
    AttachmentCreate,
    ComputedDates,
    SeasonSnapshot,
    SeasonSnapshotModel,
    TaskEntry,
    TaskEntryStatus,
    TaskEntryUpdate,
)

# Template
from .template import (
    ORDER_CODE_PATTERN,
    TaskTemplate,
    TaskTemplateBase,
    TaskTemplateCreate,
    TaskTemplateModel,
    TaskTemplateUpdate,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Actor
    "Actor",
    # Template
    "ORDER_CODE_PATTERN",
    "TaskTemplate",
    "TaskTemplateBase",
    "TaskTemplateCreate",
    "TaskTemplateUpdate",
    "TaskTemplateModel",
    # Season
    "Season",
    "SeasonCreate",
    "SeasonUpdate",
    "SeasonStatus",
    "SeasonModel",
    "StatusChangeResult",
    # Snapshot
    "Attachment",
    "AttachmentCreate",
    "ComputedDates",
    "SeasonSnapshot",
    "SeasonSnapshotModel",
    "TaskEntry",
    "TaskEntryStatus",
    "TaskEntryUpdate",
    # Activity
    "ActivityAction",
    "ActivityCreate",
    "ActivityLog",
    "ActivityLogModel",
    # Notification
    "DeliveryStatus",
    "NotificationLog",
    "NotificationLogModel",
]
