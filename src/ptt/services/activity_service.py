"""
Activity and notification log service.

Both logs are append-only and best-effort: a failure to write an entry is
logged and swallowed so it never aborts the change it describes. Callers
write entries only after their own change has been committed, and after
building their return values: a failed write rolls the session back and
expires every loaded instance.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ptt.models import (
    ActivityAction,
    ActivityCreate,
    ActivityLog,
    ActivityLogModel,
    DeliveryStatus,
    NotificationLog,
    NotificationLogModel,
    TaskEntry,
)

logger = logging.getLogger(__name__)


def build_activity(
    season_id: str,
    actor_id: str,
    action: ActivityAction,
    details: str,
    task: TaskEntry | None = None,
) -> ActivityCreate:
    """Build an activity entry; task entries are labelled 'ORDER - Name'."""
    return ActivityCreate(
        season_id=season_id,
        actor_id=actor_id,
        action=action,
        details=details,
        task_id=task.id if task else None,
        task_name=task.label if task else None,
    )


async def record_activities(session: AsyncSession, entries: list[ActivityCreate]) -> bool:
    """
    Append activity entries in one commit.

    Returns:
        True if written, False if the write failed (already logged)
    """
    if not entries:
        return True

    for entry in entries:
        session.add(ActivityLogModel(**entry.model_dump()))

    try:
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to record %d activity entries", len(entries))
        return False

    for entry in entries:
        if entry.task_name:
            logger.info("Activity logged for task '%s': %s", entry.task_name, entry.action)
        else:
            logger.info("Activity logged: %s", entry.action)
    return True


async def record_activity(
    session: AsyncSession,
    season_id: str,
    actor_id: str,
    action: ActivityAction,
    details: str,
    task: TaskEntry | None = None,
) -> bool:
    """Append a single activity entry (best-effort)."""
    entry = build_activity(season_id, actor_id, action, details, task)
    return await record_activities(session, [entry])


async def list_activity(
    session: AsyncSession,
    season_id: str,
    limit: int = 100,
) -> list[ActivityLog]:
    """Most recent activity entries for a season, newest first."""
    result = await session.execute(
        select(ActivityLogModel)
        .where(ActivityLogModel.season_id == season_id)
        .order_by(ActivityLogModel.created_at.desc(), ActivityLogModel.id.desc())
        .limit(limit)
    )
    return [ActivityLog.model_validate(row) for row in result.scalars().all()]


@dataclass
class NotificationAttempt:
    """One notification attempt, waiting to be logged."""

    season_id: str
    recipients: list[str]
    subject: str
    status: DeliveryStatus
    error: str | None = None


async def record_notifications(
    session: AsyncSession,
    attempts: list[NotificationAttempt],
) -> bool:
    """
    Append notification attempts in one commit.

    Returns:
        True if written, False if the write failed (already logged)
    """
    if not attempts:
        return True

    for attempt in attempts:
        session.add(
            NotificationLogModel(
                season_id=attempt.season_id,
                recipients=attempt.recipients,
                subject=attempt.subject,
                status=attempt.status.value,
                error=attempt.error,
            )
        )

    try:
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to record %d notification attempts", len(attempts))
        return False
    return True


async def list_notifications(session: AsyncSession, season_id: str) -> list[NotificationLog]:
    """Notification attempts for a season, oldest first."""
    result = await session.execute(
        select(NotificationLogModel)
        .where(NotificationLogModel.season_id == season_id)
        .order_by(NotificationLogModel.id)
    )
    return [NotificationLog.model_validate(row) for row in result.scalars().all()]
