"""
Season snapshot service.

Builds the per-season task list from the template library, and loads and
stores snapshots with optimistic version checks. Attachment metadata on task
entries is managed here as well; the files themselves live elsewhere.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from ptt.errors import ConcurrentUpdateError, ForbiddenError, NotFoundError
from ptt.models import (
    ActivityAction,
    Actor,
    Attachment,
    AttachmentCreate,
    ComputedDates,
    SeasonSnapshot,
    SeasonSnapshotModel,
    TaskEntry,
    TaskEntryStatus,
    TaskTemplate,
)
from ptt.services.activity_service import record_activity
from ptt.services.attention import compute_attention
from ptt.services.date_propagation import PropagationResult, propagate_dates
from ptt.services.graph_validator import order_key
from ptt.settings import get_settings
from ptt.utils.dates import utcnow
from ptt.utils.ids import PREFIX_ATTACHMENT, PREFIX_TASK, generate_entity_id

logger = logging.getLogger(__name__)


@dataclass
class MaterializedSnapshot:
    """Task entries for a new season, with seeded dates and attention."""

    tasks: list[TaskEntry]
    require_attention: list[str]
    propagation: PropagationResult


# ============================================================================
# Materialization
# ============================================================================


def entry_from_template(template: TaskTemplate, default_lead_time: int = 1) -> TaskEntry:
    """
    Copy one template into a task entry.

    Inactive templates become entries that are already completed and never
    scheduled, which takes them out of the live graph.
    """
    lead_time = template.lead_time if template.lead_time is not None else default_lead_time

    return TaskEntry(
        id=generate_entity_id(PREFIX_TASK),
        order=template.order,
        name=template.name,
        responsible=list(template.responsible),
        preceding=list(template.preceding),
        lead_time=lead_time,
        status=TaskEntryStatus.PENDING if template.is_active else TaskEntryStatus.COMPLETED,
        computed_dates=ComputedDates(),
        source_template_active=template.is_active,
    )


def materialize_snapshot(
    templates: Sequence[TaskTemplate],
    season_created_at: datetime,
    default_lead_time: int = 1,
) -> MaterializedSnapshot:
    """
    Convert the template library into a season's task entries.

    This is the only point where templates influence a season; later template
    edits never reach existing snapshots.

    Args:
        templates: All templates, active and inactive
        season_created_at: Season creation timestamp
        default_lead_time: Lead time for templates that carry none

    Returns:
        MaterializedSnapshot with initial computed dates and attention
    """
    ordered = sorted(templates, key=lambda t: order_key(t.order))
    tasks = [entry_from_template(t, default_lead_time) for t in ordered]

    propagation = propagate_dates(tasks, season_created_at)
    require_attention = compute_attention(tasks)
    logger.debug(
        "Materialized %d task entries (%d passes), attention: %s",
        len(tasks),
        propagation.passes,
        require_attention,
    )

    return MaterializedSnapshot(
        tasks=tasks,
        require_attention=require_attention,
        propagation=propagation,
    )


# ============================================================================
# Persistence
# ============================================================================


async def get_snapshot_model(session: AsyncSession, season_id: str) -> SeasonSnapshotModel:
    """
    Load the snapshot row for a season.

    Raises:
        NotFoundError: If the season has no snapshot
    """
    result = await session.execute(
        select(SeasonSnapshotModel).where(SeasonSnapshotModel.season_id == season_id)
    )
    snapshot = result.scalar_one_or_none()
    if not snapshot:
        raise NotFoundError(f"Season snapshot for season {season_id} not found")
    return snapshot


async def get_snapshot(session: AsyncSession, season_id: str) -> SeasonSnapshot:
    """Load a season's snapshot with its task entries."""
    return SeasonSnapshot.model_validate(await get_snapshot_model(session, season_id))


def store_tasks(snapshot: SeasonSnapshotModel, tasks: Sequence[TaskEntry]) -> None:
    """Write task entries back onto the row (a new list, so the change is tracked)."""
    snapshot.tasks = [t.model_dump(mode="json") for t in tasks]


async def commit_snapshot(session: AsyncSession) -> None:
    """
    Commit pending changes, turning a lost version race into a typed error.

    Raises:
        ConcurrentUpdateError: If the snapshot changed since it was loaded
    """
    try:
        await session.commit()
    except StaleDataError as e:
        await session.rollback()
        raise ConcurrentUpdateError(
            "The season was modified by someone else. Reload and try again."
        ) from e


# ============================================================================
# Attachments
# ============================================================================


def check_can_act(actor: Actor, task: TaskEntry, elevated_roles: list[str]) -> None:
    """
    Elevated roles may act on any task; others only on their department's tasks.

    Raises:
        ForbiddenError: If the actor may not change this task
    """
    if actor.has_role(elevated_roles):
        return
    if actor.department and actor.department in task.responsible:
        return
    raise ForbiddenError(f"User not authorized to update task '{task.label}'")


def _find_task(snapshot: SeasonSnapshot, task_id: str) -> TaskEntry:
    task = snapshot.find_task(task_id)
    if task is None:
        raise NotFoundError(f"Task {task_id} not found in snapshot")
    return task


async def add_attachment(
    session: AsyncSession,
    actor: Actor,
    season_id: str,
    task_id: str,
    data: AttachmentCreate,
) -> Attachment:
    """
    Register an uploaded file on a task entry.

    Raises:
        NotFoundError: If the snapshot or task does not exist
        ForbiddenError: If the actor may not change this task
        ConcurrentUpdateError: If the snapshot changed meanwhile
    """
    model = await get_snapshot_model(session, season_id)
    snapshot = SeasonSnapshot.model_validate(model)
    task = _find_task(snapshot, task_id)
    check_can_act(actor, task, get_settings().elevated_roles)

    attachment = Attachment(
        id=generate_entity_id(PREFIX_ATTACHMENT),
        filename=data.filename,
        path=data.path,
        mimetype=data.mimetype,
        uploaded_at=utcnow(),
        uploaded_by=actor.id,
    )
    task.attachments.append(attachment)

    store_tasks(model, snapshot.tasks)
    await commit_snapshot(session)

    await record_activity(
        session,
        season_id,
        actor.id,
        ActivityAction.UPLOAD_ATTACHMENT,
        f"File: {attachment.filename}",
        task=task,
    )
    return attachment


async def remove_attachment(
    session: AsyncSession,
    actor: Actor,
    season_id: str,
    task_id: str,
    attachment_id: str,
) -> Attachment:
    """
    Remove attachment metadata from a task entry.

    Returns:
        The removed attachment, so the caller can delete the stored file

    Raises:
        NotFoundError: If the snapshot, task or attachment does not exist
        ForbiddenError: If the actor may not change this task
    """
    model = await get_snapshot_model(session, season_id)
    snapshot = SeasonSnapshot.model_validate(model)
    task = _find_task(snapshot, task_id)
    check_can_act(actor, task, get_settings().elevated_roles)

    for index, attachment in enumerate(task.attachments):
        if attachment.id == attachment_id:
            break
    else:
        raise NotFoundError(f"Attachment {attachment_id} not found")

    removed = task.attachments.pop(index)

    store_tasks(model, snapshot.tasks)
    await commit_snapshot(session)

    await record_activity(
        session,
        season_id,
        actor.id,
        ActivityAction.DELETE_ATTACHMENT,
        f"File: {removed.filename}",
        task=task,
    )
    return removed
