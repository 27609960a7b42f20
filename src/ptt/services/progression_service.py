"""
Task progression service.

The completion transaction: apply a caller's change to one task entry,
re-derive the schedule and attention of the whole season, notify departments
whose work just became actionable, and close the season once every entry is
done.

The change itself is applied by the pure `apply_task_update`, which validates
everything before touching the entry. `update_task_and_progress` wraps it with
loading, persistence and side effects.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from ptt.errors import ForbiddenError, NotFoundError, ValidationError
from ptt.models import (
    ActivityAction,
    Actor,
    DeliveryStatus,
    Season,
    SeasonModel,
    SeasonSnapshot,
    SeasonStatus,
    TaskEntry,
    TaskEntryStatus,
    TaskEntryUpdate,
)
from ptt.services.activity_service import (
    NotificationAttempt,
    build_activity,
    record_activities,
    record_notifications,
)
from ptt.services.attention import attention_for_season, index_by_order, newly_actionable
from ptt.services.date_propagation import PropagationResult, propagate_dates
from ptt.services.notifiers import LoggingNotifier, NotificationConfig, Notifier
from ptt.services.season_service import get_season_model
from ptt.services.snapshot_service import (
    check_can_act,
    commit_snapshot,
    get_snapshot_model,
    store_tasks,
)
from ptt.settings import Settings, get_settings
from ptt.utils.dates import format_display_date, parse_completion_date, same_day

logger = logging.getLogger(__name__)

NO_CHANGES_MESSAGE = "No changes detected in task."


@dataclass
class AppliedUpdate:
    """What apply_task_update changed on a task entry."""

    task: TaskEntry
    newly_completed: bool = False
    changes: list[tuple[ActivityAction, str]] = field(default_factory=list)

    @property
    def has_changed(self) -> bool:
        return bool(self.changes)


@dataclass
class TaskUpdateResult:
    """Outcome of update_task_and_progress."""

    has_changed: bool
    message: str = NO_CHANGES_MESSAGE
    task: TaskEntry | None = None
    season: Season | None = None
    snapshot: SeasonSnapshot | None = None
    season_closed: bool = False
    propagation: PropagationResult | None = None
    notifications: list[NotificationAttempt] = field(default_factory=list)


# ============================================================================
# Pure core
# ============================================================================


def _display(value) -> str:
    return format_display_date(value) if value else "none"


def _check_predecessors(task: TaskEntry, tasks: Sequence[TaskEntry]) -> None:
    by_order = index_by_order(tasks)
    for code in task.preceding:
        predecessor = by_order.get(code)
        if predecessor is None:
            raise ValidationError(
                f"Cannot complete task. Preceding task '{code}' does not exist in this season."
            )
        if predecessor.status != TaskEntryStatus.COMPLETED:
            raise ValidationError(
                f"Cannot complete task. Preceding task '{predecessor.name}' "
                f"({predecessor.order}) is not done."
            )


def apply_task_update(
    actor: Actor,
    tasks: Sequence[TaskEntry],
    task_id: str,
    update: TaskEntryUpdate,
    elevated_roles: list[str],
) -> AppliedUpdate:
    """
    Apply remarks and completion changes to one entry.

    Every check runs before the entry is mutated, so a raised error leaves
    `tasks` untouched.

    Args:
        actor: Who is making the change
        tasks: All entries of the snapshot
        task_id: Entry to change
        update: Requested changes; None fields are left alone
        elevated_roles: Roles allowed to amend completed entries

    Returns:
        AppliedUpdate listing one (action, details) pair per change

    Raises:
        NotFoundError: If no entry has this id
        ForbiddenError: If the actor may not change the entry
        ValidationError: On a malformed date or an incomplete predecessor
    """
    task = next((t for t in tasks if t.id == task_id), None)
    if task is None:
        raise NotFoundError(f"Task {task_id} not found in snapshot")

    check_can_act(actor, task, elevated_roles)

    remarks_changed = update.remarks is not None and update.remarks != task.remarks

    new_completion = None
    if update.actual_completion is not None:
        parsed = parse_completion_date(update.actual_completion)
        if not same_day(parsed, task.actual_completion):
            if task.is_completed and not actor.has_role(elevated_roles):
                raise ForbiddenError(
                    f"Task '{task.label}' is already completed. "
                    "Only elevated users can change its completion date."
                )
            _check_predecessors(task, tasks)
            new_completion = parsed

    applied = AppliedUpdate(task=task)

    if remarks_changed:
        applied.changes.append(
            (
                ActivityAction.UPDATE_REMARKS,
                f'Remarks for task "{task.name}" updated from '
                f'"{task.remarks or "none"}" to "{update.remarks}".',
            )
        )
        task.remarks = update.remarks

    if new_completion is not None:
        applied.changes.append(
            (
                ActivityAction.UPDATE_COMPLETION_DATE,
                f'Actual completion for task "{task.name}" updated from '
                f'"{_display(task.actual_completion)}" to "{_display(new_completion)}".',
            )
        )
        applied.newly_completed = not task.is_completed
        task.actual_completion = new_completion
        task.status = TaskEntryStatus.COMPLETED

    return applied


# ============================================================================
# Notifications
# ============================================================================


def _actionable_message(notifier: Notifier, season: SeasonModel, task: TaskEntry) -> tuple[str, str]:
    subject = f'Action Required: Task "{task.name}" for Season {season.name}'
    body = (
        "Hello,\n\n"
        "A new task now requires your department's attention for the season: "
        f"{season.name}.\n"
        f"Task: {task.name}\n"
        f"View the season details: {notifier.season_url(season.id)}\n"
    )
    return subject, body


async def notify_newly_actionable(
    notifier: Notifier,
    season: SeasonModel,
    tasks: Sequence[TaskEntry],
    completed: TaskEntry,
) -> list[NotificationAttempt]:
    """
    Tell the responsible departments about entries `completed` just unblocked.

    Never raises; each failure is logged and reported as a FAILED attempt.
    """
    attempts = []
    for task in newly_actionable(tasks, completed):
        subject, body = _actionable_message(notifier, season, task)
        try:
            status = await notifier.notify(list(task.responsible), subject, body)
            error = None
        except Exception as e:
            logger.exception("Error notifying %s about task %s", task.responsible, task.order)
            status, error = DeliveryStatus.FAILED, str(e)

        attempts.append(
            NotificationAttempt(
                season_id=season.id,
                recipients=list(task.responsible),
                subject=subject,
                status=status,
                error=error,
            )
        )
    return attempts


# ============================================================================
# Transaction
# ============================================================================


async def update_task_and_progress(
    session: AsyncSession,
    actor: Actor,
    season_id: str,
    task_id: str,
    update: TaskEntryUpdate,
    *,
    notifier: Notifier | None = None,
    settings: Settings | None = None,
) -> TaskUpdateResult:
    """
    Change one task entry and bring the season back to a consistent state.

    Args:
        session: Database session
        actor: Who is making the change
        season_id: Season holding the entry
        task_id: Entry to change
        update: Remarks and/or actual completion date
        notifier: Transport for "task now actionable" messages
            (defaults to LoggingNotifier configured from settings)
        settings: Overrides get_settings()

    Returns:
        TaskUpdateResult; has_changed is False when nothing differed

    Raises:
        NotFoundError: If the season, snapshot or entry does not exist
        ForbiddenError: If the season is not Open or the actor may not act
        ValidationError: On a malformed date or an incomplete predecessor
        ConcurrentUpdateError: If the snapshot changed since it was loaded
    """
    settings = settings or get_settings()
    notifier = notifier or LoggingNotifier(NotificationConfig.from_settings(settings))

    season = await get_season_model(session, season_id)
    status = SeasonStatus(season.status)
    if status != SeasonStatus.OPEN:
        raise ForbiddenError(f"Tasks cannot be updated. Season status is '{status.value}'.")

    model = await get_snapshot_model(session, season_id)
    snapshot = SeasonSnapshot.model_validate(model)

    applied = apply_task_update(actor, snapshot.tasks, task_id, update, settings.elevated_roles)
    if not applied.has_changed:
        return TaskUpdateResult(
            has_changed=False,
            task=applied.task,
            season=Season.model_validate(season),
            snapshot=snapshot,
        )

    propagation = propagate_dates(snapshot.tasks, season.created_at)

    activities = [
        build_activity(season_id, actor.id, action, details, task=applied.task)
        for action, details in applied.changes
    ]

    season_closed = all(t.is_completed for t in snapshot.tasks)
    if season_closed:
        season.status = SeasonStatus.CLOSED.value
        season.require_attention = []
        activities.append(
            build_activity(
                season_id,
                actor.id,
                ActivityAction.UPDATE_STATUS,
                f'Season status automatically updated from "{status.value}" to '
                f'"{SeasonStatus.CLOSED.value}" as all tasks are now completed.',
            )
        )
    else:
        season.require_attention = attention_for_season(status, snapshot.tasks)

    store_tasks(model, snapshot.tasks)
    await commit_snapshot(session)
    await session.refresh(model)

    if season_closed:
        logger.info("Season %s closed automatically: all tasks completed", season_id)

    attempts: list[NotificationAttempt] = []
    if applied.newly_completed:
        attempts = await notify_newly_actionable(notifier, season, snapshot.tasks, applied.task)

    result = TaskUpdateResult(
        has_changed=True,
        message="Task updated successfully.",
        task=applied.task,
        season=Season.model_validate(season),
        snapshot=SeasonSnapshot.model_validate(model),
        season_closed=season_closed,
        propagation=propagation,
        notifications=attempts,
    )

    await record_activities(session, activities)
    await record_notifications(session, attempts)
    return result
