"""
Date propagation engine.

Recomputes the planned window of every unresolved task entry from the
completion facts of its predecessors. Pure and synchronous: it mutates the
entries it is given and performs no I/O, so it is safe to call repeatedly.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from ptt.models import TaskEntry, TaskEntryStatus

logger = logging.getLogger(__name__)

# Extra passes allowed beyond one per entry before the run is declared stuck
ITERATION_SLACK = 5


@dataclass
class PropagationResult:
    """Outcome of one propagation run."""

    passes: int
    converged: bool
    changed_orders: set[str]


def iteration_ceiling(entry_count: int) -> int:
    return entry_count + ITERATION_SLACK


def ready_timestamp(
    task: TaskEntry,
    by_order: dict[str, TaskEntry],
    season_created_at: datetime,
) -> datetime | None:
    """
    When may this entry start?

    Returns:
        The season creation time for entries without predecessors, the latest
        predecessor completion when every predecessor is completed with a
        date, otherwise None (not yet schedulable).
    """
    if not task.preceding:
        return season_created_at

    latest: datetime | None = None
    for code in task.preceding:
        predecessor = by_order.get(code)
        if predecessor is None or predecessor.status != TaskEntryStatus.COMPLETED:
            return None
        # Entries skipped at season creation are completed without a date
        if predecessor.actual_completion is None:
            return None
        if latest is None or predecessor.actual_completion > latest:
            latest = predecessor.actual_completion

    return latest


def _apply(task: TaskEntry, start: datetime | None) -> bool:
    """Store a new start (and derived end). Returns True if start changed."""
    if start == task.computed_dates.start:
        return False

    task.computed_dates.start = start
    task.computed_dates.end = start + timedelta(days=task.lead_time) if start else None
    return True


def propagate_dates(
    tasks: Sequence[TaskEntry],
    season_created_at: datetime,
) -> PropagationResult:
    """
    Recompute computed_dates for every entry that is not completed.

    Passes repeat until one changes nothing or the ceiling (entry count + 5)
    is hit. Completed entries are never touched: their dates are history.

    Args:
        tasks: All entries of a snapshot (mutated in place)
        season_created_at: Season creation timestamp

    Returns:
        PropagationResult; converged is False when the ceiling was reached
        while the last pass still changed something.
    """
    by_order = {t.order: t for t in tasks}
    _warn_dangling(tasks, by_order)

    ceiling = iteration_ceiling(len(tasks))
    changed_orders: set[str] = set()
    changed = True
    passes = 0

    while changed and passes < ceiling:
        changed = False
        passes += 1

        for task in tasks:
            if task.status == TaskEntryStatus.COMPLETED:
                continue

            start = ready_timestamp(task, by_order, season_created_at)
            if _apply(task, start):
                changed = True
                changed_orders.add(task.order)

    # Ready times only read completed entries, so any snapshot settles by pass 2
    # unless the ceiling is smaller than that
    converged = not changed
    if not converged:
        logger.error(
            "Date propagation did not settle after %d passes over %d entries; "
            "check for circular or dangling preceding codes. Computed dates left as-is.",
            passes,
            len(tasks),
        )

    return PropagationResult(passes=passes, converged=converged, changed_orders=changed_orders)


def _warn_dangling(tasks: Sequence[TaskEntry], by_order: dict[str, TaskEntry]) -> None:
    for task in tasks:
        missing = [code for code in task.preceding if code not in by_order]
        if missing:
            logger.warning(
                "Task %s references unknown preceding codes %s; it cannot be scheduled",
                task.order,
                ", ".join(missing),
            )
