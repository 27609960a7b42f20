"""
Attention tracking: which departments have actionable work right now.

A task is ready when it is pending and every predecessor is completed. A
department needs attention when it is responsible for at least one ready task.
"""

from collections.abc import Sequence

from ptt.models import SeasonStatus, TaskEntry, TaskEntryStatus


def index_by_order(tasks: Sequence[TaskEntry]) -> dict[str, TaskEntry]:
    return {t.order: t for t in tasks}


def predecessors_completed(task: TaskEntry, by_order: dict[str, TaskEntry]) -> bool:
    """True if every preceding code resolves to a completed entry."""
    for code in task.preceding:
        predecessor = by_order.get(code)
        if predecessor is None or predecessor.status != TaskEntryStatus.COMPLETED:
            return False
    return True


def is_ready(task: TaskEntry, by_order: dict[str, TaskEntry]) -> bool:
    """Pending with all predecessors completed."""
    return task.status == TaskEntryStatus.PENDING and predecessors_completed(task, by_order)


def ready_tasks(tasks: Sequence[TaskEntry]) -> list[TaskEntry]:
    by_order = index_by_order(tasks)
    return [t for t in tasks if is_ready(t, by_order)]


def compute_attention(tasks: Sequence[TaskEntry]) -> list[str]:
    """
    Derive the set of departments with currently-actionable work.

    Always a fresh set; never merged with a previous value.

    Returns:
        Sorted department codes
    """
    departments: set[str] = set()
    for task in ready_tasks(tasks):
        departments.update(code for code in task.responsible if code)
    return sorted(departments)


def attention_for_season(status: SeasonStatus, tasks: Sequence[TaskEntry]) -> list[str]:
    """Seasons that are not Open never require attention."""
    if status != SeasonStatus.OPEN:
        return []
    return compute_attention(tasks)


def newly_actionable(tasks: Sequence[TaskEntry], completed: TaskEntry) -> list[TaskEntry]:
    """
    Pending entries unblocked by completing `completed`.

    An entry qualifies when it lists `completed` as a predecessor and all of its
    predecessors are now completed.
    """
    by_order = index_by_order(tasks)
    return [
        t
        for t in tasks
        if t.id != completed.id and completed.order in t.preceding and is_ready(t, by_order)
    ]
