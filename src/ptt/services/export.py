"""
Export service for exporting seasons to JSON/JSONL.

Produces the season header and one row per task entry, with display-formatted
dates and the schedule variance of completed entries.
"""

import json
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from ptt.models import TaskEntry
from ptt.services.season_service import get_season
from ptt.services.snapshot_service import get_snapshot
from ptt.utils.dates import format_display_date, utcnow


def _days(n: int) -> str:
    return f"{n} day{'s' if n > 1 else ''}"


def schedule_variance(actual: datetime | None, planned_end: datetime | None) -> str:
    """
    Compare an actual completion with the planned end, ignoring time of day.

    Returns:
        "Saves N day(s)", "Over N day(s)", "On Time", or "N/A" when either
        date is missing
    """
    if actual is None or planned_end is None:
        return "N/A"

    diff = (actual.date() - planned_end.date()).days
    if diff < 0:
        return f"Saves {_days(-diff)}"
    if diff > 0:
        return f"Over {_days(diff)}"
    return "On Time"


def task_row(task: TaskEntry) -> dict:
    """Flatten one task entry into an export row."""
    return {
        "order": task.order,
        "name": task.name,
        "responsible": ", ".join(task.responsible),
        "lead_time": task.lead_time,
        "preceding": ", ".join(task.preceding),
        "status": task.status.value,
        "start": format_display_date(task.computed_dates.start),
        "end": format_display_date(task.computed_dates.end),
        "actual_completion": format_display_date(task.actual_completion),
        "variance": schedule_variance(task.actual_completion, task.computed_dates.end),
        "has_attachments": bool(task.attachments),
        "remarks": task.remarks or "",
    }


async def export_season(session: AsyncSession, season_id: str, format: str = "json") -> str:
    """
    Export a season and its task entries to JSON or JSONL.

    Args:
        session: Database session
        season_id: Season to export
        format: Output format (json or jsonl)

    Returns:
        Serialized season as string

    Raises:
        ValueError: If format is unknown
        NotFoundError: If the season doesn't exist
    """
    if format not in ("json", "jsonl"):
        raise ValueError(f"Unknown format: {format}. Use 'json' or 'jsonl'")

    season = await get_season(session, season_id)
    snapshot = await get_snapshot(session, season_id)

    header = {
        "name": season.name,
        "buyer": season.buyer,
        "status": season.status.value,
        "require_attention": season.require_attention,
        "created_at": season.created_at.strftime("%d-%b-%Y"),
        "exported_at": utcnow().strftime("%d-%b-%Y %H:%M"),
    }
    rows = [task_row(t) for t in snapshot.tasks]

    if format == "json":
        return json.dumps({**header, "tasks": rows}, indent=2)

    # One JSON object per line
    lines = [json.dumps({"type": "season", **header})]
    lines.extend(json.dumps({"type": "task", **row}) for row in rows)
    return "\n".join(lines)
