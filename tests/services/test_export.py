"""
Tests for season export.
"""

import json
from datetime import datetime

import pytest

from ptt.errors import NotFoundError
from ptt.models import SeasonCreate, TaskEntryUpdate, TaskTemplateCreate
from ptt.services.export import export_season, schedule_variance, task_row
from ptt.services.progression_service import update_task_and_progress
from ptt.services.season_service import create_season
from ptt.services.template_service import create_template


@pytest.mark.parametrize(
    ("actual", "planned", "expected"),
    [
        (datetime(2024, 1, 3), datetime(2024, 1, 5), "Saves 2 days"),
        (datetime(2024, 1, 4, 23, 0), datetime(2024, 1, 5, 1, 0), "Saves 1 day"),
        (datetime(2024, 1, 5, 18, 0), datetime(2024, 1, 5, 9, 0), "On Time"),
        (datetime(2024, 1, 6), datetime(2024, 1, 5), "Over 1 day"),
        (datetime(2024, 1, 9), datetime(2024, 1, 5), "Over 4 days"),
        (None, datetime(2024, 1, 5), "N/A"),
        (datetime(2024, 1, 5), None, "N/A"),
    ],
)
def test_schedule_variance(actual, planned, expected):
    assert schedule_variance(actual, planned) == expected


def test_task_row_formats_dates(make_entry):
    entry = make_entry("B", preceding=["A"], responsible=["PRD", "QA"], lead_time=3)
    entry.computed_dates.start = datetime(2024, 1, 2)
    entry.computed_dates.end = datetime(2024, 1, 5)

    row = task_row(entry)

    assert row["responsible"] == "PRD, QA"
    assert row["preceding"] == "A"
    assert row["start"] == "02-Jan-24"
    assert row["end"] == "05-Jan-24"
    assert row["actual_completion"] == "N/A"
    assert row["variance"] == "N/A"
    assert row["has_attachments"] is False
    assert row["remarks"] == ""


async def exported_season(session, admin):
    await create_template(
        session, TaskTemplateCreate(order="A", name="Sourcing", responsible=["PUR"], lead_time=2)
    )
    await create_template(
        session,
        TaskTemplateCreate(order="B", name="Cutting", responsible=["PRD"], preceding=["A"]),
    )
    season, snapshot = await create_season(
        session, SeasonCreate(name="SS24", buyer="ACME", created_by="u1")
    )
    await update_task_and_progress(
        session,
        admin,
        season.id,
        snapshot.tasks[0].id,
        TaskEntryUpdate(remarks="early"),
    )
    return season


@pytest.mark.asyncio
async def test_export_json(async_session, admin):
    season = await exported_season(async_session, admin)

    data = json.loads(await export_season(async_session, season.id))

    assert data["name"] == "SS24"
    assert data["buyer"] == "ACME"
    assert data["status"] == "Open"
    assert data["require_attention"] == ["PUR"]
    assert [t["order"] for t in data["tasks"]] == ["A", "B"]
    assert data["tasks"][0]["remarks"] == "early"
    assert data["tasks"][1]["start"] == "N/A"


@pytest.mark.asyncio
async def test_export_jsonl(async_session, admin):
    season = await exported_season(async_session, admin)

    lines = (await export_season(async_session, season.id, format="jsonl")).splitlines()

    records = [json.loads(line) for line in lines]
    assert [r["type"] for r in records] == ["season", "task", "task"]
    assert records[0]["name"] == "SS24"


@pytest.mark.asyncio
async def test_export_unknown_format(async_session):
    with pytest.raises(ValueError, match="Unknown format"):
        await export_season(async_session, "season-x", format="xlsx")


@pytest.mark.asyncio
async def test_export_missing_season(async_session):
    with pytest.raises(NotFoundError):
        await export_season(async_session, "season-missing")
