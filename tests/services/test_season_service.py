"""
Tests for the season lifecycle service.
"""

import pytest

from ptt.errors import DuplicateError, InUseError, NotFoundError
from ptt.models import (
    ActivityAction,
    SeasonCreate,
    SeasonSnapshotModel,
    SeasonStatus,
    SeasonUpdate,
    TaskEntryStatus,
    TaskTemplateCreate,
)
from ptt.services.activity_service import list_activity
from ptt.services.season_service import (
    create_season,
    delete_season,
    get_season,
    list_seasons,
    update_season_details,
    update_season_status,
)
from ptt.services.snapshot_service import get_snapshot
from ptt.services.template_service import create_template, list_templates, toggle_template_active


async def seed_templates(session):
    await create_template(
        session, TaskTemplateCreate(order="A", name="Sourcing", responsible=["PUR"], lead_time=2)
    )
    await create_template(
        session,
        TaskTemplateCreate(
            order="B", name="Cutting", responsible=["PRD"], preceding=["A"], lead_time=3
        ),
    )


def season_data(name="SS24"):
    return SeasonCreate(name=name, buyer="ACME", created_by="u1")


@pytest.mark.asyncio
async def test_create_season_materializes_templates(async_session):
    await seed_templates(async_session)

    season, snapshot = await create_season(async_session, season_data())

    assert season.id.startswith("season-")
    assert season.status == SeasonStatus.OPEN
    assert season.require_attention == ["PUR"]
    assert [t.order for t in snapshot.tasks] == ["A", "B"]
    a, b = snapshot.tasks
    assert a.computed_dates.start == season.created_at
    assert (a.computed_dates.end - a.computed_dates.start).days == 2
    assert not b.computed_dates.is_scheduled

    activity = await list_activity(async_session, season.id)
    assert [e.action for e in activity] == [ActivityAction.CREATE_SEASON]


@pytest.mark.asyncio
async def test_create_season_with_inactive_template(async_session):
    await seed_templates(async_session)
    template_a = next(t for t in await list_templates(async_session) if t.order == "A")
    await toggle_template_active(async_session, template_a.id)

    season, snapshot = await create_season(async_session, season_data())

    a, b = snapshot.tasks
    assert a.status == TaskEntryStatus.COMPLETED
    assert a.source_template_active is False
    assert not b.computed_dates.is_scheduled
    assert season.require_attention == ["PRD"]


@pytest.mark.asyncio
async def test_template_edits_do_not_reach_existing_seasons(async_session):
    await seed_templates(async_session)
    season, _ = await create_season(async_session, season_data())

    await create_template(
        async_session, TaskTemplateCreate(order="C", name="Sewing", responsible=["PRD"])
    )

    snapshot = await get_snapshot(async_session, season.id)
    assert [t.order for t in snapshot.tasks] == ["A", "B"]


@pytest.mark.asyncio
async def test_create_season_duplicate_name(async_session):
    await create_season(async_session, season_data())

    with pytest.raises(DuplicateError):
        await create_season(async_session, season_data())


@pytest.mark.asyncio
async def test_create_season_without_templates(async_session):
    season, snapshot = await create_season(async_session, season_data())

    assert snapshot.tasks == []
    assert season.require_attention == []


@pytest.mark.asyncio
async def test_get_season_not_found(async_session):
    with pytest.raises(NotFoundError):
        await get_season(async_session, "season-missing")


@pytest.mark.asyncio
async def test_list_seasons_filters(async_session, admin):
    await seed_templates(async_session)
    s1, _ = await create_season(async_session, season_data("SS24"))
    s2, _ = await create_season(async_session, season_data("FW24"))
    await update_season_status(async_session, admin, s2.id, SeasonStatus.ON_HOLD)

    assert {s.id for s in await list_seasons(async_session)} == {s1.id, s2.id}
    assert [s.id for s in await list_seasons(async_session, status=SeasonStatus.OPEN)] == [s1.id]
    assert [s.id for s in await list_seasons(async_session, require_attention=["PUR"])] == [s1.id]
    assert await list_seasons(async_session, require_attention=["PUR", "PRD"]) == []


@pytest.mark.asyncio
async def test_status_change_clears_and_restores_attention(async_session, admin):
    await seed_templates(async_session)
    season, _ = await create_season(async_session, season_data())

    result = await update_season_status(async_session, admin, season.id, SeasonStatus.ON_HOLD)

    assert result.changed
    assert result.old_status == SeasonStatus.OPEN
    assert result.season.status == SeasonStatus.ON_HOLD
    assert result.season.require_attention == []

    result = await update_season_status(async_session, admin, season.id, SeasonStatus.OPEN)

    assert result.changed
    assert result.season.require_attention == ["PUR"]

    activity = await list_activity(async_session, season.id)
    details = [e.details for e in activity if e.action == ActivityAction.UPDATE_STATUS]
    assert 'Season status updated from "On-Hold" to "Open".' in details
    assert 'Season status updated from "Open" to "On-Hold".' in details


@pytest.mark.asyncio
async def test_same_status_is_noop(async_session, admin):
    season, _ = await create_season(async_session, season_data())

    result = await update_season_status(async_session, admin, season.id, SeasonStatus.OPEN)

    assert not result.changed
    assert result.message == "Status is already set to the requested value."
    activity = await list_activity(async_session, season.id)
    assert ActivityAction.UPDATE_STATUS not in [e.action for e in activity]


@pytest.mark.asyncio
async def test_closed_season_can_change_status(async_session, admin):
    season, _ = await create_season(async_session, season_data())
    await update_season_status(async_session, admin, season.id, SeasonStatus.CLOSED)

    result = await update_season_status(async_session, admin, season.id, SeasonStatus.CANCELED)

    assert result.changed
    assert result.old_status == SeasonStatus.CLOSED


@pytest.mark.asyncio
async def test_activity_log_failure_does_not_abort_season_changes(
    async_session, admin, failing_activity_log
):
    await seed_templates(async_session)
    season, snapshot = await create_season(async_session, season_data())
    assert season.require_attention == ["PUR"]
    assert len(snapshot.tasks) == 2

    result = await update_season_status(async_session, admin, season.id, SeasonStatus.ON_HOLD)
    assert result.season.status == SeasonStatus.ON_HOLD
    assert result.season.require_attention == []

    updated = await update_season_details(
        async_session, admin, season.id, SeasonUpdate(buyer="Globex")
    )
    assert updated.buyer == "Globex"

    stored = await get_season(async_session, season.id)
    assert stored.status == SeasonStatus.ON_HOLD
    assert stored.buyer == "Globex"
    assert await list_activity(async_session, season.id) == []


@pytest.mark.asyncio
async def test_update_season_details(async_session, admin):
    season, _ = await create_season(async_session, season_data("SS24"))
    await create_season(async_session, season_data("FW24"))

    updated = await update_season_details(
        async_session, admin, season.id, SeasonUpdate(name="SS24 Main", buyer="Globex")
    )

    assert updated.name == "SS24 Main"
    assert updated.buyer == "Globex"
    actions = [e.action for e in await list_activity(async_session, season.id)]
    assert ActivityAction.UPDATE_SEASON_NAME in actions
    assert ActivityAction.UPDATE_SEASON_BUYER in actions

    with pytest.raises(DuplicateError):
        await update_season_details(async_session, admin, season.id, SeasonUpdate(name="FW24"))


@pytest.mark.asyncio
async def test_delete_empty_season(async_session):
    season, snapshot = await create_season(async_session, season_data())

    await delete_season(async_session, season.id)

    with pytest.raises(NotFoundError):
        await get_season(async_session, season.id)
    assert await async_session.get(SeasonSnapshotModel, snapshot.id) is None


@pytest.mark.asyncio
async def test_delete_season_with_tasks_refused(async_session):
    await seed_templates(async_session)
    season, _ = await create_season(async_session, season_data())

    with pytest.raises(InUseError):
        await delete_season(async_session, season.id)


def test_season_status_values():
    assert [s.value for s in SeasonStatus] == ["Open", "On-Hold", "Closed", "Canceled"]
    assert SeasonStatus("On-Hold") is SeasonStatus.ON_HOLD
