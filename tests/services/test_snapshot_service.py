"""
Tests for snapshot materialization, persistence and attachments.
"""

from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ptt.errors import ConcurrentUpdateError, ForbiddenError, NotFoundError
from ptt.models import (
    ActivityAction,
    Actor,
    AttachmentCreate,
    SeasonCreate,
    SeasonSnapshot,
    TaskEntryStatus,
    TaskTemplate,
    TaskTemplateCreate,
)
from ptt.models.base import Base
from ptt.services.activity_service import list_activity
from ptt.services.season_service import create_season
from ptt.services.snapshot_service import (
    add_attachment,
    check_can_act,
    commit_snapshot,
    entry_from_template,
    get_snapshot,
    get_snapshot_model,
    materialize_snapshot,
    remove_attachment,
    store_tasks,
)
from ptt.services.template_service import create_template


def template(order, preceding=None, lead_time=1, is_active=True, responsible=None):
    now = datetime(2023, 12, 1)
    return TaskTemplate(
        id=f"tpl-{order.lower()}",
        order=order,
        name=f"Template {order}",
        responsible=responsible or [f"D{order}"],
        preceding=preceding or [],
        lead_time=lead_time,
        is_active=is_active,
        created_at=now,
        updated_at=now,
    )


def test_entry_from_template_copies_fields():
    entry = entry_from_template(template("B", preceding=["A"], lead_time=4))

    assert entry.order == "B"
    assert entry.name == "Template B"
    assert entry.preceding == ["A"]
    assert entry.lead_time == 4
    assert entry.status == TaskEntryStatus.PENDING
    assert entry.source_template_active is True
    assert entry.id.startswith("task-")


def test_entry_from_template_defaults_missing_lead_time():
    entry = entry_from_template(template("A", lead_time=None), default_lead_time=3)
    assert entry.lead_time == 3


def test_inactive_template_becomes_completed_entry():
    entry = entry_from_template(template("A", is_active=False))

    assert entry.status == TaskEntryStatus.COMPLETED
    assert entry.actual_completion is None
    assert not entry.computed_dates.is_scheduled
    assert entry.source_template_active is False


def test_materialize_sorts_and_seeds_dates():
    created = datetime(2024, 1, 1)
    templates = [
        template("AA", preceding=["B"]),
        template("B", preceding=["A"], lead_time=3),
        template("A", lead_time=2, responsible=["PUR"]),
    ]

    result = materialize_snapshot(templates, created)

    assert [t.order for t in result.tasks] == ["A", "B", "AA"]
    a, b, aa = result.tasks
    assert a.computed_dates.start == created
    assert a.computed_dates.end == datetime(2024, 1, 3)
    assert not b.computed_dates.is_scheduled
    assert not aa.computed_dates.is_scheduled
    assert result.require_attention == ["PUR"]
    assert result.propagation.converged


def test_materialize_skips_inactive_templates_in_graph():
    created = datetime(2024, 1, 1)
    templates = [
        template("A", is_active=False),
        template("B", preceding=["A"], lead_time=2, responsible=["PRD"]),
    ]

    result = materialize_snapshot(templates, created)

    b = result.tasks[1]
    assert b.computed_dates.start is None
    assert b.computed_dates.end is None
    assert result.require_attention == ["PRD"]


def test_check_can_act():
    entry = entry_from_template(template("A", responsible=["PUR", "QA"]))
    elevated = ["admin", "planner"]

    check_can_act(Actor(id="u1", department="QA"), entry, elevated)
    check_can_act(Actor(id="u2", role="Planner", department="PRD"), entry, elevated)

    with pytest.raises(ForbiddenError):
        check_can_act(Actor(id="u3", department="PRD"), entry, elevated)

    with pytest.raises(ForbiddenError):
        check_can_act(Actor(id="u4"), entry, elevated)


@pytest.mark.asyncio
async def test_snapshot_is_stored_with_season(async_session):
    await create_template(
        async_session, TaskTemplateCreate(order="A", name="Sourcing", responsible=["PUR"])
    )
    season, created_snapshot = await create_season(
        async_session, SeasonCreate(name="SS24", buyer="ACME", created_by="u1")
    )

    snapshot = await get_snapshot(async_session, season.id)

    assert snapshot.id == created_snapshot.id
    assert snapshot.version == 1
    assert [t.order for t in snapshot.tasks] == ["A"]
    assert snapshot.tasks[0].computed_dates.start == season.created_at


@pytest.mark.asyncio
async def test_get_snapshot_not_found(async_session):
    with pytest.raises(NotFoundError):
        await get_snapshot(async_session, "season-missing")


@pytest.mark.asyncio
async def test_add_and_remove_attachment(async_session):
    await create_template(
        async_session, TaskTemplateCreate(order="A", name="Sourcing", responsible=["PUR"])
    )
    season, snapshot = await create_season(
        async_session, SeasonCreate(name="SS24", buyer="ACME", created_by="u1")
    )
    task_id = snapshot.tasks[0].id
    buyer = Actor(id="u2", department="PUR")

    attachment = await add_attachment(
        async_session,
        buyer,
        season.id,
        task_id,
        AttachmentCreate(filename="po.pdf", path="uploads/po.pdf", mimetype="application/pdf"),
    )

    stored = await get_snapshot(async_session, season.id)
    assert stored.version == 2
    assert [a.filename for a in stored.tasks[0].attachments] == ["po.pdf"]
    assert stored.tasks[0].attachments[0].uploaded_by == "u2"

    removed = await remove_attachment(async_session, buyer, season.id, task_id, attachment.id)
    assert removed.path == "uploads/po.pdf"

    stored = await get_snapshot(async_session, season.id)
    assert stored.tasks[0].attachments == []

    actions = [a.action for a in await list_activity(async_session, season.id)]
    assert ActivityAction.UPLOAD_ATTACHMENT in actions
    assert ActivityAction.DELETE_ATTACHMENT in actions


@pytest.mark.asyncio
async def test_attachment_requires_responsible_department(async_session):
    await create_template(
        async_session, TaskTemplateCreate(order="A", name="Sourcing", responsible=["PUR"])
    )
    season, snapshot = await create_season(
        async_session, SeasonCreate(name="SS24", buyer="ACME", created_by="u1")
    )

    with pytest.raises(ForbiddenError):
        await add_attachment(
            async_session,
            Actor(id="u3", department="PRD"),
            season.id,
            snapshot.tasks[0].id,
            AttachmentCreate(filename="x.txt", path="uploads/x.txt"),
        )


@pytest.mark.asyncio
async def test_remove_unknown_attachment(async_session, admin):
    await create_template(
        async_session, TaskTemplateCreate(order="A", name="Sourcing", responsible=["PUR"])
    )
    season, snapshot = await create_season(
        async_session, SeasonCreate(name="SS24", buyer="ACME", created_by="u1")
    )

    with pytest.raises(NotFoundError):
        await remove_attachment(async_session, admin, season.id, snapshot.tasks[0].id, "att-nope")


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Sessions on separate connections to one SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'snapshots.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


def _with_remarks(model, remarks):
    snapshot = SeasonSnapshot.model_validate(model)
    snapshot.tasks[0].remarks = remarks
    store_tasks(model, snapshot.tasks)


@pytest.mark.asyncio
async def test_stale_snapshot_write_is_rejected(session_factory):
    async with session_factory() as session:
        await create_template(
            session, TaskTemplateCreate(order="A", name="Sourcing", responsible=["PUR"])
        )
        season, _ = await create_season(
            session, SeasonCreate(name="SS24", buyer="ACME", created_by="u1")
        )

    async with session_factory() as first, session_factory() as second:
        first_model = await get_snapshot_model(first, season.id)
        second_model = await get_snapshot_model(second, season.id)

        _with_remarks(first_model, "from first")
        await commit_snapshot(first)

        _with_remarks(second_model, "from second")
        with pytest.raises(ConcurrentUpdateError):
            await commit_snapshot(second)

    async with session_factory() as session:
        stored = await get_snapshot(session, season.id)

    assert stored.version == 2
    assert stored.tasks[0].remarks == "from first"
