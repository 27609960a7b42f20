"""
Pytest configuration and fixtures for the Production Timeline Tracker tests.
"""

from collections.abc import AsyncGenerator
from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ptt.models import ActivityLogModel, Actor, TaskEntry, TaskEntryStatus
from ptt.models.base import Base
from ptt.settings import clear_settings_cache

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Isolate every test from the developer's PTT_* environment."""
    monkeypatch.setenv("PTT_ENV", "local")
    monkeypatch.setenv("PTT_NOTIFICATIONS_ENABLED", "true")
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest_asyncio.fixture(scope="function")
async def async_engine():
    """Create a test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def async_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_factory = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def admin():
    return Actor(id="admin-1", role="admin", department="ADM")


@pytest.fixture
def failing_activity_log():
    """Make every activity insert violate the actor_id NOT NULL constraint."""

    def _broken(target, args, kwargs):
        kwargs["actor_id"] = None

    event.listen(ActivityLogModel, "init", _broken)
    yield
    event.remove(ActivityLogModel, "init", _broken)


@pytest.fixture
def season_start():
    return datetime(2024, 1, 1)


@pytest.fixture
def make_entry():
    """Factory for task entries used by the pure-engine tests."""
    return _make_entry


def _make_entry(
    order: str,
    preceding: list[str] | None = None,
    lead_time: int = 1,
    responsible: list[str] | None = None,
    status: TaskEntryStatus = TaskEntryStatus.PENDING,
    actual_completion: datetime | None = None,
) -> TaskEntry:
    """Build a task entry for pure-engine tests."""
    return TaskEntry(
        id=f"task-{order.lower()}",
        order=order,
        name=f"Task {order}",
        responsible=responsible if responsible is not None else [f"D{order}"],
        preceding=preceding or [],
        lead_time=lead_time,
        status=status,
        actual_completion=actual_completion,
    )
