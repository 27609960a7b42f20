"""
Season lifecycle service.

Creates seasons (materializing their snapshot), edits season details and
drives the season status machine. Task-level changes go through
progression_service.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ptt.errors import DuplicateError, InUseError, NotFoundError
from ptt.models import (
    ActivityAction,
    Actor,
    Season,
    SeasonCreate,
    SeasonModel,
    SeasonSnapshot,
    SeasonSnapshotModel,
    SeasonStatus,
    SeasonUpdate,
    StatusChangeResult,
)
from ptt.services.activity_service import build_activity, record_activities, record_activity
from ptt.services.attention import attention_for_season
from ptt.services.snapshot_service import (
    get_snapshot,
    materialize_snapshot,
)
from ptt.services.template_service import list_templates
from ptt.settings import get_settings
from ptt.utils.dates import utcnow
from ptt.utils.ids import PREFIX_SEASON, PREFIX_SNAPSHOT, generate_entity_id

logger = logging.getLogger(__name__)


async def get_season_model(session: AsyncSession, season_id: str) -> SeasonModel:
    season = await session.get(SeasonModel, season_id)
    if not season:
        raise NotFoundError(f"Season {season_id} not found")
    return season


async def get_season(session: AsyncSession, season_id: str) -> Season:
    """
    Retrieve a season by ID.

    Raises:
        NotFoundError: If the season does not exist
    """
    return Season.model_validate(await get_season_model(session, season_id))


async def _name_taken(session: AsyncSession, name: str, exclude_id: str | None = None) -> bool:
    query = select(SeasonModel.id).where(SeasonModel.name == name)
    if exclude_id:
        query = query.where(SeasonModel.id != exclude_id)
    result = await session.execute(query)
    return result.first() is not None


async def create_season(session: AsyncSession, data: SeasonCreate) -> tuple[Season, SeasonSnapshot]:
    """
    Create an Open season and its snapshot of the template library.

    Args:
        session: Database session
        data: Season creation data

    Returns:
        (season, snapshot) with initial computed dates and attention

    Raises:
        DuplicateError: If the season name is taken
    """
    if await _name_taken(session, data.name):
        raise DuplicateError(f"Season with name '{data.name}' already exists.")

    created_at = utcnow()
    templates = await list_templates(session, include_inactive=True)
    materialized = materialize_snapshot(
        templates, created_at, default_lead_time=get_settings().default_lead_time
    )

    season = SeasonModel(
        id=generate_entity_id(PREFIX_SEASON),
        name=data.name,
        buyer=data.buyer,
        status=SeasonStatus.OPEN.value,
        require_attention=materialized.require_attention,
        created_by=data.created_by,
        created_at=created_at,
        updated_at=created_at,
    )
    session.add(season)
    await session.flush()

    snapshot = SeasonSnapshotModel(
        id=generate_entity_id(PREFIX_SNAPSHOT),
        season_id=season.id,
        tasks=[t.model_dump(mode="json") for t in materialized.tasks],
    )
    session.add(snapshot)

    await session.commit()
    await session.refresh(season)
    await session.refresh(snapshot)

    logger.info(
        "Created season %s (%s) with %d task entries", season.id, season.name, len(materialized.tasks)
    )
    created_season = Season.model_validate(season)
    created_snapshot = SeasonSnapshot.model_validate(snapshot)

    await record_activity(
        session,
        created_season.id,
        data.created_by,
        ActivityAction.CREATE_SEASON,
        f'Season "{created_season.name}" created with {len(materialized.tasks)} tasks.',
    )

    return created_season, created_snapshot


async def list_seasons(
    session: AsyncSession,
    status: SeasonStatus | None = None,
    require_attention: list[str] | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Season]:
    """
    List seasons, newest first.

    Args:
        session: Database session
        status: Only seasons in this status
        require_attention: Only seasons where all these departments need to act
        limit: Maximum results
        offset: Results to skip

    Returns:
        Matching seasons
    """
    query = select(SeasonModel).order_by(SeasonModel.created_at.desc())
    if status:
        query = query.where(SeasonModel.status == status.value)

    result = await session.execute(query)
    seasons = [Season.model_validate(s) for s in result.scalars().all()]

    if require_attention:
        wanted = set(require_attention)
        seasons = [s for s in seasons if wanted.issubset(s.require_attention)]

    return seasons[offset : offset + limit]


async def update_season_details(
    session: AsyncSession,
    actor: Actor,
    season_id: str,
    data: SeasonUpdate,
) -> Season:
    """
    Rename a season or change its buyer.

    Raises:
        NotFoundError: If the season does not exist
        DuplicateError: If the new name is taken
    """
    season = await get_season_model(session, season_id)
    activities = []

    if data.name is not None and data.name != season.name:
        if await _name_taken(session, data.name, exclude_id=season_id):
            raise DuplicateError(f"Season with name '{data.name}' already exists.")
        season.name = data.name
        activities.append(
            build_activity(
                season_id,
                actor.id,
                ActivityAction.UPDATE_SEASON_NAME,
                f'Season name changed to "{data.name}"',
            )
        )

    if data.buyer is not None and data.buyer != season.buyer:
        season.buyer = data.buyer
        activities.append(
            build_activity(
                season_id,
                actor.id,
                ActivityAction.UPDATE_SEASON_BUYER,
                f'Season buyer changed to "{data.buyer}"',
            )
        )

    if not activities:
        return Season.model_validate(season)

    await session.commit()
    await session.refresh(season)
    updated = Season.model_validate(season)

    await record_activities(session, activities)
    return updated


async def update_season_status(
    session: AsyncSession,
    actor: Actor,
    season_id: str,
    new_status: SeasonStatus,
) -> StatusChangeResult:
    """
    Move a season to a new status.

    Leaving Open clears require_attention. Entering Open re-derives it from the
    current snapshot instead of restoring the value from before the hold.
    Requesting the current status is reported as a no-op.

    Raises:
        NotFoundError: If the season does not exist
    """
    season = await get_season_model(session, season_id)
    old_status = SeasonStatus(season.status)

    if old_status == new_status:
        return StatusChangeResult(
            changed=False,
            old_status=old_status,
            new_status=new_status,
            message="Status is already set to the requested value.",
            season=Season.model_validate(season),
        )

    if new_status == SeasonStatus.OPEN:
        snapshot = await get_snapshot(session, season_id)
        season.require_attention = attention_for_season(new_status, snapshot.tasks)
    else:
        season.require_attention = []
    season.status = new_status.value

    await session.commit()
    await session.refresh(season)

    logger.info("Season %s status %s -> %s", season_id, old_status.value, new_status.value)
    result = StatusChangeResult(
        changed=True,
        old_status=old_status,
        new_status=new_status,
        message=f"Season status updated to {new_status.value}.",
        season=Season.model_validate(season),
    )

    await record_activity(
        session,
        season_id,
        actor.id,
        ActivityAction.UPDATE_STATUS,
        f'Season status updated from "{old_status.value}" to "{new_status.value}".',
    )
    return result


async def delete_season(session: AsyncSession, season_id: str) -> None:
    """
    Delete a season whose snapshot holds no tasks.

    Raises:
        NotFoundError: If the season does not exist
        InUseError: If the season still has tasks
    """
    season = await get_season_model(session, season_id)

    result = await session.execute(
        select(SeasonSnapshotModel).where(SeasonSnapshotModel.season_id == season_id)
    )
    snapshot = result.scalar_one_or_none()
    if snapshot is not None and snapshot.tasks:
        raise InUseError(
            "Cannot delete season with tasks. Change its status to Canceled or Closed instead."
        )

    if snapshot is not None:
        await session.delete(snapshot)
    await session.delete(season)
    await session.commit()
