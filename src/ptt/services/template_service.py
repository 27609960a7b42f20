"""
Task template library service.

CRUD for the season-independent template graph. Every write that touches
order codes or predecessors is gated by the graph validator, and nothing is
written when validation fails.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ptt.errors import DuplicateError, InUseError, NotFoundError
from ptt.models import (
    SeasonSnapshotModel,
    TaskTemplate,
    TaskTemplateCreate,
    TaskTemplateModel,
    TaskTemplateUpdate,
)
from ptt.services.graph_validator import order_key, validate_template_graph
from ptt.utils.ids import PREFIX_TEMPLATE, generate_entity_id


async def _get_model(session: AsyncSession, template_id: str) -> TaskTemplateModel:
    template = await session.get(TaskTemplateModel, template_id)
    if not template:
        raise NotFoundError(f"Task template {template_id} not found")
    return template


async def get_template(session: AsyncSession, template_id: str) -> TaskTemplate:
    """
    Retrieve a template by ID.

    Raises:
        NotFoundError: If the template does not exist
    """
    return TaskTemplate.model_validate(await _get_model(session, template_id))


async def get_template_by_order(session: AsyncSession, order: str) -> TaskTemplate | None:
    """Retrieve a template by its order code, or None."""
    result = await session.execute(select(TaskTemplateModel).where(TaskTemplateModel.order == order))
    template = result.scalar_one_or_none()
    return TaskTemplate.model_validate(template) if template else None


async def list_templates(
    session: AsyncSession,
    include_inactive: bool = False,
) -> list[TaskTemplate]:
    """
    List templates in order-code order (shorter codes first).

    Args:
        session: Database session
        include_inactive: Include deactivated templates

    Returns:
        Templates sorted by order code
    """
    query = select(TaskTemplateModel)
    if not include_inactive:
        query = query.where(TaskTemplateModel.is_active.is_(True))

    result = await session.execute(query)
    templates = [TaskTemplate.model_validate(t) for t in result.scalars().all()]
    return sorted(templates, key=lambda t: order_key(t.order))


async def get_template_graph(session: AsyncSession) -> dict[str, list[str]]:
    """Order code -> preceding codes for every template, active or not."""
    result = await session.execute(select(TaskTemplateModel.order, TaskTemplateModel.preceding))
    return {order: list(preceding or []) for order, preceding in result.all()}


async def templates_depending_on(session: AsyncSession, order: str) -> list[TaskTemplate]:
    """Templates that list `order` among their preceding codes."""
    result = await session.execute(select(TaskTemplateModel))
    return [
        TaskTemplate.model_validate(t)
        for t in result.scalars().all()
        if order in (t.preceding or [])
    ]


async def snapshots_referencing_order(session: AsyncSession, order: str) -> list[str]:
    """IDs of seasons whose snapshot contains a task entry with this order code."""
    result = await session.execute(
        select(SeasonSnapshotModel.season_id, SeasonSnapshotModel.tasks)
    )
    return [
        season_id
        for season_id, tasks in result.all()
        if any(entry.get("order") == order for entry in tasks or [])
    ]


async def create_template(session: AsyncSession, data: TaskTemplateCreate) -> TaskTemplate:
    """
    Create a new template.

    Raises:
        DuplicateError: If the order code is taken
        CycleError, OrderingError, MissingPrecedingError: If the graph check fails
    """
    if await get_template_by_order(session, data.order):
        raise DuplicateError(f"Task template with order code '{data.order}' already exists")

    preceding = list(dict.fromkeys(data.preceding))
    validate_template_graph(data.order, preceding, await get_template_graph(session))

    template = TaskTemplateModel(
        id=generate_entity_id(PREFIX_TEMPLATE),
        order=data.order,
        name=data.name,
        responsible=list(data.responsible),
        preceding=preceding,
        lead_time=data.lead_time,
        is_active=data.is_active,
    )
    session.add(template)
    await session.commit()
    await session.refresh(template)

    return TaskTemplate.model_validate(template)


async def update_template(
    session: AsyncSession,
    template_id: str,
    data: TaskTemplateUpdate,
) -> TaskTemplate:
    """
    Update a template.

    Order code or predecessor changes are validated against the hypothetical
    graph with this template's entry replaced.

    Raises:
        NotFoundError: If the template does not exist
        DuplicateError: If the new order code is taken
        InUseError: If renaming a code other templates depend on
        CycleError, OrderingError, MissingPrecedingError: If the graph check fails
    """
    template = await _get_model(session, template_id)
    fields = data.model_fields_set

    new_order = data.order if data.order is not None else template.order
    renaming = new_order != template.order

    if renaming:
        if await get_template_by_order(session, new_order):
            raise DuplicateError(
                f"Another task template with order code '{new_order}' already exists"
            )
        dependents = await templates_depending_on(session, template.order)
        if dependents:
            raise InUseError(
                f"Cannot change order code '{template.order}': it is a preceding task for "
                f"'{dependents[0].name}'. Remove the dependency first."
            )

    if "preceding" in fields:
        new_preceding = list(dict.fromkeys(data.preceding or []))
    else:
        new_preceding = list(template.preceding or [])

    if renaming or "preceding" in fields:
        validate_template_graph(
            new_order,
            new_preceding,
            await get_template_graph(session),
            replaces=template.order,
        )

    template.order = new_order
    template.preceding = new_preceding
    if data.name is not None:
        template.name = data.name
    if data.responsible is not None:
        template.responsible = list(data.responsible)
    if data.lead_time is not None:
        template.lead_time = data.lead_time
    if data.is_active is not None:
        template.is_active = data.is_active

    await session.commit()
    await session.refresh(template)

    return TaskTemplate.model_validate(template)


async def toggle_template_active(session: AsyncSession, template_id: str) -> TaskTemplate:
    """Flip a template's active flag. Existing seasons are unaffected."""
    template = await _get_model(session, template_id)
    template.is_active = not template.is_active

    await session.commit()
    await session.refresh(template)

    return TaskTemplate.model_validate(template)


async def delete_template(session: AsyncSession, template_id: str) -> None:
    """
    Delete a template that nothing references.

    Raises:
        NotFoundError: If the template does not exist
        InUseError: If a season snapshot or another template references it
    """
    template = await _get_model(session, template_id)

    if await snapshots_referencing_order(session, template.order):
        raise InUseError(
            "Cannot delete this template because it is already used in at least one "
            "season. Deactivate it instead."
        )

    dependents = await templates_depending_on(session, template.order)
    if dependents:
        raise InUseError(
            "Cannot delete this template because it is a preceding task for another "
            f"template (e.g., '{dependents[0].name}'). Remove the dependency first."
        )

    await session.delete(template)
    await session.commit()
