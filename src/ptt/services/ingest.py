"""
Ingestion service for importing a template library from a JSON file.

The whole file is validated against the existing library before anything is
written, so a bad file never leaves a half-imported graph behind.

File format::

    {
      "templates": [
        {"order": "A", "name": "Fabric sourcing", "responsible": ["PUR"], "lead_time": 5},
        {"order": "B", "name": "Cutting", "responsible": ["PRD"], "preceding": ["A"]}
      ]
    }

A bare list of template objects is accepted as well.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ptt.errors import ValidationError
from ptt.models import TaskTemplateCreate
from ptt.services.graph_validator import order_key, validate_template_graph
from ptt.services.template_service import create_template, get_template_graph

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Result of an ingestion operation."""

    template_count: int
    created_orders: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def parse_template_file(data) -> tuple[list[TaskTemplateCreate], list[str]]:
    """
    Turn raw JSON into template create requests.

    Returns:
        (templates, errors); entries with errors are left out of templates
    """
    if isinstance(data, dict):
        data = data.get("templates")
    if not isinstance(data, list):
        return [], ["Root must be a list of templates or an object with a 'templates' list"]

    templates = []
    errors = []
    for i, raw in enumerate(data):
        if not isinstance(raw, dict):
            errors.append(f"Template {i} must be an object")
            continue
        try:
            templates.append(TaskTemplateCreate.model_validate(raw))
        except PydanticValidationError as e:
            label = raw.get("order", i)
            for err in e.errors():
                loc = ".".join(str(part) for part in err["loc"])
                errors.append(f"Template {label}: {loc}: {err['msg']}")
    return templates, errors


def check_template_set(
    templates: list[TaskTemplateCreate],
    existing: dict[str, list[str]],
) -> list[str]:
    """
    Validate new templates against the existing graph and each other.

    Templates are checked in order-code order, each against the graph extended
    by the ones before it.

    Returns:
        Error messages (empty if the set can be imported)
    """
    graph = dict(existing)
    errors = []

    for template in sorted(templates, key=lambda t: order_key(t.order)):
        if template.order in graph:
            errors.append(f"Template {template.order}: order code already exists")
            continue
        preceding = list(dict.fromkeys(template.preceding))
        try:
            validate_template_graph(template.order, preceding, graph)
        except ValidationError as e:
            errors.append(f"Template {template.order}: {e}")
            continue
        graph[template.order] = preceding

    return errors


async def ingest_templates_file(
    session: AsyncSession,
    file_path: Path,
    dry_run: bool = False,
) -> IngestResult:
    """
    Import templates from a JSON file.

    Args:
        session: Database session
        file_path: Path to JSON file
        dry_run: If True, validate without creating

    Returns:
        IngestResult with counts and, for dry runs, any validation errors

    Raises:
        ValidationError: If the file is invalid (not raised on dry runs)
        FileNotFoundError: If the file doesn't exist
    """
    with open(file_path) as f:
        data = json.load(f)

    templates, errors = parse_template_file(data)
    errors.extend(check_template_set(templates, await get_template_graph(session)))

    if errors and not dry_run:
        raise ValidationError(f"Invalid template file: {'; '.join(errors)}")

    if dry_run:
        return IngestResult(template_count=len(templates), errors=errors)

    created = []
    for data in sorted(templates, key=lambda t: order_key(t.order)):
        template = await create_template(session, data)
        created.append(template.order)

    logger.info("Imported %d templates from %s", len(created), file_path)
    return IngestResult(template_count=len(created), created_orders=created)
