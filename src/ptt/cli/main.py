"""
Main CLI entry point for the Production Timeline Tracker admin interface.

Usage:
    ptt db init
    ptt ingest templates path/to/templates.json
    ptt season create "SS25" --buyer ACME
    ptt task complete <season-id> <task-id> 2024-01-02
"""

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path

import typer

from ptt.db.connection import close_engine, get_session_factory, init_db
from ptt.errors import PTTError
from ptt.logging_config import configure_logging
from ptt.models import (
    Actor,
    SeasonCreate,
    SeasonStatus,
    TaskEntryUpdate,
    TaskTemplateCreate,
)

# Main app
app = typer.Typer(name="ptt", help="Production Timeline Tracker Admin CLI")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    """Production Timeline Tracker Admin CLI."""
    configure_logging("DEBUG" if verbose else None)


# ============================================================================
# Session Helpers
# ============================================================================


@asynccontextmanager
async def get_async_session():
    """Session on a fresh engine, disposed when the command finishes."""
    try:
        async with get_session_factory()() as session:
            yield session
    finally:
        await close_engine()


def run_async(coro):
    """Run an async service call; tracker errors end the command with exit code 1."""
    try:
        return asyncio.run(coro)
    except PTTError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e


def actor_option(actor: str, role: str, department: str | None) -> Actor:
    return Actor(id=actor, role=role, department=department)


# ============================================================================
# Template Commands
# ============================================================================

template_app = typer.Typer(help="Task template library")
app.add_typer(template_app, name="template")


@template_app.command("create")
def template_create(
    order: str = typer.Argument(..., help="Order code (A, B, ..., Z, AA, ...)"),
    name: str = typer.Argument(..., help="Task name"),
    responsible: list[str] = typer.Option(None, "--responsible", "-r", help="Department code"),
    preceding: list[str] = typer.Option(None, "--preceding", "-p", help="Preceding order code"),
    lead_time: int = typer.Option(1, "--lead-time", "-l", help="Lead time in days"),
    inactive: bool = typer.Option(False, "--inactive", help="Create deactivated"),
):
    """Create a task template."""
    from ptt.services.template_service import create_template

    if not responsible:
        typer.echo("Provide at least one --responsible department")
        raise typer.Exit(1)

    async def _create():
        async with get_async_session() as session:
            return await create_template(
                session,
                TaskTemplateCreate(
                    order=order,
                    name=name,
                    responsible=responsible,
                    preceding=preceding or [],
                    lead_time=lead_time,
                    is_active=not inactive,
                ),
            )

    template = run_async(_create())
    typer.echo(f"Created template: {template.id}")
    typer.echo(f"  {template.order} - {template.name}")


@template_app.command("list")
def template_list(
    show_all: bool = typer.Option(False, "--all", "-a", help="Include inactive templates"),
):
    """List templates in order-code order."""
    from ptt.services.template_service import list_templates

    async def _list():
        async with get_async_session() as session:
            return await list_templates(session, include_inactive=show_all)

    templates = run_async(_list())

    if not templates:
        typer.echo("No templates found.")
        return

    for t in templates:
        marker = "●" if t.is_active else "○"
        after = f" after {', '.join(t.preceding)}" if t.preceding else ""
        typer.echo(
            f"{marker} {t.order}: {t.name} [{', '.join(t.responsible)}] "
            f"{t.lead_time}d{after} ({t.id})"
        )


@template_app.command("toggle")
def template_toggle(template_id: str = typer.Argument(..., help="Template ID")):
    """Activate or deactivate a template."""
    from ptt.services.template_service import toggle_template_active

    async def _toggle():
        async with get_async_session() as session:
            return await toggle_template_active(session, template_id)

    template = run_async(_toggle())
    state = "active" if template.is_active else "inactive"
    typer.echo(f"Template {template.order} is now {state}")


@template_app.command("delete")
def template_delete(template_id: str = typer.Argument(..., help="Template ID")):
    """Delete a template that no season or template references."""
    from ptt.services.template_service import delete_template

    async def _delete():
        async with get_async_session() as session:
            await delete_template(session, template_id)

    run_async(_delete())
    typer.echo(f"Deleted template {template_id}")


# ============================================================================
# Season Commands
# ============================================================================

season_app = typer.Typer(help="Season management")
app.add_typer(season_app, name="season")


@season_app.command("create")
def season_create(
    name: str = typer.Argument(..., help="Season name"),
    buyer: str = typer.Option(..., "--buyer", "-b", help="Buyer reference"),
    created_by: str = typer.Option("cli", "--created-by", help="Creating user"),
):
    """Create a season from the current template library."""
    from ptt.services.season_service import create_season

    async def _create():
        async with get_async_session() as session:
            return await create_season(
                session, SeasonCreate(name=name, buyer=buyer, created_by=created_by)
            )

    season, snapshot = run_async(_create())
    typer.echo(f"Created season: {season.id}")
    typer.echo(f"  Name: {season.name}")
    typer.echo(f"  Tasks: {len(snapshot.tasks)}")
    typer.echo(f"  Attention: {', '.join(season.require_attention) or '(none)'}")


@season_app.command("list")
def season_list(
    status: SeasonStatus = typer.Option(None, "--status", "-s", help="Filter by status"),
    attention: list[str] = typer.Option(None, "--attention", help="Department needing action"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum seasons to show"),
):
    """List seasons, newest first."""
    from ptt.services.season_service import list_seasons

    async def _list():
        async with get_async_session() as session:
            return await list_seasons(
                session, status=status, require_attention=attention or None, limit=limit
            )

    seasons = run_async(_list())

    if not seasons:
        typer.echo("No seasons found.")
        return

    for s in seasons:
        flag = f" needs: {', '.join(s.require_attention)}" if s.require_attention else ""
        typer.echo(f"○ {s.id}: {s.name} ({s.status.value}){flag}")


@season_app.command("show")
def season_show(season_id: str = typer.Argument(..., help="Season ID")):
    """Show a season and its timeline."""
    from ptt.services.season_service import get_season
    from ptt.services.snapshot_service import get_snapshot
    from ptt.utils.dates import format_display_date

    async def _show():
        async with get_async_session() as session:
            return await get_season(session, season_id), await get_snapshot(session, season_id)

    season, snapshot = run_async(_show())

    typer.echo(f"Season: {season.id}")
    typer.echo(f"  Name: {season.name}")
    typer.echo(f"  Buyer: {season.buyer}")
    typer.echo(f"  Status: {season.status.value}")
    typer.echo(f"  Attention: {', '.join(season.require_attention) or '(none)'}")
    typer.echo("  Tasks:")
    for t in snapshot.tasks:
        start = format_display_date(t.computed_dates.start)
        end = format_display_date(t.computed_dates.end)
        done = f" done {format_display_date(t.actual_completion)}" if t.actual_completion else ""
        typer.echo(f"    {t.order:<3} {t.status.value:<9} {start} -> {end}{done}  {t.name} ({t.id})")


@season_app.command("status")
def season_status(
    season_id: str = typer.Argument(..., help="Season ID"),
    new_status: SeasonStatus = typer.Argument(..., help="Open, On-Hold, Closed or Canceled"),
    actor: str = typer.Option("cli", "--actor", help="Acting user"),
):
    """Change a season's status."""
    from ptt.services.season_service import update_season_status

    async def _update():
        async with get_async_session() as session:
            return await update_season_status(
                session, actor_option(actor, "admin", None), season_id, new_status
            )

    result = run_async(_update())
    typer.echo(result.message)


@season_app.command("export")
def season_export(
    season_id: str = typer.Argument(..., help="Season ID"),
    output: Path = typer.Option("season.json", "--output", "-o", help="Output file"),
    format: str = typer.Option("json", "--format", "-f", help="Format: json, jsonl"),
):
    """Export a season timeline to file."""
    from ptt.services.export import export_season

    async def _export():
        async with get_async_session() as session:
            return await export_season(session, season_id, format=format)

    try:
        data = run_async(_export())
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    with open(output, "w") as f:
        f.write(data)

    typer.echo(f"Exported to {output}")


# ============================================================================
# Task Commands
# ============================================================================

task_app = typer.Typer(help="Task progress within a season")
app.add_typer(task_app, name="task")


def _update_task(season_id: str, task_id: str, update: TaskEntryUpdate, who: Actor):
    from ptt.services.progression_service import update_task_and_progress

    async def _update():
        async with get_async_session() as session:
            return await update_task_and_progress(session, who, season_id, task_id, update)

    result = run_async(_update())
    typer.echo(result.message)
    if result.season_closed:
        typer.echo("All tasks completed: season closed")
    elif result.has_changed and result.season:
        typer.echo(f"Attention: {', '.join(result.season.require_attention) or '(none)'}")


@task_app.command("complete")
def task_complete(
    season_id: str = typer.Argument(..., help="Season ID"),
    task_id: str = typer.Argument(..., help="Task entry ID"),
    date: str = typer.Argument(..., help="Completion date (YYYY-MM-DD)"),
    actor: str = typer.Option("cli", "--actor", help="Acting user"),
    role: str = typer.Option("admin", "--role", help="Acting user's role"),
    department: str = typer.Option(None, "--department", "-d", help="Acting user's department"),
):
    """Record the actual completion of a task."""
    _update_task(
        season_id,
        task_id,
        TaskEntryUpdate(actual_completion=date),
        actor_option(actor, role, department),
    )


@task_app.command("remarks")
def task_remarks(
    season_id: str = typer.Argument(..., help="Season ID"),
    task_id: str = typer.Argument(..., help="Task entry ID"),
    text: str = typer.Argument(..., help="Remarks"),
    actor: str = typer.Option("cli", "--actor", help="Acting user"),
    role: str = typer.Option("admin", "--role", help="Acting user's role"),
    department: str = typer.Option(None, "--department", "-d", help="Acting user's department"),
):
    """Set the remarks of a task."""
    _update_task(
        season_id,
        task_id,
        TaskEntryUpdate(remarks=text),
        actor_option(actor, role, department),
    )


# ============================================================================
# Ingest Commands
# ============================================================================

ingest_app = typer.Typer(help="Import from files")
app.add_typer(ingest_app, name="ingest")


@ingest_app.command("templates")
def ingest_templates(
    file: Path = typer.Argument(..., help="JSON file to import"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate without importing"),
):
    """
    Ingest a template library from file.

    Expects a list of templates, or an object with a "templates" list.
    """
    from ptt.services.ingest import ingest_templates_file

    async def _ingest():
        async with get_async_session() as session:
            return await ingest_templates_file(session, file, dry_run=dry_run)

    result = run_async(_ingest())

    if dry_run:
        typer.echo("Dry run - no changes made")
        typer.echo(f"Would create: {result.template_count} templates")
        if result.errors:
            typer.echo(f"Errors: {len(result.errors)}")
            for e in result.errors:
                typer.echo(f"  - {e}")
    else:
        typer.echo(f"Imported templates: {', '.join(result.created_orders)}")
        typer.echo(f"  Templates created: {result.template_count}")


# ============================================================================
# Database Commands
# ============================================================================

db_app = typer.Typer(help="Database operations")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init():
    """Create all tables that do not exist yet."""

    async def _init():
        try:
            await init_db()
        finally:
            await close_engine()

    typer.echo("Creating database tables...")
    run_async(_init())
    typer.echo("Database initialized successfully")


if __name__ == "__main__":
    app()
