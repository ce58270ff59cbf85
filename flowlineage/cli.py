"""Command line interface for FlowLineage."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List

import structlog
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from flowlineage.config import settings
from flowlineage.history import (
    DiffEngine,
    VersionComparison,
    WorkflowChange,
    WorkflowDefinition,
    WorkflowDefinitionError,
    WorkflowVersionManager,
)

app = typer.Typer(
    name="flowlineage",
    help="FlowLineage - version history and structural diffs for workflow graphs",
    add_completion=False,
)

console = Console()
logger = structlog.get_logger()


def setup_logging() -> None:
    """Setup structured logging."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if settings.is_production else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def load_definition(path: Path) -> WorkflowDefinition:
    """Load a workflow definition from a JSON file, exiting on failure."""
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return WorkflowDefinition.coerce(raw)
    except (OSError, json.JSONDecodeError, WorkflowDefinitionError) as e:
        logger.error("Failed to load workflow definition", path=str(path), error=str(e))
        console.print(f"[red]Cannot load {path}: {e}[/red]")
        raise typer.Exit(1)


def render_changes(title: str, changes: List[WorkflowChange]) -> Table:
    table = Table(title=title)
    table.add_column("Type", style="cyan")
    table.add_column("Subject", style="magenta")
    table.add_column("Field")
    table.add_column("Description", style="green")

    for change in changes:
        table.add_row(
            change.type.value,
            change.node_id or change.edge_id or "",
            change.field or "",
            change.description,
        )
    return table


def render_comparison(comparison: VersionComparison) -> None:
    if comparison.total_changes:
        console.print(render_changes("Changes", comparison.changes))
    style = "yellow" if comparison.has_breaking_changes() else "green"
    console.print(Panel(comparison.summary, title="Summary", border_style=style))


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Configure logging before running a command."""
    if verbose:
        settings.log_level = "DEBUG"
    setup_logging()


@app.command("version")
def version():
    """Show version information."""
    version_info = f"""
{settings.app_name} v{settings.app_version}
Workflow version lineage and structural diffs

Environment: {settings.environment}
Python: {sys.version}
"""
    console.print(
        Panel(
            version_info.strip(),
            title="Version Information",
            border_style="green",
        )
    )


@app.command("diff")
def diff(
    old: Path = typer.Argument(..., help="Workflow definition before the change"),
    new: Path = typer.Argument(..., help="Workflow definition after the change"),
    as_json: bool = typer.Option(False, "--json", help="Print the comparison as JSON"),
):
    """Compare two workflow definition files."""
    comparison = DiffEngine().calculate_differences(load_definition(old), load_definition(new))

    if as_json:
        typer.echo(comparison.model_dump_json(indent=2))
    else:
        render_comparison(comparison)


@app.command("history")
def history(
    files: List[Path] = typer.Argument(..., help="Workflow definitions, oldest first"),
    workflow_id: str = typer.Option("workflow", "--workflow-id", help="Workflow ID to record under"),
    author: str = typer.Option("cli", "--author", help="Author of the recorded versions"),
):
    """Record each file as a version and print the aggregated change history."""
    definitions = [load_definition(path) for path in files]

    async def build_history() -> List[WorkflowChange]:
        manager = WorkflowVersionManager()
        for path, definition in zip(files, definitions):
            await manager.create_version(
                workflow_id,
                definition,
                name=path.stem,
                created_by=author,
                change_summary=f"Imported from {path.name}",
            )
        return await manager.get_change_history(workflow_id)

    changes = asyncio.run(build_history())

    console.print(render_changes(f"History of {workflow_id}", changes))
    console.print(f"{len(files)} versions, {len(changes)} changes")


if __name__ == "__main__":
    app()
