"""
Command Line Interface for Drift.

Inspect and curate the patterns stored for a project: aggregate status,
listings, details with code examples, approval and ignoring, search,
legacy migration and storage statistics. Every command goes through the
pattern service or the repository factory; nothing here touches pattern
files directly.
"""
import asyncio
import sys
from typing import Awaitable, Callable, List, Optional, TypeVar

import typer
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from drift.config import DriftConfig, load_config
from drift.patterns.models import PatternStatus
from drift.service.pattern_service import PatternService, create_pattern_service
from drift.storage.base import PatternFilter
from drift.storage.factory import create_pattern_repository
from drift.storage.persistent import PersistentPatternRepository
from drift.storage.unified_store import UnifiedFilePatternRepository
from drift.utils.errors import DriftError
from drift.utils.logging import DetailedLogFormatter, SimpleLogFormatter, console, get_status_style, logger
from drift.version import get_version_info

T = TypeVar("T")

app = typer.Typer(
    name="drift",
    help="Drift - inspect and curate detected code patterns",
    add_completion=False,
)


class CliState:
    """Options shared by every command."""

    def __init__(self, root: str, config: DriftConfig):
        self.root = root
        self.config = config


@app.callback()
def callback(
    ctx: typer.Context,
    root: str = typer.Option(".", "--root", "-r", help="Project root containing .drift/"),
    config_file: Optional[str] = typer.Option(None, "--config", "-c", help="Path to configuration file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
) -> None:
    """Drift pattern repository command-line interface."""
    try:
        config = load_config(config_file)
    except (DriftError, FileNotFoundError) as e:
        console.print(f"[error]Error:[/error] Failed to load configuration: {e}")
        raise typer.Exit(1)

    if verbose:
        logger.set_level("debug")
        logger.add_console_handler(DetailedLogFormatter(show_time=True))
    else:
        logger.add_console_handler(SimpleLogFormatter(show_time=False))
    ctx.obj = CliState(root=root, config=config)


def _run(ctx: typer.Context, operation: Callable[[PatternService], Awaitable[T]], save: bool = False) -> T:
    """Run an async operation against a freshly built service."""
    state: CliState = ctx.obj

    async def runner() -> T:
        service = await create_pattern_service(state.root, config=state.config, cache=False)
        try:
            result = await operation(service)
            if save:
                await service.save()
            return result
        finally:
            await service.close()

    try:
        return asyncio.run(runner())
    except DriftError as e:
        logger.error(e.message, component="cli", context=e.details)
        raise typer.Exit(1)


def _status_text(status: PatternStatus) -> Text:
    return Text(status.value, style=get_status_style(status.value))


@app.command()
def version() -> None:
    """Show version information."""
    info = get_version_info()
    table = Table(box=None, show_header=False, padding=(0, 2))
    table.add_column("Key", style="muted")
    table.add_column("Value", style="info")
    table.add_row("Version", info["version"])
    table.add_row("Storage format", info["storage_format_version"])
    table.add_row("Legacy format", info["legacy_format_version"])
    console.print(Panel(table, title="Drift", border_style="info"))


@app.command()
def status(ctx: typer.Context) -> None:
    """Show pattern counts and the health score."""
    async def collect(service: PatternService):
        return await service.get_status(), await service.get_categories()

    system, categories = _run(ctx, collect)

    summary = Text()
    summary.append("Total patterns: ", style="muted")
    summary.append(f"{system.total_patterns}\n")
    summary.append("Health score: ", style="muted")
    summary.append(f"{system.health_score}/100\n", style="success" if system.health_score >= 70 else "warning")
    for name, count in system.by_status.items():
        summary.append(f"{name.title()}: ", style="muted")
        summary.append(f"{count}\n", style=name)
    console.print(Panel(summary, title="Pattern Status", border_style="info"))

    if categories:
        table = Table(title="Categories")
        table.add_column("Category", style="info")
        table.add_column("Total", justify="right")
        table.add_column("Approved", justify="right", style="approved")
        table.add_column("Discovered", justify="right", style="discovered")
        table.add_column("Ignored", justify="right", style="ignored")
        table.add_column("High confidence", justify="right")
        for category in categories:
            table.add_row(
                category.category,
                str(category.count),
                str(category.approved_count),
                str(category.discovered_count),
                str(category.ignored_count),
                str(category.high_confidence_count),
            )
        console.print(table)


@app.command("list")
def list_patterns(
    ctx: typer.Context,
    category: Optional[str] = typer.Option(None, "--category", help="Only this category"),
    status: Optional[PatternStatus] = typer.Option(None, "--status", help="Only this status"),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum patterns to show"),
    offset: int = typer.Option(0, "--offset", help="Patterns to skip"),
) -> None:
    """List patterns."""
    pattern_filter = PatternFilter(
        categories=[category] if category else None,
        statuses=[status] if status else None,
    )
    page = _run(ctx, lambda service: service.list_patterns({"offset": offset, "limit": limit}, pattern_filter))

    table = Table(title=f"Patterns ({len(page.items)} of {page.total})")
    table.add_column("ID", style="path")
    table.add_column("Name")
    table.add_column("Category", style="info")
    table.add_column("Status")
    table.add_column("Confidence", justify="right")
    table.add_column("Locations", justify="right")
    for item in page.items:
        table.add_row(
            item.id,
            item.name,
            item.category,
            _status_text(item.status),
            Text(f"{item.confidence:.2f}", style=f"{item.confidence_level.value}_confidence"),
            str(item.location_count),
        )
    console.print(table)
    if page.has_more:
        console.print(f"[muted]More patterns available; use --offset {page.offset + len(page.items)}[/muted]")


@app.command()
def show(
    ctx: typer.Context,
    pattern_id: str = typer.Argument(..., help="Pattern id"),
    examples: int = typer.Option(3, "--examples", "-e", help="Maximum code examples"),
) -> None:
    """Show one pattern with code examples and related patterns."""
    details = _run(ctx, lambda service: service.get_pattern_with_examples(pattern_id, max_examples=examples))
    if details is None:
        console.print(f"[error]Pattern not found:[/error] {pattern_id}")
        raise typer.Exit(1)

    pattern = details.pattern
    body = Text()
    body.append(f"{pattern.description}\n\n")
    body.append("Category: ", style="muted")
    body.append(f"{pattern.category}/{pattern.subcategory}\n")
    body.append("Status: ", style="muted")
    body.append_text(_status_text(pattern.status))
    body.append("\nConfidence: ", style="muted")
    body.append(f"{pattern.confidence:.2f} ({pattern.confidence_level.value})\n")
    body.append("Detector: ", style="muted")
    body.append(f"{pattern.detector_name} ({pattern.detection_method.value})\n")
    body.append("Locations: ", style="muted")
    body.append(f"{len(pattern.locations)}, outliers: {len(pattern.outliers)}")
    console.print(Panel(body, title=f"{pattern.name} [muted]({pattern.id})[/muted]", border_style="info"))

    for example in details.code_examples:
        console.print(Panel(
            Syntax(example.code, example.language, start_line=example.context_start or example.line),
            title=f"{example.file}:{example.line}",
            border_style="muted",
        ))

    if details.related_patterns:
        console.print("[muted]Related:[/muted] " + ", ".join(p.id for p in details.related_patterns))


@app.command()
def approve(
    ctx: typer.Context,
    pattern_ids: List[str] = typer.Argument(..., help="Pattern ids to approve"),
    by: Optional[str] = typer.Option(None, "--by", help="Who approved the patterns"),
) -> None:
    """Approve patterns."""
    result = _run(ctx, lambda service: service.approve_many(pattern_ids, by), save=True)
    _print_batch(result, "Approved")


@app.command()
def ignore(
    ctx: typer.Context,
    pattern_ids: List[str] = typer.Argument(..., help="Pattern ids to ignore"),
) -> None:
    """Ignore patterns."""
    result = _run(ctx, lambda service: service.ignore_many(pattern_ids), save=True)
    _print_batch(result, "Ignored")


def _print_batch(result, verb: str) -> None:
    for pattern in result.succeeded:
        console.print(f"[success]{verb}[/success] {pattern.id}")
    for failure in result.failed:
        console.print(f"[error]Failed[/error] {failure.id}: {failure.error}")
    if result.failed:
        raise typer.Exit(1)


@app.command()
def search(
    ctx: typer.Context,
    term: str = typer.Argument(..., help="Text to look for in names and descriptions"),
    category: Optional[List[str]] = typer.Option(None, "--category", help="Restrict to categories"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum results"),
) -> None:
    """Search patterns by name or description."""
    results = _run(ctx, lambda service: service.search(term, {"categories": category or None, "limit": limit}))
    if not results:
        console.print(f"[muted]No patterns match '{term}'[/muted]")
        return
    table = Table(title=f"Search: {term}")
    table.add_column("ID", style="path")
    table.add_column("Name")
    table.add_column("Category", style="info")
    table.add_column("Status")
    for item in results:
        table.add_row(item.id, item.name, item.category, _status_text(item.status))
    console.print(table)


@app.command()
def migrate(
    ctx: typer.Context,
    keep_legacy: bool = typer.Option(False, "--keep-legacy", help="Leave legacy files in place"),
    force: bool = typer.Option(False, "--force", help="Import legacy files even if already migrated"),
) -> None:
    """Migrate legacy status/category files to the unified layout."""
    state: CliState = ctx.obj

    async def runner():
        repository = UnifiedFilePatternRepository(
            state.root,
            auto_migrate=False,
            keep_legacy_files=keep_legacy,
            use_format_marker=state.config.storage.use_format_marker,
        )
        await repository.initialize()
        try:
            return await repository.migrate_from_legacy(force=force)
        finally:
            await repository.close()

    try:
        result = asyncio.run(runner())
    except DriftError as e:
        logger.error(e.message, component="cli", context=e.details)
        raise typer.Exit(1)

    if result.already_migrated:
        console.print("[muted]Patterns are already migrated; use --force to import legacy files again[/muted]")
        return
    if not result.migrated:
        console.print("[muted]No legacy pattern files found[/muted]")
        return
    console.print(
        f"[success]Migrated[/success] {result.pattern_count} patterns "
        f"from {len(result.files_read)} files {result.by_status}"
    )
    if result.files_failed:
        console.print(f"[warning]{len(result.files_failed)} files could not be read; legacy files kept[/warning]")
    elif result.legacy_files_removed:
        console.print("[muted]Legacy files removed[/muted]")


@app.command()
def stats(ctx: typer.Context) -> None:
    """Show storage statistics."""
    state: CliState = ctx.obj

    async def runner():
        repository = await create_pattern_repository(state.root, config=state.config, cache=False)
        try:
            if isinstance(repository, PersistentPatternRepository):
                return repository.get_storage_stats()
            return None
        finally:
            await repository.close()

    try:
        storage_stats = asyncio.run(runner())
    except DriftError as e:
        logger.error(e.message, component="cli", context=e.details)
        raise typer.Exit(1)

    if storage_stats is None:
        console.print("[muted]Storage statistics are only available for file-backed repositories[/muted]")
        return

    table = Table(title="Storage")
    table.add_column("Metric", style="muted")
    table.add_column("Value", justify="right")
    table.add_row("Patterns", str(storage_stats.total_patterns))
    table.add_row("Files", str(storage_stats.file_count))
    for name, count in storage_stats.by_status.items():
        table.add_row(f"Status: {name}", Text(str(count), style=name))
    for name, count in sorted(storage_stats.by_category.items()):
        table.add_row(f"Category: {name}", str(count))
    console.print(table)


def main():
    """Main entry point for the CLI."""
    try:
        app()
    except Exception as e:
        logger.error(f"Unhandled exception: {e}", component="cli", exception=e)
        sys.exit(1)


if __name__ == "__main__":
    main()
