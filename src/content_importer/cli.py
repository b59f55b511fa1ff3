"""Command-line interface for the Content Importer."""

from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import ImporterConfig, load_config
from .core.reader import ImportBatch, load_batch
from .execution.media_import import MediaImportPipeline
from .execution.pipeline import ImportPipeline
from .models.results import ImportRunResult, MediaImportRunResult
from .observability import ReportGenerator, configure_logging
from .repository.memory import InMemoryRepository
from .resolvers.registry import default_registry
from .utils.exceptions import ImporterError

app = typer.Typer(
    name="content-import",
    help="Content Importer - bulk import spreadsheet rows into a content tree",
    add_completion=False,
)

console = Console()
logger = structlog.get_logger(__name__)


def _load_config(config_file: Path | None) -> ImporterConfig:
    if config_file:
        config = load_config(config_file)
        console.print(f"[green]OK:[/green] Configuration loaded from {config_file}\n")
        return config
    return ImporterConfig.from_env()


def _seed_paths(repository: InMemoryRepository, paths: list[str]) -> None:
    """Create folder items for every /slash/path so parent specs can find them."""
    for path in paths:
        parent = None
        walked = ""
        for segment in (s for s in path.strip("/").split("/") if s.strip()):
            walked = f"{walked}/{segment.strip()}"
            existing = repository.find_parent(walked)
            parent = existing or repository.add_content(segment.strip(), "folder", parent)


def _load(input_file: Path, delimiter: str) -> ImportBatch:
    batch = load_batch(input_file, delimiter=delimiter)
    console.print(
        f"[green]OK:[/green] {batch.total_records} records in {len(batch.files)} file(s)"
        + (f", {len(batch.archive_entries)} archive entries" if batch.archive_entries else "")
        + "\n"
    )
    return batch


@app.command()
def resolvers() -> None:
    """
    List the registered value resolvers.

    Examples:
        content-import resolvers
    """
    table = Table(title="Resolvers")
    table.add_column("Alias", style="cyan")
    table.add_column("Kind")
    table.add_column("Description")

    for resolver in default_registry():
        if resolver.deferred:
            kind = "deferred"
        elif not resolver.produces_property:
            kind = "stream"
        else:
            kind = "immediate"
        table.add_row(resolver.alias, kind, resolver.description)

    console.print(table)


@app.command()
def plan(
    input_file: Path = typer.Argument(..., help="CSV file or ZIP archive", exists=True),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    delimiter: str = typer.Option(",", "--delimiter", "-d", help="CSV field delimiter"),
    seed: list[str] = typer.Option(
        [], "--seed", help="Existing /slash/path to assume in the content tree"
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
) -> None:
    """
    Show the creation order without importing anything.

    Examples:
        content-import plan pages.csv
        content-import plan upload.zip --seed /Home
    """
    configure_logging(level=log_level)
    console.print(f"\n[bold blue]Planning import:[/bold blue] {input_file}\n")

    try:
        config = _load_config(config_file)
        batch = _load(input_file, delimiter)

        repository = InMemoryRepository()
        _seed_paths(repository, seed)
        hierarchy, rejected = ImportPipeline(repository, config=config).plan_batch(batch)
    except (ImporterError, OSError) as e:
        console.print(f"\n[red]ERROR: Planning failed:[/red] {e}")
        raise typer.Exit(code=1) from e

    table = Table(title="Creation Order")
    table.add_column("#", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Legacy Id")
    table.add_column("Parent")
    table.add_column("Warnings", justify="right")
    for position, obj in enumerate(hierarchy.ordered, start=1):
        parent = obj.legacy_parent_id or obj.parent_spec or ""
        table.add_row(
            str(position),
            obj.name,
            obj.content_type_alias,
            obj.legacy_id or "",
            parent,
            str(len(obj.warnings)) if obj.warnings else "",
        )
    console.print(table)

    if hierarchy.failures or rejected:
        excluded = Table(title="Excluded", style="red")
        excluded.add_column("Row", justify="right")
        excluded.add_column("Name")
        excluded.add_column("Cause")
        for failure in hierarchy.failures:
            excluded.add_row(str(failure.item.row_number or ""), failure.item.name, failure.message)
        for obj in rejected:
            excluded.add_row(
                str(obj.row_number or ""), obj.name, "Name and content type are required"
            )
        console.print(excluded)
        raise typer.Exit(code=1)


@app.command()
def simulate(
    input_file: Path = typer.Argument(..., help="CSV file or ZIP archive", exists=True),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    delimiter: str = typer.Option(",", "--delimiter", "-d", help="CSV field delimiter"),
    seed: list[str] = typer.Option(
        [], "--seed", help="Existing /slash/path to assume in the content tree"
    ),
    report: Path | None = typer.Option(None, "--report", help="Write a JSON report here"),
    failed_rows: Path | None = typer.Option(
        None, "--failed-rows", help="Write rows that were not imported to this CSV"
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Logging level (TRACE, DEBUG, VERBOSE, INFO, WARNING, ERROR)"
    ),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines"),
) -> None:
    """
    Run a full import against an in-memory content tree.

    Media is fetched and "created" for real, so URLs must be reachable.

    Examples:
        content-import simulate pages.csv --seed /Home
        content-import simulate upload.zip --report out/report.json
    """
    try:
        config = _load_config(config_file)
    except (ImporterError, OSError) as e:
        console.print(f"\n[red]ERROR: Configuration failed:[/red] {e}")
        raise typer.Exit(code=1) from e

    configure_logging(
        level=log_level or config.logging.level,
        json_logs=json_logs or config.logging.format == "json",
        log_file=config.logging.file,
    )

    console.print(
        Panel.fit(
            f"[bold blue]Content Import (simulation)[/bold blue]\n\n"
            f"Input: {input_file}\n"
            f"Publish by default: "
            f"[yellow]{'yes' if config.pipeline.publish_by_default else 'no'}[/yellow]\n"
            f"Report: [green]{report or 'Disabled'}[/green]",
            border_style="blue",
        )
    )

    try:
        batch = _load(input_file, delimiter)
        repository = InMemoryRepository()
        _seed_paths(repository, seed)
        pipeline = ImportPipeline(repository, media_store=repository, config=config)
        result = pipeline.run_batch(batch)
    except (ImporterError, OSError) as e:
        console.print(f"\n[bold red]ERROR:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    _print_result(result)

    generator = ReportGenerator()
    if report:
        generator.write_json_report(generator.generate_report(result, input_file), report)
        console.print(f"[green]Report written to {report}[/green]")
    if failed_rows:
        written = generator.write_failed_rows(result, failed_rows)
        if written:
            console.print(f"[yellow]{written} failed row(s) written to {failed_rows}[/yellow]")

    if not result.is_complete_success:
        raise typer.Exit(code=1)


def _print_result(result: ImportRunResult) -> None:
    counts = result.counts()
    summary = Table(title="Import Summary")
    summary.add_column("Metric", style="cyan")
    summary.add_column("Count", justify="right")
    for key, value in counts.items():
        summary.add_row(key.replace("_", " ").capitalize(), str(value))
    summary.add_row("Success rate", f"{result.success_rate:.1f}%")
    console.print(summary)

    failures = [r for r in result.ordered_results if not r.success]
    if failures:
        table = Table(title="Failed Items", style="red")
        table.add_column("File")
        table.add_column("Row", justify="right")
        table.add_column("Name")
        table.add_column("Kind")
        table.add_column("Error")
        for item in failures:
            table.add_row(
                item.source_file or "",
                str(item.row_number or ""),
                item.name,
                item.error_kind or "",
                item.error_message or "",
            )
        console.print(table)


@app.command()
def media(
    input_file: Path = typer.Argument(..., help="CSV file or ZIP archive", exists=True),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    delimiter: str = typer.Option(",", "--delimiter", "-d", help="CSV field delimiter"),
    results_file: Path | None = typer.Option(
        None, "--results", help="Write every row with its outcome to this CSV"
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level"),
) -> None:
    """
    Import a media-upload file into an in-memory media library.

    Examples:
        content-import media images.zip
        content-import media media.csv --results out/media-results.csv
    """
    try:
        config = _load_config(config_file)
    except (ImporterError, OSError) as e:
        console.print(f"\n[red]ERROR: Configuration failed:[/red] {e}")
        raise typer.Exit(code=1) from e

    configure_logging(level=log_level or config.logging.level)
    console.print(f"\n[bold blue]Media import (simulation):[/bold blue] {input_file}\n")

    try:
        batch = _load(input_file, delimiter)
        repository = InMemoryRepository()
        result = MediaImportPipeline(repository, config=config, repository=repository).run_batch(
            batch
        )
    except (ImporterError, OSError) as e:
        console.print(f"\n[bold red]ERROR:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    _print_media_result(result)

    if results_file:
        written = ReportGenerator().write_media_results(result, results_file)
        console.print(f"[green]{written} row(s) written to {results_file}[/green]")

    if not result.is_complete_success:
        raise typer.Exit(code=1)


def _print_media_result(result: MediaImportRunResult) -> None:
    table = Table(title="Media Import")
    table.add_column("Row", justify="right")
    table.add_column("File", style="cyan")
    table.add_column("Operation")
    table.add_column("Result")
    for item in result.results:
        if item.success:
            outcome = f"[green]{item.media_token}[/green]"
        else:
            outcome = f"[red]{item.error_message}[/red]"
        table.add_row(
            str(item.row_number or ""), item.file_name, item.operation.value, outcome
        )
    console.print(table)
    console.print(result.get_summary())


@app.command()
def version() -> None:
    """Show version information and features."""
    from . import __version__

    console.print(
        Panel.fit(
            "[bold]Content Importer[/bold]\n\n"
            f"Version: [cyan]{__version__}[/cyan]\n"
            "Python: 3.11+\n\n"
            "[bold]Core Features:[/bold]\n"
            "- Pluggable column value resolvers\n"
            "- Legacy id hierarchy ordering with cycle detection\n"
            "- Run-scoped memoizing caches\n"
            "- Media preprocessing (URL, path, ZIP entry)\n"
            "- Media-upload import with folder creation and updates\n"
            "- Block list composition\n"
            "- JSON reports and failed-row export",
            border_style="blue",
        )
    )


if __name__ == "__main__":
    app()
