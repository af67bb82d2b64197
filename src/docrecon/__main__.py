"""CLI entry point for docrecon."""

import asyncio
import logging
import signal
import sys
from pathlib import Path

import click
import yaml

from .adapters.export import ledger_rows
from .adapters.extraction import create_extraction_adapter
from .adapters.persistence import YamlTaskRepository
from .config import load_settings
from .domain.aggregator import batch_expense, statement_insights
from .domain.errors import ExtractionFailure
from .domain.models import StatementResult, Task, TaskStatus
from .domain.queue import TaskQueue
from .domain.scheduler import BatchReport
from .domain.services import ProcessingService

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".pdf", ".png", ".jpg", ".jpeg", ".webp", ".gif")


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("-c", "--config", type=click.Path(exists=True), help="Config file path")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config: str | None) -> None:
    """Docrecon - batch extraction and bank statement reconciliation."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else None


def collect_files(paths: tuple[Path, ...], recursive: bool) -> list[Path]:
    """Collect supported documents from files and directories."""
    files: list[Path] = []
    for path in paths:
        if path.is_file():
            if path.suffix.lower() in SUPPORTED_SUFFIXES:
                files.append(path)
            continue
        pattern = "**/*" if recursive else "*"
        files.extend(
            sorted(
                p
                for p in path.glob(pattern)
                if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES
            )
        )
    return files


def format_status(task: Task) -> str:
    """One summary line per task."""
    if task.status == TaskStatus.COMPLETED and isinstance(task.result, StatementResult):
        result = task.result
        verified = sum(1 for t in result.transactions if t.is_verified)
        return (
            f"✓ {task.source_name}: {len(result.transactions)} transactions "
            f"({verified} verified), net {result.net} {result.currency}"
        )
    if task.status == TaskStatus.COMPLETED and task.result is not None:
        doc = task.result
        return f"✓ {task.source_name}: {doc.issuer or 'Unknown issuer'} {doc.total_amount} {doc.currency}"
    if task.status == TaskStatus.ERROR:
        return f"✗ {task.source_name}: {task.error_message}"
    return f"· {task.source_name}: {task.status.value}"


async def run_batch(service: ProcessingService, concurrency: int) -> BatchReport:
    """Run the batch; Ctrl-C stops new work and lets running tasks finish."""
    cancel = asyncio.Event()

    def request_stop() -> None:
        if not cancel.is_set():
            click.echo("Stopping after running tasks finish...", err=True)
            cancel.set()

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, request_stop)
    except NotImplementedError:
        # No loop signal handlers on this platform; Ctrl-C aborts the run
        pass

    try:
        return await service.run(concurrency=concurrency, cancel=cancel)
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            pass


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("--owner", default="default", show_default=True, help="Client the documents belong to")
@click.option("--currency", help="Reporting currency (e.g. CHF)")
@click.option("--concurrency", type=click.IntRange(min=1), help="Documents in flight at once")
@click.option("--recursive/--no-recursive", default=False, help="Scan directories recursively")
@click.pass_context
def process(
    ctx: click.Context,
    paths: tuple[Path, ...],
    owner: str,
    currency: str | None,
    concurrency: int | None,
    recursive: bool,
) -> None:
    """Extract and reconcile a batch of documents."""
    settings = load_settings(ctx.obj["config_path"])
    repository = YamlTaskRepository(settings.paths.store)
    reporting_currency = (currency or settings.extraction.reporting_currency).upper()

    queue = TaskQueue(notify=lambda message: click.echo(message, err=True))
    queue.restore(repository.list_by_owner(owner))
    # Saves run synchronously on the event loop; task files are small.
    queue.subscribe(repository.save)

    files = collect_files(paths, recursive)
    added = queue.enqueue(
        Task(source_name=f.name, source_bytes=f.read_bytes(), owner_id=owner) for f in files
    )
    for task in added:
        repository.save(task)

    if not queue.snapshot_pending():
        click.echo("No documents to process")
        return

    # Wire up adapters
    service = ProcessingService(
        extractor=create_extraction_adapter(settings.extraction),
        queue=queue,
        reporting_currency=reporting_currency,
        retries=settings.scheduler.retries,
        retry_delay=settings.scheduler.retry_delay,
    )

    report = asyncio.run(run_batch(service, concurrency or settings.scheduler.concurrency))

    # Post-batch reconciliation annotates statements outside apply_update
    for task in queue.statements():
        repository.save(task)

    for task in queue:
        click.echo(format_status(task))

    stats = queue.stats()
    click.echo(
        f"\nCompleted: {report.completed}, errors: {report.failed}, "
        f"not started: {report.not_started} ({stats.progress:.0f}% of queue done)"
    )
    click.echo(f"Supporting documents total: {batch_expense(queue)} {reporting_currency}")

    if report.failed:
        sys.exit(1)


@cli.command("list")
@click.option("--owner", default="default", show_default=True)
@click.pass_context
def list_tasks(ctx: click.Context, owner: str) -> None:
    """List stored documents and their status."""
    settings = load_settings(ctx.obj["config_path"])
    tasks = YamlTaskRepository(settings.paths.store).list_by_owner(owner)
    if not tasks:
        click.echo("No documents stored")
        return
    for task in tasks:
        click.echo(format_status(task))


@cli.command()
@click.option("--owner", default="default", show_default=True)
@click.option("--currency", help="Reporting currency label")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), help="Output file")
@click.pass_context
def export(ctx: click.Context, owner: str, currency: str | None, output: Path | None) -> None:
    """Export completed documents as ledger rows (YAML)."""
    settings = load_settings(ctx.obj["config_path"])
    tasks = YamlTaskRepository(settings.paths.store).list_by_owner(owner)
    rows = ledger_rows(tasks, (currency or settings.extraction.reporting_currency).upper())
    text = yaml.safe_dump(rows, default_flow_style=False, allow_unicode=True, sort_keys=False)

    if output:
        output.write_text(text)
        click.echo(f"Exported: {output}")
    else:
        click.echo(text)



@cli.command()
@click.option("--owner", default="default", show_default=True)
@click.option("--currency", help="Reporting currency (e.g. CHF)")
@click.option("--ai/--no-ai", default=False, help="Ask the model for an executive summary")
@click.pass_context
def summary(ctx: click.Context, owner: str, currency: str | None, ai: bool) -> None:
    """Show statement totals by category and an optional executive summary."""
    settings = load_settings(ctx.obj["config_path"])
    reporting_currency = (currency or settings.extraction.reporting_currency).upper()
    queue = TaskQueue(notify=lambda message: click.echo(message, err=True))
    queue.restore(YamlTaskRepository(settings.paths.store).list_by_owner(owner))

    insights = statement_insights(queue)
    click.echo(f"Income:  {insights.income}")
    click.echo(f"Expense: {insights.expense}")
    click.echo(f"Net:     {insights.net}")
    if insights.by_category:
        click.echo("\nBy category:")
        for category, total in insights.by_category.items():
            click.echo(f"  {category}: {total}")

    if not ai:
        return

    service = ProcessingService(
        extractor=create_extraction_adapter(settings.extraction),
        queue=queue,
        reporting_currency=reporting_currency,
        retries=settings.scheduler.retries,
        retry_delay=settings.scheduler.retry_delay,
    )
    try:
        text = asyncio.run(service.summarize())
    except ExtractionFailure as e:
        raise click.ClickException(f"Summary failed: {e}") from e
    click.echo(f"\nExecutive summary:\n{text}")


if __name__ == "__main__":
    cli()
