"""
pullcsv CLI Main Entry Point.

``pullcsv run`` is what the container starts; the other commands help to
inspect a configuration and to run single steps by hand.
"""

from __future__ import annotations

import json
import signal
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import click
import humanize
from rich.console import Console
from rich.table import Table

from pullcsv import __version__
from pullcsv.core.config import ConfigurationError, PullcsvConfig, RetentionConfig, load_config
from pullcsv.core.logging import get_logger, setup_logging
from pullcsv.core.metrics import PrometheusMetrics
from pullcsv.core.models import RetentionTarget
from pullcsv.core.service import PullService
from pullcsv.sync.retention import RetentionSweeper
from pullcsv.sync.tokens import resolve

console = Console()
logger = get_logger(__name__)


def get_config(ctx: click.Context) -> PullcsvConfig:
    """Load configuration once per invocation."""
    if "config" not in ctx.obj:
        config = load_config(ctx.obj.get("config_path"))
        if ctx.obj.get("log_level"):
            config.logging.level = ctx.obj["log_level"]
        setup_logging(config.logging)
        ctx.obj["config"] = config
    return ctx.obj["config"]


@click.group()
@click.version_option(version=__version__, prog_name="pullcsv")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to a JSON configuration file (default: environment variables)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Override the configured log level",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, log_level: str | None) -> None:
    """
    pullcsv - scheduled rsync mirroring with shared exclude lists.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["log_level"] = log_level.upper() if log_level else None


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the metrics endpoint and the scheduler, and block."""
    config = get_config(ctx)
    metrics = PrometheusMetrics(
        stand_name=config.stand_name,
        pod_name=config.pod_name,
        namespace=config.metrics.namespace,
    )
    metrics.set_info(__version__)
    service = PullService(config, metrics=metrics)
    service.start()

    if config.metrics.enabled:
        metrics.serve(config.metrics.port)

    def handle_signal(signum: int, frame: Any) -> None:
        logger.info("Received signal, stopping", signal=signum)
        service.stop(wait=False)

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    logger.info("running PullCSV version " + __version__)
    service.wait()


@cli.command()
@click.pass_context
def once(ctx: click.Context) -> None:
    """Run every sync job a single time, one after another."""
    config = get_config(ctx)
    service = PullService(config)
    service.check()
    config.ensure_directories()

    table = Table(title="Sync Cycle")
    table.add_column("Source", style="cyan")
    table.add_column("Destination", style="white")
    table.add_column("Pull", justify="right")
    table.add_column("Moved", justify="right", style="green")
    table.add_column("Excluded", justify="right")
    table.add_column("Push", justify="right")

    failures = 0
    for job in service.sync_jobs:
        job_result = job.run()
        cycle = job_result.data if job_result else None
        if cycle is None:
            failures += 1
            table.add_row(job.pair.source_template, job.pair.dest_dir, "-", "-", "-", "[red]failed[/red]")
            continue
        if not cycle.success:
            failures += 1
        table.add_row(
            cycle.source,
            cycle.destination,
            _exit_code(cycle.payload_pull.exit_code if cycle.payload_pull else None),
            str(len(cycle.moves.moved)),
            str(len(cycle.exclude_entries)),
            _exit_code(cycle.exclude_push.exit_code if cycle.exclude_push else None),
        )

    console.print(table)
    if failures:
        sys.exit(1)


def _exit_code(code: int | None) -> str:
    if code is None:
        return "[dim]-[/dim]"
    if code == 0:
        return "[green]0[/green]"
    return f"[red]{code}[/red]"


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
@click.pass_context
def pairs(ctx: click.Context, json_output: bool) -> None:
    """Show the expanded sync pairs and their exclude files."""
    config = get_config(ctx)
    service = PullService(config)
    now = datetime.now()

    rows = [
        {
            "template": job.pair.source_template,
            "source": resolve(job.pair.source_template, now),
            "destination": job.pair.dest_dir,
            "exclude_file": str(job.exclude_file.path),
            "remote_exclude_file": job.remote_exclude_path,
        }
        for job in service.sync_jobs
    ]

    if json_output:
        click.echo(json.dumps(rows, indent=2))
        return

    table = Table(title=f"Sync Pairs ({config.schedule.sync_cron})")
    table.add_column("Template", style="cyan")
    table.add_column("Resolved", style="white")
    table.add_column("Destination", style="green")
    table.add_column("Exclude File", style="magenta")
    for row in rows:
        table.add_row(row["template"], row["source"], row["destination"], row["exclude_file"])
    console.print(table)


@cli.command("resolve")
@click.argument("template")
@click.option(
    "--at",
    "at",
    type=click.DateTime(formats=["%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M", "%Y-%m-%d"]),
    help="Resolve as if the clock showed this time",
)
def resolve_template(template: str, at: datetime | None) -> None:
    """Resolve the date token in TEMPLATE."""
    click.echo(resolve(template, at or datetime.now()))


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--max-age", type=int, default=48, show_default=True, help="Hours before any file is deleted")
@click.option("--max-partial-age", type=int, default=4, show_default=True, help="Hours before a partial file is deleted")
def sweep(directory: Path, max_age: int, max_partial_age: int) -> None:
    """Delete aged files in DIRECTORY once."""
    target = RetentionTarget(
        directory=str(directory),
        max_age_complete_hours=max_age,
        max_age_partial_hours=max_partial_age,
        partial_pattern=RetentionConfig().partial_pattern,
    )
    report = RetentionSweeper(target).sweep()

    for path in report.deleted_complete:
        console.print(f"[red]✗[/red] {path}")
    for path in report.deleted_partial:
        console.print(f"[yellow]✗[/yellow] {path} [dim](partial)[/dim]")
    console.print(
        f"Deleted {humanize.intcomma(len(report.deleted))} file(s) from {directory}"
    )
    for error in report.errors:
        console.print(f"[red]Error: {error}[/red]")
    if report.errors:
        sys.exit(1)


def main() -> None:
    """Main entry point."""
    try:
        cli(obj={})
    except ConfigurationError as e:
        logger.critical(str(e))
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
