"""Typer CLI entrypoint for Syllabus-Watch."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog
import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import ConfigRepository, PortalConfig, WatchConfig
from .engine import SnapshotStore
from .errors import ConfigError, SnapshotWriteError, SourceError, SyllabusWatchError
from .logging_conf import ERROR_LOG_NAME, WATCH_LOG_NAME, configure_logging, tail_log
from .report import HtmlReportRenderer, sort_by_title
from .scheduler import APSchedulerAdapter
from .watcher import ChangeWatcher, RunSummary

EXIT_SOURCE_ERROR = 1
EXIT_CONFIG_ERROR = 2

app = typer.Typer(
    help="Syllabus-Watch: harvest portal records and report what changed.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(name="log", help="Inspect log files.", no_args_is_help=True, rich_markup_mode=None)
app.add_typer(log_app, name="log")

console = Console()


@dataclass
class AppState:
    config_path: Path | None
    verbose: bool


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = AppState(config_path=None, verbose=False)
        ctx.obj = state
    return state


def _load_config(ctx: typer.Context, *, require_source: bool) -> WatchConfig:
    """Load configuration or exit with status 2 before any network activity."""

    state = _get_state(ctx)
    try:
        config = ConfigRepository(state.config_path).load(require_source=require_source)
    except ConfigError as exc:
        console.print(f"Configuration error: {exc}", style="red", markup=False)
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from exc
    configure_logging(verbose=state.verbose, log_dir=config.output.log_dir)
    return config


def _progress_default_enabled() -> bool:
    return bool(getattr(sys.stdout, "isatty", lambda: False)())


def _render_summary(summary: RunSummary) -> Table:
    table = Table(title="Run result", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")
    table.add_row("Listed", str(summary.stubs))
    table.add_row("Fetched", str(summary.fetched))
    table.add_row("Failed", str(summary.failed))
    table.add_row("Added", str(summary.added))
    table.add_row("Changed", str(summary.changed))
    table.add_row("Removed", str(summary.removed))
    table.add_row("Unchanged", str(summary.unchanged))
    return table


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML/JSON configuration file.", show_default=False
    ),
) -> None:
    ctx.obj = AppState(config_path=config, verbose=verbose)


@app.command("run", help="Harvest once, diff against the stored snapshot and persist the result.")
def run_once(
    ctx: typer.Context,
    quiet: bool = typer.Option(False, "--quiet", help="Print a one-line result only."),
    no_notify: bool = typer.Option(False, "--no-notify", help="Skip the change notification."),
    no_report: bool = typer.Option(False, "--no-report", help="Skip the HTML report."),
) -> None:
    config = _load_config(ctx, require_source=True)
    watcher = ChangeWatcher.from_config(config, notify=not no_notify, report=not no_report)
    try:
        summary = watcher.run(progress_enabled=_progress_default_enabled() and not quiet)
    except (SourceError, SnapshotWriteError) as exc:
        console.print(f"Run failed: {exc}", style="red", markup=False)
        raise typer.Exit(code=EXIT_SOURCE_ERROR) from exc
    if quiet:
        console.print(
            f"added={summary.added}, changed={summary.changed}, removed={summary.removed}"
        )
        return
    console.print(_render_summary(summary))


@app.command("watch", help="Run on the configured schedule until interrupted.")
def watch(ctx: typer.Context) -> None:
    config = _load_config(ctx, require_source=True)
    logger = structlog.get_logger("syllabus_watch").bind(component="cli")
    adapter = APSchedulerAdapter()

    def _job() -> None:
        try:
            ChangeWatcher.from_config(config).run()
        except SyllabusWatchError as exc:
            logger.error("scheduled_run_failed", error=str(exc))

    adapter.schedule(config.schedule, _job)
    adapter.start()
    for job in adapter.list_jobs():
        console.print(f"Next run: {job['next_run_time']} ({job['trigger']})", style="cyan", markup=False)
    adapter.block()


@app.command("report", help="Render the HTML listing from the stored snapshot.")
def report(
    ctx: typer.Context,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Override the report path."),
) -> None:
    config = _load_config(ctx, require_source=False)
    snapshot = SnapshotStore(config.output.snapshot_path).load()
    if not snapshot:
        console.print(f"No records in {config.output.snapshot_path}.", style="yellow", markup=False)
        raise typer.Exit(code=1)
    renderer = HtmlReportRenderer(
        output or config.output.report_path,
        title=config.output.report_title,
        collation_locale=config.output.collation_locale,
    )
    path = renderer.render(snapshot.records())
    console.print(f"Report written: {path} ({len(snapshot)} records)", style="green", markup=False)


@app.command("show", help="List records from the stored snapshot.")
def show(
    ctx: typer.Context,
    limit: int = typer.Option(50, "--limit", help="Show at most N records."),
) -> None:
    config = _load_config(ctx, require_source=False)
    snapshot = SnapshotStore(config.output.snapshot_path).load()
    if not snapshot:
        console.print("Snapshot is empty.", style="dim")
        return
    records = sort_by_title(snapshot.records(), config.output.collation_locale)
    table = Table(title=f"Snapshot · {len(records)} records", box=box.SIMPLE_HEAD)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Instructor")
    table.add_column("Term", style="magenta")
    table.add_column("Day / period", style="yellow")
    table.add_column("Updated", style="dim")
    for record in records[:limit]:
        table.add_row(
            *(
                escape(value)
                for value in (
                    record.record_id,
                    record.title,
                    record.instructor,
                    record.term,
                    record.schedule,
                    record.updated_label,
                )
            )
        )
    console.print(table)


@app.command("init", help="Write a configuration template.")
def init(
    path: Path = typer.Argument(Path("syllabus-watch.yaml"), help="Target file."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
) -> None:
    if path.exists() and not force:
        console.print(f"{path} already exists; use --force to overwrite.", style="yellow", markup=False)
        raise typer.Exit(code=1)
    template = WatchConfig(portal=PortalConfig(base_url="https://portal.example.ac.jp/syllabus"))
    ConfigRepository.save(template, path)
    console.print(f"Configuration template written to {path}.", style="green", markup=False)


@log_app.command("show", help="Print the last lines of the watch log.")
def log_show(
    ctx: typer.Context,
    tail: int = typer.Option(100, "--tail", help="Show the last N lines."),
    errors: bool = typer.Option(False, "--errors", help="Show the error log instead."),
) -> None:
    state = _get_state(ctx)
    try:
        config = ConfigRepository(state.config_path).load(require_source=False)
    except ConfigError as exc:
        console.print(f"Configuration error: {exc}", style="red", markup=False)
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from exc
    path = config.output.log_dir / (ERROR_LOG_NAME if errors else WATCH_LOG_NAME)
    lines = tail_log(path, tail)
    if not lines:
        console.print("No log entries yet.", style="dim")
        return
    console.print(f"{path} · last {len(lines)} lines", style="cyan", markup=False)
    console.print("".join(lines), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
