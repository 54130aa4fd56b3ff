"""Command line entry point for the devtrack editor agent."""

import sys

import typer
from rich.console import Console
from rich.table import Table

from devtrack.client.emitter import EventEmitter, EventSink, send_with_retry
from devtrack.client.events import Activity, ActivityEvent, ActivityKey
from devtrack.client.http_sink import HttpEventSink
from devtrack.client.store import LocalEventStore
from devtrack.client.typing_detector import TypingMonitor
from devtrack.core.config import ClientSettings, get_client_settings
from devtrack.core.errors import EventPersistenceError
from devtrack.core.logging import get_logger, setup_logging

logger = get_logger(__name__)

app = typer.Typer(
    name="devtrack",
    help="Record editor activity (open, save, focus, typing sessions).",
    no_args_is_help=True,
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)

KEYSTROKE_SIGNAL = "keystroke"
DIRECT_ACTIVITIES = {Activity.OPEN.value, Activity.SAVE.value, Activity.FOCUS.value}


def print_error(message: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {message}")


def build_sink(settings: ClientSettings) -> EventSink:
    """HTTP sink when a server is configured, local SQLite otherwise."""
    if settings.server_url:
        return HttpEventSink(settings.server_url, timeout=settings.http_timeout_seconds)
    return LocalEventStore(settings.local_database_url)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    setup_logging(level="DEBUG" if verbose else "WARNING", stream=sys.stderr)


@app.command("log")
def log_command(
    file: str = typer.Argument(..., help="File the activity happened in"),
    activity: str = typer.Option(..., "--activity", "-a", help="open, save, focus or typing"),
    language: str = typer.Option(..., "--language", "-l"),
    project: str = typer.Option(..., "--project", "-p"),
    editor: str = typer.Option(..., "--editor", "-e"),
    metadata: str | None = typer.Option(None, "--metadata", help="Free-form note"),
    duration: int | None = typer.Option(None, "--duration", min=0, help="Duration in seconds"),
    retries: int = typer.Option(0, "--retries", min=0, help="Retry transient failures this many times"),
) -> None:
    """Record a single activity."""
    try:
        kind = Activity(activity)
    except ValueError:
        print_error(f"Unknown activity '{activity}'")
        raise typer.Exit(code=2)

    sink = build_sink(get_client_settings())
    event = ActivityEvent(
        key=ActivityKey(file=file, language=language, project=project, editor=editor),
        activity=kind,
        metadata=metadata,
        duration=duration,
    )

    try:
        record = send_with_retry(EventEmitter(sink), event, attempts=retries + 1)
    except EventPersistenceError as e:
        print_error(str(e))
        raise typer.Exit(code=1)
    finally:
        sink.close()

    console.print(f"Recorded [cyan]{record.activity}[/cyan] on {record.file} ({record.branch_name})")


@app.command("track")
def track_command(
    file: str = typer.Argument(..., help="File being edited"),
    language: str = typer.Option(..., "--language", "-l"),
    project: str = typer.Option(..., "--project", "-p"),
    editor: str = typer.Option(..., "--editor", "-e"),
) -> None:
    """Read editor signals from stdin, one per line.

    "keystroke" feeds typing detection; "open", "save" and "focus" are
    recorded immediately. An optional second field names a different file.
    """
    settings = get_client_settings()
    sink = build_sink(settings)
    emitter = EventEmitter(sink)
    monitor = TypingMonitor(
        emitter.emit,
        idle_threshold=settings.idle_threshold_seconds,
        interval=settings.monitor_interval_seconds,
    )

    monitor.start()
    try:
        for line in sys.stdin:
            parts = line.split(maxsplit=1)
            if not parts:
                continue
            signal = parts[0].lower()
            key = ActivityKey(
                file=parts[1].strip() if len(parts) > 1 else file,
                language=language,
                project=project,
                editor=editor,
            )

            if signal == KEYSTROKE_SIGNAL:
                monitor.on_keystroke(key)
            elif signal in DIRECT_ACTIVITIES:
                try:
                    emitter.emit(ActivityEvent(key=key, activity=Activity(signal)))
                except EventPersistenceError as e:
                    print_error(str(e))
            else:
                logger.warning(f"Ignoring unknown signal: {signal}")
    except KeyboardInterrupt:
        pass
    finally:
        monitor.shutdown()
        sink.close()


@app.command("recent")
def recent_command(
    limit: int = typer.Option(20, "--limit", "-n", min=1, max=1000),
) -> None:
    """Show the most recent events in the local store."""
    settings = get_client_settings()
    store = LocalEventStore(settings.local_database_url)
    try:
        rows = store.recent(limit)
    finally:
        store.close()

    table = Table(title="Recent events")
    table.add_column("Time", style="dim")
    table.add_column("Activity", style="cyan")
    table.add_column("File")
    table.add_column("Project")
    table.add_column("Branch")
    table.add_column("Duration", justify="right")

    for row in rows:
        table.add_row(
            row.timestamp,
            row.activity,
            row.file,
            row.project,
            row.branch_name,
            f"{row.duration}s" if row.duration else "",
        )

    console.print(table)


if __name__ == "__main__":
    app()
