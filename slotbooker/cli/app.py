"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from pendulum import DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.memory_storage import InMemoryStorage
from ..config import EngineConfig, get_default_config_path
from ..domain.exceptions import SlotbookerError
from ..domain.models import BookingLink, Requester, TimeRange
from ..services.scheduling_engine import SchedulingEngine

app = typer.Typer(
    name="slotbooker",
    help="Find bookable meeting windows and reserve them",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./slotbooker.yaml"),
]
NowOption = Annotated[
    Optional[str],
    typer.Option("--now", help="Pretend the current time is this ISO 8601 instant."),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load(config_file: Optional[Path], link_id: str, now: Optional[str]):
    """Load config, resolve the link and build an engine over an in-memory store."""
    config_path = config_file or get_default_config_path()
    config = EngineConfig.load_from_yaml(config_path)
    link = config.resolve_link(link_id)

    fixed_now = _parse_instant(now, config.default_timezone) if now else None
    clock = (lambda: fixed_now) if fixed_now else (lambda: pendulum.now("UTC"))

    storage = InMemoryStorage.from_config(config)
    engine = SchedulingEngine(storage, clock=clock)

    return config, link, engine


def _parse_instant(value: str, tz: str) -> DateTime:
    try:
        parsed = pendulum.parse(value, tz=tz)
    except ValueError as e:
        console.print(f"[red]Could not parse time '{value}': {e}[/red]")
        raise typer.Exit(1)

    if not isinstance(parsed, DateTime):
        console.print(f"[red]Expected a date and time, got '{value}'[/red]")
        raise typer.Exit(1)

    return parsed.in_timezone("UTC")


def _parse_day(value: str, tz: str) -> DateTime:
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz)
    except ValueError as e:
        console.print(f"[red]Could not parse date '{value}': {e}[/red]")
        raise typer.Exit(1)


@app.command()
def availability(
    link_id: Annotated[str, typer.Argument(help="Booking link id")],
    start: Annotated[Optional[str], typer.Option("--start", help="Start date (YYYY-MM-DD)")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="End date (YYYY-MM-DD)")] = None,
    config_file: ConfigOption = None,
    now: NowOption = None,
    verbose: VerboseOption = False,
):
    """
    List the windows that can be booked on a link.

    Examples:

        slotbooker availability intro-call --start 2024-11-25 --end 2024-11-29

        slotbooker availability support --now 2024-11-25T08:00:00Z
    """
    _configure_logging(verbose)

    try:
        _, link, engine = _load(config_file, link_id, now)
        tz = link.meeting.timezone

        today = engine.now().in_timezone(tz)
        range_start = _parse_day(start, tz).start_of("day") if start else today.start_of("day")
        range_end = _parse_day(end, tz).end_of("day") if end else range_start.add(days=7).end_of("day")

        windows = engine.get_availability(link, range_start.in_timezone("UTC"), range_end.in_timezone("UTC"))

        console.print()
        if not windows:
            console.print(
                "[yellow]⚠ No available windows found.[/yellow]\n"
                "Try a longer range or check the link's lead time and working hours."
            )
            return

        table = Table(
            title=f"{link.title} ({link.meeting.duration_minutes} min, {tz})",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Window", style="bold")
        table.add_column("Free hosts", style="dim")

        for window in windows:
            table.add_row(window.format_display(tz), ", ".join(window.actor_ids))

        console.print(table)
        console.print(f"\n[bold green]✓ {len(windows)} window(s) available[/bold green]\n")

    except FileNotFoundError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    except (SlotbookerError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def book(
    link_id: Annotated[str, typer.Argument(help="Booking link id")],
    start: Annotated[str, typer.Argument(help="Window start, ISO 8601 (local to the link's zone unless an offset is given)")],
    name: Annotated[str, typer.Option("--name", help="Requester name")],
    email: Annotated[str, typer.Option("--email", help="Requester email")],
    notes: Annotated[str, typer.Option("--notes", help="Optional notes")] = "",
    config_file: ConfigOption = None,
    now: NowOption = None,
    verbose: VerboseOption = False,
):
    """
    Book a window on a link.

    Examples:

        slotbooker book intro-call 2024-11-26T10:00 --name "Ada" --email ada@example.com
    """
    _configure_logging(verbose)

    try:
        config, link, engine = _load(config_file, link_id, now)
        tz = link.meeting.timezone

        window_start = _parse_instant(start, tz)
        window = TimeRange(start=window_start, end=window_start.add(minutes=link.meeting.duration_minutes))

        booking = engine.commit_booking(link, Requester(name=name, email=email, notes=notes), window)

    except FileNotFoundError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    except SlotbookerError as e:
        console.print(f"[bold red]✗ Booking rejected ({type(e).__name__}):[/bold red] {e}")
        raise typer.Exit(1)

    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    host = config.find_actor(booking.actor_id)
    console.print(f"\n[bold green]✓ Booking confirmed[/bold green] ({booking.id})")
    console.print(f"   Window: {_format_window(link, booking.time_range)}")
    console.print(f"   Host: {host.display_name() if host else booking.actor_id}")
    console.print(f"   Requester: {booking.requester.name} <{booking.requester.email}>\n")


def _format_window(link: BookingLink, time_range: TimeRange) -> str:
    local = time_range.in_timezone(link.meeting.timezone)
    return f"{local.start.format('dddd, YYYY-MM-DD HH:mm')} - {local.end.format('HH:mm')} ({link.meeting.timezone})"


@app.command()
def list_actors(config_file: ConfigOption = None):
    """
    List all configured actors.
    """
    try:
        config_path = config_file or get_default_config_path()
        config = EngineConfig.load_from_yaml(config_path)

        if not config.actors:
            console.print("[yellow]No actors defined in the config file.[/yellow]")
            return

        table = Table(
            title="Configured actors",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Id", style="bold yellow")
        table.add_column("Name")
        table.add_column("Time zone", style="dim")

        for actor in config.actors:
            table.add_row(actor.id, actor.display_name(), actor.timezone)

        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbooker[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
