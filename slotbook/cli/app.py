"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, NoReturn, Optional, Tuple

import typer
from pendulum import DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.json_repository import JsonBookingRepository
from ..config import AppConfig, get_default_config_path
from ..domain.calendar_utils import (
    clock_to_minutes,
    date_key,
    minutes_to_clock,
    parse_date_key,
    weekday,
)
from ..domain.exceptions import SlotbookError
from ..domain.models import WEEKDAY_NAMES, Override, Window
from ..services.booking_service import BookingService

app = typer.Typer(
    name="slotbook",
    help="Find and book slots for recurring weekly services",
    add_completion=False
)
override_app = typer.Typer(help="Manage per-weekday opening hour overrides.")
blackout_app = typer.Typer(help="Manage blackout dates.")
app.add_typer(override_app, name="override")
app.add_typer(blackout_app, name="blackout")

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")
]
ServiceOption = Annotated[
    Optional[str],
    typer.Option("--service", "-s", help="Service id. Defaults to the first configured service.")
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """
    Bookable slots for recurring weekly services.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)]
        )


def _load(config_file: Optional[Path]) -> Tuple[AppConfig, JsonBookingRepository, BookingService]:
    """Load configuration and wire the booking service."""
    config_path = config_file or get_default_config_path()
    config = AppConfig.load_from_yaml(config_path)
    repository = JsonBookingRepository(config.data_file)
    service = BookingService(
        catalog=config.build_catalog(),
        repository=repository,
        timezone=config.timezone,
        recommendation_limit=config.defaults.recommendation_limit,
    )
    return config, repository, service


def _resolve_service_id(config: AppConfig, service_id: Optional[str]) -> str:
    if service_id is None:
        if not config.services:
            raise SlotbookError("No services defined in the config file.")
        return config.services[0].id

    service_config = config.find_service(service_id)
    if service_config is None:
        known = ", ".join(s.id for s in config.services) or "none"
        raise SlotbookError(f"Unknown service '{service_id}'. Known services: {known}")
    return service_config.id


def _parse_day(value: Optional[str], booking_service: BookingService) -> DateTime:
    if value is None:
        return booking_service.now().start_of("day")
    return parse_date_key(value, booking_service.timezone)


def _fail(exc: Exception) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {exc}")
    raise typer.Exit(1)


def _day_label(day: DateTime) -> str:
    return f"{WEEKDAY_NAMES[weekday(day)]}, {day.format('DD.MM.YYYY')}"


@app.command()
def services(config_file: ConfigOption = None):
    """
    List all configured services and their default weekly hours.
    """
    try:
        _, _, booking_service = _load(config_file)
    except (SlotbookError, FileNotFoundError) as e:
        _fail(e)

    if not booking_service.services:
        console.print("[yellow]No services defined in the config file.[/yellow]")
        return

    table = Table(title="Services", show_header=True, header_style="bold cyan")
    table.add_column("Id", style="bold yellow")
    table.add_column("Name")
    table.add_column("Duration")
    table.add_column("Grid")
    table.add_column("Lead time")
    table.add_column("Weekly hours", style="dim")

    for svc in booking_service.services:
        hours = "; ".join(
            f"{WEEKDAY_NAMES[day]} " + ", ".join(str(w) for w in windows)
            for day, windows in sorted(svc.windows.items())
        )
        table.add_row(
            svc.id,
            svc.name,
            f"{svc.duration_minutes} min",
            f"{svc.slot_grid_minutes} min",
            f"{svc.lead_time_minutes} min",
            hours or "-"
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def calendar(
    service_id: ServiceOption = None,
    start: Annotated[Optional[str], typer.Option("--start", help="Any date in the first week (YYYY-MM-DD)")] = None,
    weeks: Annotated[Optional[int], typer.Option("--weeks", "-w", min=1, help="Number of weeks to show")] = None,
    config_file: ConfigOption = None,
):
    """
    Show free slot counts per day for the next weeks (Monday first).
    """
    try:
        config, _, booking_service = _load(config_file)
        service_id = _resolve_service_id(config, service_id)
        svc = booking_service.get_service(service_id)
        start_day = _parse_day(start, booking_service)
        overview = booking_service.calendar_overview(
            service_id,
            start=start_day,
            weeks=weeks if weeks is not None else config.defaults.weeks_ahead,
            days_per_week=config.defaults.days_per_week,
        )
    except (SlotbookError, FileNotFoundError, ValueError) as e:
        _fail(e)

    today = booking_service.now().start_of("day")
    table = Table(title=f"{svc.name} - availability", show_header=True, header_style="bold cyan")
    table.add_column("Day", style="bold")
    table.add_column("Free slots", justify="right")

    for day, count in overview:
        if day < today:
            table.add_row(f"[dim]{_day_label(day)}[/dim]", "[dim]-[/dim]")
        elif count == 0:
            table.add_row(_day_label(day), "[dim]No availability[/dim]")
        else:
            table.add_row(_day_label(day), f"[green]{count}[/green]")

    console.print()
    console.print(table)
    console.print()


@app.command()
def slots(
    day: Annotated[Optional[str], typer.Argument(help="Date (YYYY-MM-DD). Defaults to today.")] = None,
    service_id: ServiceOption = None,
    config_file: ConfigOption = None,
):
    """
    Show the free slots of one day, suggested times first.
    """
    try:
        config, _, booking_service = _load(config_file)
        service_id = _resolve_service_id(config, service_id)
        target = _parse_day(day, booking_service)
        availability = booking_service.day_availability(service_id, target)
    except (SlotbookError, FileNotFoundError) as e:
        _fail(e)

    console.print(f"\n[bold cyan]{availability.service.name}[/bold cyan] - {_day_label(target)}\n")

    if availability.is_closed:
        console.print("[yellow]Closed on this day.[/yellow]\n")
        return
    if not availability.slots:
        console.print("[yellow]No free slots on this day.[/yellow]\n")
        return

    if availability.suggested:
        console.print("[bold green]Suggested times[/bold green]")
        for slot in availability.suggested:
            console.print(f"  [green]{slot.start.format('HH:mm')} - {slot.end.format('HH:mm')}[/green]")
        console.print()

    console.print("[bold]Other times available[/bold]")
    for slot in availability.others:
        console.print(f"  {slot.start.format('HH:mm')} - {slot.end.format('HH:mm')}")
    console.print()


@app.command()
def book(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    start: Annotated[str, typer.Argument(help="Slot start (HH:MM)")],
    service_id: ServiceOption = None,
    repeat: Annotated[bool, typer.Option("--repeat", help="Offer the same slot in the following weeks.")] = False,
    weeks: Annotated[Optional[int], typer.Option("--weeks", "-w", min=1, help="Total weeks for --repeat")] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Book repeats without asking.")] = False,
    config_file: ConfigOption = None,
):
    """
    Book a slot, optionally repeating it weekly.

    Examples:

        slotbook book 2025-01-06 09:00
        slotbook book 2025-01-06 09:00 --service pt_local --repeat
    """
    try:
        config, _, booking_service = _load(config_file)
        service_id = _resolve_service_id(config, service_id)
        target = parse_date_key(day, booking_service.timezone)
        booking = booking_service.book(service_id, target, start)
    except (SlotbookError, FileNotFoundError) as e:
        _fail(e)

    console.print(f"[green]✓ Booked {booking}[/green]")

    if not repeat:
        return

    total_weeks = weeks if weeks is not None else config.defaults.recurring_weeks
    try:
        candidates = booking_service.recurring_candidates(service_id, booking, weeks=total_weeks)
    except (SlotbookError, ValueError) as e:
        _fail(e)

    if not candidates:
        console.print("[yellow]The same time is not free in any of the following weeks.[/yellow]")
        return

    console.print("\nSame time is free on:")
    for slot in candidates:
        console.print(f"  {slot.format_display()}")

    if not yes and not typer.confirm(f"\nBook these {len(candidates)} slot(s) as well?", default=True):
        return

    try:
        repeated = booking_service.book_recurring(service_id, candidates)
    except SlotbookError as e:
        _fail(e)

    console.print(f"[green]✓ Booked {len(repeated)} recurring slot(s)[/green]")


@app.command()
def bookings(
    service_id: ServiceOption = None,
    day: Annotated[Optional[str], typer.Option("--date", help="Only this date (YYYY-MM-DD)")] = None,
    config_file: ConfigOption = None,
):
    """
    List existing bookings.
    """
    try:
        config, repository, booking_service = _load(config_file)
        if service_id is not None:
            service_id = _resolve_service_id(config, service_id)
        key = date_key(parse_date_key(day, booking_service.timezone)) if day else None
    except (SlotbookError, FileNotFoundError) as e:
        _fail(e)

    items = sorted(
        repository.list_bookings(service_id=service_id, date=key),
        key=lambda b: (b.date, b.start)
    )
    if not items:
        console.print("[yellow]No bookings found.[/yellow]")
        return

    table = Table(title="Bookings", show_header=True, header_style="bold cyan")
    table.add_column("Service", style="bold yellow")
    table.add_column("Date")
    table.add_column("Time")
    for item in items:
        table.add_row(
            item.service_id,
            item.date,
            f"{minutes_to_clock(item.start)} - {minutes_to_clock(item.end)}"
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def cancel(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    start: Annotated[str, typer.Argument(help="Booking start (HH:MM)")],
    service_id: ServiceOption = None,
    config_file: ConfigOption = None,
):
    """
    Cancel an existing booking.
    """
    try:
        config, repository, booking_service = _load(config_file)
        service_id = _resolve_service_id(config, service_id)
        key = date_key(parse_date_key(day, booking_service.timezone))
        start_minute = clock_to_minutes(start)
        matches = [
            b for b in repository.list_bookings(service_id=service_id, date=key)
            if b.start == start_minute
        ]
        if not matches:
            raise SlotbookError(f"No booking for '{service_id}' on {key} at {start}")
        booking_service.cancel(matches[0])
    except (SlotbookError, FileNotFoundError) as e:
        _fail(e)

    console.print(f"[green]✓ Cancelled {matches[0]}[/green]")


def _parse_weekday(value: str) -> int:
    """Accept 0-6 (0=Sunday) or a weekday name such as 'mon'."""
    if value.isdigit() and int(value) in range(7):
        return int(value)
    for index, name in enumerate(WEEKDAY_NAMES):
        if value[:3].lower() == name.lower():
            return index
    raise SlotbookError(f"Invalid weekday '{value}', use 0-6 (0=Sunday) or Sun..Sat")


@override_app.command("set")
def override_set(
    day: Annotated[str, typer.Argument(help="Weekday (0=Sunday..6 or Sun..Sat)")],
    start: Annotated[str, typer.Argument(help="Opening time (HH:MM)")],
    end: Annotated[str, typer.Argument(help="Closing time (HH:MM)")],
    service_id: ServiceOption = None,
    config_file: ConfigOption = None,
):
    """
    Replace a weekday's default hours with a single window.
    """
    try:
        config, repository, _ = _load(config_file)
        service_id = _resolve_service_id(config, service_id)
        override = Override(
            service_id=service_id,
            weekday=_parse_weekday(day),
            window=Window.from_clock(start, end)
        )
        repository.set_override(override)
    except (SlotbookError, FileNotFoundError) as e:
        _fail(e)

    console.print(f"[green]✓ {service_id}: {WEEKDAY_NAMES[override.weekday]} open {override.window}[/green]")


@override_app.command("close")
def override_close(
    day: Annotated[str, typer.Argument(help="Weekday (0=Sunday..6 or Sun..Sat)")],
    service_id: ServiceOption = None,
    config_file: ConfigOption = None,
):
    """
    Close a weekday regardless of default hours.
    """
    try:
        config, repository, _ = _load(config_file)
        service_id = _resolve_service_id(config, service_id)
        override = Override(service_id=service_id, weekday=_parse_weekday(day))
        repository.set_override(override)
    except (SlotbookError, FileNotFoundError) as e:
        _fail(e)

    console.print(f"[green]✓ {service_id}: {WEEKDAY_NAMES[override.weekday]} closed[/green]")


@override_app.command("clear")
def override_clear(
    day: Annotated[str, typer.Argument(help="Weekday (0=Sunday..6 or Sun..Sat)")],
    service_id: ServiceOption = None,
    config_file: ConfigOption = None,
):
    """
    Restore a weekday's default hours.
    """
    try:
        config, repository, _ = _load(config_file)
        service_id = _resolve_service_id(config, service_id)
        weekday_index = _parse_weekday(day)
        repository.clear_override(service_id, weekday_index)
    except (SlotbookError, FileNotFoundError) as e:
        _fail(e)

    console.print(f"[green]✓ {service_id}: {WEEKDAY_NAMES[weekday_index]} uses default hours[/green]")


@override_app.command("list")
def override_list(config_file: ConfigOption = None):
    """
    List all overrides.
    """
    try:
        _, repository, _ = _load(config_file)
    except (SlotbookError, FileNotFoundError) as e:
        _fail(e)

    overrides = sorted(repository.get_overrides().values(), key=lambda o: o.key)
    if not overrides:
        console.print("[yellow]No overrides defined.[/yellow]")
        return

    table = Table(title="Overrides", show_header=True, header_style="bold cyan")
    table.add_column("Service", style="bold yellow")
    table.add_column("Weekday")
    table.add_column("Hours")
    for override in overrides:
        table.add_row(
            override.service_id,
            WEEKDAY_NAMES[override.weekday],
            "[red]closed[/red]" if override.is_closed else str(override.window)
        )

    console.print()
    console.print(table)
    console.print()


@blackout_app.command("add")
def blackout_add(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
):
    """
    Close every service on a date.
    """
    try:
        _, repository, booking_service = _load(config_file)
        key = date_key(parse_date_key(day, booking_service.timezone))
        repository.add_blackout(key)
    except (SlotbookError, FileNotFoundError) as e:
        _fail(e)

    console.print(f"[green]✓ Blackout added: {key}[/green]")


@blackout_app.command("remove")
def blackout_remove(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
):
    """
    Reopen a blacked-out date.
    """
    try:
        _, repository, booking_service = _load(config_file)
        key = date_key(parse_date_key(day, booking_service.timezone))
        repository.remove_blackout(key)
    except (SlotbookError, FileNotFoundError) as e:
        _fail(e)

    console.print(f"[green]✓ Blackout removed: {key}[/green]")


@blackout_app.command("list")
def blackout_list(config_file: ConfigOption = None):
    """
    List blackout dates.
    """
    try:
        _, repository, _ = _load(config_file)
    except (SlotbookError, FileNotFoundError) as e:
        _fail(e)

    blackouts = sorted(repository.get_blackouts())
    if not blackouts:
        console.print("[yellow]No blackout days.[/yellow]")
        return

    for key in blackouts:
        console.print(f"  {key}")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbook[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
