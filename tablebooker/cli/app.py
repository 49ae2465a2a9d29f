"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table as RichTable

from ..adapters.backend_client import BackendClient
from ..adapters.mock_backend_client import MockBackendClient
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import TableBookerError
from ..domain.models import Table
from ..services.booking_service import BookingService
from ..services.dates import resolve_target_date

app = typer.Typer(
    name="tablebooker",
    help="Browse restaurant tables and book time slots",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
SeatsOption = Annotated[Optional[int], typer.Option("--seats", "-s", help="Number of seats")]
DateOption = Annotated[Optional[str], typer.Option("--date", "-d", help="Reservation date (YYYY-MM-DD), defaults to today")]
MockOption = Annotated[bool, typer.Option("--mock", help="Use mock backend data instead of the API.")]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    return AppConfig.load_from_yaml(config_path)


def _build_service(config: AppConfig, mock: bool) -> BookingService:
    if mock:
        console.print("[yellow]⚠  MOCK MODE: using test data[/yellow]\n")
        backend = MockBackendClient()
    else:
        backend = BackendClient(
            base_url=config.backend_url,
            access_token=config.access_token,
            timeout=config.request_timeout,
        )
    return BookingService(backend=backend, page_size=config.defaults.page_size)


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


def _print_table_card(table: Table) -> None:
    restaurant = table.restaurant
    console.print(f"[bold]{table.seats} Seats Table[/bold] [dim]({table.id})[/dim]")
    console.print(f"  Restaurant {restaurant.name} opened from {restaurant.window}")
    if table.reserved_hours:
        console.print(f"  [yellow]Not available at {table.format_reserved()}[/yellow]")


@app.command()
def tables(
    seats: SeatsOption = None,
    date: DateOption = None,
    pages: Annotated[int, typer.Option("--pages", "-p", min=1, help="Number of pages to load")] = 1,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    List available tables for a date and seat count.

    Examples:

        tablebooker tables --seats 4 --date 2026-10-20
        tablebooker tables --mock --pages 3
    """
    try:
        config = _load_config(config_file)
        target_date = resolve_target_date(date, config.timezone, config.defaults.max_days_ahead)
        seat_count = seats if seats is not None else config.defaults.seats
        service = _build_service(config, mock)

        async def _collect():
            await service.search(seats=seat_count, target_date=target_date)
            for _ in range(pages - 1):
                if service.listing.no_more_tables:
                    break
                await service.load_more()
            return service.listing.tables

        found = asyncio.run(_collect())
    except (FileNotFoundError, ValueError, TableBookerError) as e:
        _fail(e)

    console.print(f"\n[bold cyan]Tables for {seat_count} seats on {target_date.to_date_string()}[/bold cyan]\n")
    if not found:
        console.print("[yellow]No tables available, please use different date or amount of seats[/yellow]\n")
        return

    for table in found:
        _print_table_card(table)
        console.print()

    if service.listing.no_more_tables:
        console.print("[dim]No more tables.[/dim]\n")


@app.command()
def slots(
    table_id: Annotated[str, typer.Argument(help="Table identifier")],
    seats: SeatsOption = None,
    date: DateOption = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Show the start and end hours that can be booked for a table.
    """
    try:
        config = _load_config(config_file)
        target_date = resolve_target_date(date, config.timezone, config.defaults.max_days_ahead)
        seat_count = seats if seats is not None else config.defaults.seats
        service = _build_service(config, mock)
        table = asyncio.run(
            service.find_table(table_id=table_id, seats=seat_count, target_date=target_date)
        )
    except (FileNotFoundError, ValueError, TableBookerError) as e:
        _fail(e)

    if table is None:
        _fail(ValueError(f"Table {table_id} not found for {seat_count} seats"))

    options = service.slot_options(table)
    _print_table_card(table)
    console.print()

    if options.is_empty():
        console.print("[yellow]No bookable hours left on this date.[/yellow]\n")
        return

    hours_table = RichTable(title=f"Bookable hours on {target_date.to_date_string()}", show_header=True, header_style="bold cyan")
    hours_table.add_column("Start at", style="bold green")
    hours_table.add_column("End at", style="bold yellow")
    for row in range(max(len(options.start_hours), len(options.end_hours))):
        start = options.start_hours[row] if row < len(options.start_hours) else ""
        end = options.end_hours[row] if row < len(options.end_hours) else ""
        hours_table.add_row(str(start), str(end))

    console.print(hours_table)
    console.print(f"\nDefault selection: {options.default_start} - {options.default_end}\n")


@app.command()
def book(
    table_id: Annotated[str, typer.Argument(help="Table identifier")],
    start: Annotated[int, typer.Option("--start", help="Start hour")],
    end: Annotated[int, typer.Option("--end", help="End hour")],
    seats: SeatsOption = None,
    date: DateOption = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Book a table from START to END hour.

    Example:

        tablebooker book t-200 --start 14 --end 16 --seats 4 --date 2026-10-20
    """
    try:
        config = _load_config(config_file)
        target_date = resolve_target_date(date, config.timezone, config.defaults.max_days_ahead)
        seat_count = seats if seats is not None else config.defaults.seats
        service = _build_service(config, mock)

        async def _book():
            table = await service.find_table(table_id=table_id, seats=seat_count, target_date=target_date)
            if table is None:
                raise ValueError(f"Table {table_id} not found for {seat_count} seats")
            return await service.book(table=table, date=target_date, start_at=start, end_at=end)

        result = asyncio.run(_book())
    except (FileNotFoundError, ValueError, TableBookerError) as e:
        _fail(e)

    if not result.ok:
        if result.error.start_message:
            console.print(f"[red]Start at:[/red] {result.error.start_message}")
        if result.error.end_message:
            console.print(f"[red]End at:[/red] {result.error.end_message}")
        raise typer.Exit(1)

    console.print("[bold green]✓ Your reservation was successfully created[/bold green]")
    console.print(f"It will be on {target_date.to_date_string()} from {start} to {end}\n")


@app.command()
def signup(
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Register a new user and print the issued access token.
    """
    name = typer.prompt("Name")
    email = typer.prompt("E-mail")
    password = typer.prompt("Password", hide_input=True, confirmation_prompt=True)

    try:
        config = _load_config(config_file)
        backend = MockBackendClient() if mock else BackendClient(base_url=config.backend_url, timeout=config.request_timeout)
        token = backend.sign_up({"name": name, "email": email, "password": password})
    except (FileNotFoundError, ValueError, TableBookerError) as e:
        _fail(e)

    console.print("[bold green]✓ Account created.[/bold green]")
    console.print("Add this access token to your config.yaml:\n")
    console.print(f"access_token: {token}\n")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]tablebooker[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
