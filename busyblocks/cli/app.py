"""
Main CLI application using Typer.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.caldav_transport import CalDAVSchedulingTransport
from ..adapters.mock_transport import MockSchedulingTransport
from ..config import AppConfig, get_default_config_path
from ..domain.models import FreeBusyQuery
from ..services.freebusy_pipeline import FreeBusyPipeline

app = typer.Typer(
    name="busyblocks",
    help="Show busy time of meeting participants and resources via CalDAV free-busy",
    add_completion=False
)

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _parse_instant(value: str, tz: str, option: str) -> pendulum.DateTime:
    try:
        parsed = pendulum.parse(value, tz=tz)
    except Exception as e:
        console.print(f"[red]Error parsing {option}: {e}[/red]")
        raise typer.Exit(1)

    if not isinstance(parsed, pendulum.DateTime):
        console.print(f"[red]Error parsing {option}: '{value}' is not a date/time[/red]")
        raise typer.Exit(1)
    return parsed


@app.command()
def blocks(
    participants: Annotated[Optional[List[str]], typer.Argument(help="Participant names or emails (e.g. 'max erika@example.com').")] = None,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")] = None,
    start: Annotated[Optional[str], typer.Option("--start", help="Start of the window (ISO-8601). Defaults to today 00:00")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="End of the window (ISO-8601). Defaults to start + 1 day")] = None,
    timezone: Annotated[Optional[str], typer.Option("--timezone", "-t", help="Display timezone. Defaults to the configured one")] = None,
    resources: Annotated[Optional[List[str]], typer.Option("--resource", "-r", help="Resource id to tag busy blocks with (repeatable).")] = None,
    mock: Annotated[bool, typer.Option("--mock", help="Use mock free-busy data instead of a CalDAV server.")] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print the busy block events as JSON.")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    Fetch free-busy data and print the resulting busy blocks.

    Examples:

        # All configured participants for today
        busyblocks blocks

        # Selected participants and a room
        busyblocks blocks max erika --resource room-101

        # Explicit window, JSON output
        busyblocks blocks max --start 2024-01-01T09:00 --end 2024-01-01T17:00 --json

        # Use mock data (for testing without a server)
        busyblocks blocks --mock --start 2024-01-01
    """
    _configure_logging(verbose)

    try:
        config_path = config_file or get_default_config_path()
        config = AppConfig.load_from_yaml(config_path)
    except FileNotFoundError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[bold red]Invalid config:[/bold red] {e}")
        raise typer.Exit(1)

    display_tz = timezone or config.timezone
    window_start = _parse_instant(start, config.timezone, "--start") if start else pendulum.today(config.timezone)
    window_end = _parse_instant(end, config.timezone, "--end") if end else window_start.add(days=1)

    try:
        if participants:
            attendees = [config.resolve_participant(p) for p in participants]
        else:
            attendees = [p.to_identity() for p in config.participants]
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if resources:
        resource_refs = [config.resolve_resource(r) for r in resources]
    else:
        resource_refs = [r.to_ref() for r in config.resources]

    if mock:
        console.print("[yellow]⚠  MOCK MODE: using test data[/yellow]\n")
        transport = MockSchedulingTransport()
    else:
        if not config.server_url:
            console.print("[bold red]Error:[/bold red] server_url is not configured")
            raise typer.Exit(1)
        transport = CalDAVSchedulingTransport(
            server_url=config.server_url,
            auth=config.get_auth(),
            timeout=config.request_timeout,
        )

    pipeline = FreeBusyPipeline(
        transport=transport,
        organizer=config.organizer.to_identity(),
        attendees=attendees,
        resources=resource_refs,
    )

    try:
        result = asyncio.run(
            pipeline.run(FreeBusyQuery(start=window_start, end=window_end, display_timezone=display_tz))
        )
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not result.ok:
        console.print(f"[bold red]Free-busy request failed:[/bold red] {result.error}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps([event.to_dict() for event in result.events], indent=2))
        return

    if not result.events:
        console.print("[green]✓ No busy blocks in the requested window.[/green]")
        return

    table = Table(
        title=f"Busy blocks ({display_tz})",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Start", style="bold yellow")
    table.add_column("End", style="bold yellow")
    table.add_column("Resources", style="dim")

    for event in result.events:
        table.add_row(event.start, event.end, ", ".join(event.resource_ids))

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]busyblocks[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
