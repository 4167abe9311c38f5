"""
Main CLI application using Typer.
"""

import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.memory_store import InMemoryStore
from ..adapters.slots_client import SlotsApiClient
from ..config import AppConfig
from ..domain.exceptions import ApiError, NotFoundError, SlotbookError
from ..domain.slot_calculator import SlotCalculator
from ..services.availability import AvailabilityService, SlotSearchResult

app = typer.Typer(
    name="slotbook",
    help="Find bookable appointment slots for providers and services",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
DataOption = Annotated[
    Optional[Path],
    typer.Option("--data", "-d", help="Data file with providers, services and bookings"),
]


def _configure_logging(level: int) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> tuple[AppConfig, Path]:
    """Load the config and return it with the directory relative paths resolve against."""
    config = AppConfig.load_or_default(config_file)
    base_dir = config_file.parent if config_file else Path.cwd()
    _configure_logging(config.logging_level)
    return config, base_dir


def _render_slots(result: SlotSearchResult) -> None:
    if not result.slots:
        console.print(
            "[yellow]⚠ No bookable slots found.[/yellow]\n"
            "Try another date or a shorter service."
        )
        return

    table = Table(
        title=f"Slots on {result.date.isoformat()} ({result.timezone})",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("#", style="dim", justify="right")
    table.add_column("Start", style="bold yellow")
    table.add_column("End")
    table.add_column("UTC", style="dim")

    for idx, slot in enumerate(result.slots, 1):
        payload = slot.to_payload(result.timezone)
        table.add_row(str(idx), payload["startTime"], payload["endTime"], payload["start"])

    console.print()
    console.print(table)
    console.print(f"[bold green]✓ {len(result.slots)} slot(s) available[/bold green]\n")


@app.command()
def slots(
    provider_id: Annotated[str, typer.Argument(help="Provider id")],
    service_id: Annotated[str, typer.Argument(help="Service id")],
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    step: Annotated[Optional[int], typer.Option("--step", help="Slot step in minutes")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the API payload as JSON")] = False,
):
    """
    Compute bookable slots locally from a data file.

    Examples:

        slotbook slots provider-1 haircut 2030-01-07

        slotbook slots provider-1 haircut 2030-01-07 --data data.yaml --step 15 --json
    """
    try:
        config, base_dir = _load_config(config_file)
        data_path = data_file or config.resolve_data_file(base_dir)
        store = InMemoryStore.load_from_file(data_path)

        service = AvailabilityService(
            settings_store=store,
            service_catalog=store,
            booking_store=store,
            slot_calculator=SlotCalculator(
                step_minutes=config.step_minutes if step is None else step
            ),
        )
        result = service.find_slots(provider_id, service_id, date)

    except (FileNotFoundError, ValueError, SlotbookError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        code = 2 if isinstance(e, NotFoundError) else 1
        raise typer.Exit(code)

    if as_json:
        typer.echo(json.dumps(result.to_payload(), indent=2))
    else:
        _render_slots(result)


@app.command()
def query(
    provider_id: Annotated[str, typer.Argument(help="Provider id")],
    service_id: Annotated[str, typer.Argument(help="Service id")],
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    url: Annotated[str, typer.Option("--url", help="Base URL of a running slotbook server")] = "http://127.0.0.1:8000",
):
    """
    Ask a running slotbook server for bookable slots.
    """
    client = SlotsApiClient(base_url=url)

    try:
        slot_payloads = client.get_slots(provider_id, service_id, date)
    except ApiError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not slot_payloads:
        console.print("[yellow]⚠ No bookable slots found.[/yellow]")
        return

    for payload in slot_payloads:
        console.print(f"  {payload['startTime']} - {payload['endTime']}  [dim]{payload['start']}[/dim]")


@app.command()
def serve(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    host: Annotated[Optional[str], typer.Option("--host", help="Bind address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", help="Bind port")] = None,
):
    """
    Run the HTTP API with uvicorn.
    """
    import uvicorn

    from ..api.app import create_app_from_config

    try:
        config, base_dir = _load_config(config_file)
        if data_file is not None:
            config = config.model_copy(update={"data_file": data_file.resolve()})
        api = create_app_from_config(config, base_dir=base_dir)
    except (FileNotFoundError, ValueError, SlotbookError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    uvicorn.run(
        api,
        host=host or config.host,
        port=port or config.port,
        log_level=config.log_level.lower(),
    )


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbook[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
