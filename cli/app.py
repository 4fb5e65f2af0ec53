from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_alert, render_alerts, render_record, render_records


class SeverityChoice(str, Enum):
    info = "info"
    warning = "warning"
    critical = "critical"


class AlertTypeChoice(str, Enum):
    mode_change = "mode_change"
    system_fault = "system_fault"
    high_occupancy = "high_occupancy"
    temperature_threshold = "temperature_threshold"


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the room alerts service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Request timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("ingest")
def ingest_command(
    ctx: typer.Context,
    room_id: str = typer.Argument(..., help="Room identifier."),
    temperature: float = typer.Option(..., "--temperature", "-t", help="Temperature in °C."),
    humidity: float = typer.Option(..., "--humidity", help="Relative humidity in %."),
    occupancy: int = typer.Option(..., "--occupancy", "-o", min=0, help="People in the room."),
    aqi: float = typer.Option(..., "--aqi", help="Air quality index."),
) -> None:
    """Send one telemetry sample."""
    state = _get_state(ctx)
    payload = state.client.ingest(
        {
            "room_id": room_id,
            "temperature": temperature,
            "humidity": humidity,
            "occupancy": occupancy,
            "aqi": aqi,
        }
    )
    typer.secho(f"Sample stored. mode={payload.get('mode')}", fg=typer.colors.GREEN)
    render_record(payload)


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the latest sample for every room."""
    state = _get_state(ctx)
    render_records(state.client.latest())


@app.command("alerts")
def alerts_command(
    ctx: typer.Context,
    room_id: Optional[str] = typer.Option(None, "--room", "-r", help="Filter by room."),
    alert_type: Optional[AlertTypeChoice] = typer.Option(None, "--type", help="Filter by type."),
    severity: Optional[SeverityChoice] = typer.Option(None, "--severity", "-s"),
    open_only: bool = typer.Option(False, "--open", help="Only unacknowledged alerts."),
) -> None:
    """List alerts, newest first."""
    state = _get_state(ctx)
    payloads = state.client.list_alerts(
        {
            "roomId": room_id,
            "type": alert_type.value if alert_type else None,
            "severity": severity.value if severity else None,
            "acknowledged": "false" if open_only else None,
        }
    )
    render_alerts(payloads)


@app.command("ack")
def acknowledge_command(
    ctx: typer.Context,
    alert_id: str = typer.Argument(..., help="Identifier of the alert to acknowledge."),
) -> None:
    """Acknowledge an alert."""
    state = _get_state(ctx)
    payload = state.client.acknowledge(alert_id)
    typer.secho(payload.get("message", "Alert acknowledged."), fg=typer.colors.GREEN)
    render_alert(payload.get("alert") or {})
