from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

_SEVERITY_COLORS = {
    "info": typer.colors.BLUE,
    "warning": typer.colors.YELLOW,
    "critical": typer.colors.RED,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_record(payload: Dict[str, Any]) -> None:
    echo_heading(f"Room {payload.get('room_id')}")
    echo_key_values(
        [
            ("timestamp", payload.get("timestamp")),
            ("temperature", payload.get("temperature")),
            ("humidity", payload.get("humidity")),
            ("occupancy", payload.get("occupancy")),
            ("aqi", payload.get("aqi")),
            ("mode", payload.get("mode")),
        ]
    )


def render_records(payloads: List[Dict[str, Any]]) -> None:
    if not payloads:
        typer.echo("No telemetry recorded.")
        return
    for index, payload in enumerate(payloads):
        if index:
            typer.echo()
        render_record(payload)


def _details_text(details: Dict[str, Any]) -> str:
    return ", ".join(f"{key}={value}" for key, value in sorted(details.items()))


def render_alert(payload: Dict[str, Any]) -> None:
    severity = str(payload.get("severity") or "")
    state = "acknowledged" if payload.get("acknowledged") else "open"
    typer.secho(
        f"[{severity.upper()}] {payload.get('message')}",
        fg=_SEVERITY_COLORS.get(severity),
        bold=severity == "critical",
    )
    echo_key_values(
        [
            ("  id", payload.get("id")),
            ("  room_id", payload.get("room_id")),
            ("  type", payload.get("type")),
            ("  timestamp", payload.get("timestamp")),
            ("  state", state),
            ("  details", _details_text(payload.get("details") or {})),
        ]
    )
    if payload.get("acknowledgedAt"):
        typer.echo(f"  acknowledgedAt: {payload['acknowledgedAt']}")


def render_alerts(payloads: List[Dict[str, Any]]) -> None:
    echo_heading(f"Alerts ({len(payloads)})")
    if not payloads:
        typer.echo("No alerts found.")
        return
    for payload in payloads:
        render_alert(payload)
