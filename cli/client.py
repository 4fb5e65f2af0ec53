from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the room alerts service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def ingest(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/ingest", json=payload)

    def latest(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/rooms/latest")

    def list_alerts(self, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        params = {key: value for key, value in filters.items() if value is not None}
        return self._request("GET", "/alerts", params=params)

    def acknowledge(self, alert_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/alerts/{alert_id}/acknowledge")

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            response = self._client.request(method, path, params=params, json=json)
            if response.status_code == 404:
                raise typer.BadParameter(self._detail(response) or f"{path} was not found.")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _detail(response: httpx.Response) -> Optional[str]:
        try:
            detail = response.json().get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            return response.text.strip() or None
        return detail if isinstance(detail, str) else None

    @classmethod
    def _handle_http_error(cls, exc: httpx.HTTPStatusError) -> None:
        detail = cls._detail(exc.response)
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
