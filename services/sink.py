"""Persist-then-notify delivery for derived alerts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol

from app.schemas import Alert
from datastore.mock_dynamodb import AlertTable

logger = logging.getLogger(__name__)


class SinkError(Exception):
    """An alert could not be written to the alert store."""

    def __init__(self, alert_id: str, message: str) -> None:
        super().__init__(message)
        self.alert_id = alert_id


class Notifier(Protocol):
    def notify(self, alert: Alert) -> Optional[str]: ...


@dataclass(frozen=True)
class DispatchOutcome:
    alert_id: str
    persisted: bool
    notified: bool
    error: Optional[SinkError] = None


class AlertSink:
    """Writes each alert to the store, then attempts a single notification.

    Persistence failures raise :class:`SinkError`; notification failures are
    logged and never undo the stored alert. No retries happen here.
    """

    def __init__(self, table: AlertTable, notifier: Notifier) -> None:
        self.table = table
        self.notifier = notifier

    def dispatch(self, alert: Alert) -> bool:
        """Store and notify; returns whether a notification went out."""
        try:
            self.table.put_item(alert)
        except Exception as exc:
            logger.error(
                "Failed to persist alert",
                extra={
                    "alert_id": alert.id,
                    "room_id": alert.room_id,
                    "alert_type": alert.type,
                    "reason": str(exc),
                },
            )
            raise SinkError(alert.id, f"Failed to persist alert {alert.id}: {exc}") from exc

        logger.info(
            "Alert created",
            extra={
                "alert_id": alert.id,
                "room_id": alert.room_id,
                "alert_type": alert.type,
                "severity": alert.severity,
            },
        )

        try:
            message_id = self.notifier.notify(alert)
        except Exception:
            logger.exception(
                "Alert notification failed",
                extra={"alert_id": alert.id, "room_id": alert.room_id},
            )
            return False
        return message_id is not None

    def dispatch_all(self, alerts: Iterable[Alert]) -> List[DispatchOutcome]:
        """Dispatch alerts in order; one failure does not stop the rest."""
        outcomes: List[DispatchOutcome] = []
        for alert in alerts:
            try:
                notified = self.dispatch(alert)
            except SinkError as exc:
                outcomes.append(
                    DispatchOutcome(alert_id=alert.id, persisted=False, notified=False, error=exc)
                )
                continue
            outcomes.append(DispatchOutcome(alert_id=alert.id, persisted=True, notified=notified))
        return outcomes
