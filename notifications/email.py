"""Alert notification rendering and delivery."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timezone
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.schemas import (
    Alert,
    HighOccupancyAlert,
    ModeChangeAlert,
    SystemFaultAlert,
    TemperatureThresholdAlert,
)
from notifications.mock_ses import MockSESClient

logger = logging.getLogger(__name__)

_environment = Environment(
    loader=FileSystemLoader(str(Path(__file__).resolve().parent / "templates")),
    autoescape=select_autoescape(["html"]),
)


class NotificationError(Exception):
    """Raised when an alert notification could not be handed to the mail service."""


@dataclass(frozen=True)
class Notification:
    subject: str
    body: str
    recipient: str


def detail_line(alert: Alert) -> str:
    """Type-specific summary line for an alert."""
    if isinstance(alert, ModeChangeAlert):
        return (
            f"Mode changed from {alert.details.old_mode.value} "
            f"to {alert.details.new_mode.value}"
        )
    if isinstance(alert, SystemFaultAlert):
        return f"Fault code: {alert.details.fault_code}"
    if isinstance(alert, HighOccupancyAlert):
        return f"Current occupancy: {alert.details.occupancy} people"
    if isinstance(alert, TemperatureThresholdAlert):
        return f"Current temperature: {alert.details.temperature}°C"
    raise TypeError(f"Unsupported alert type: {type(alert).__name__}")


def human_timestamp(alert: Alert) -> str:
    moment = alert.timestamp
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%d %b %Y, %H:%M:%S UTC")


def render_notification(alert: Alert, recipient: str) -> Notification:
    """Build the e-mail for an alert from its own fields only."""
    subject = f"{alert.severity.value.upper()} - {alert.message}"
    body = _environment.get_template("alert.html").render(
        alert=alert,
        alert_type=alert.type.value,
        severity=alert.severity.value,
        sent_time=human_timestamp(alert),
        detail=detail_line(alert),
    )
    return Notification(subject=subject, body=body, recipient=recipient)


class EmailNotifier:
    """Sends one e-mail per alert through the mail client."""

    def __init__(
        self,
        client: MockSESClient,
        sender: Optional[str],
        recipient: str,
    ) -> None:
        self.client = client
        self.sender = sender
        self.recipient = recipient

    def notify(self, alert: Alert) -> Optional[str]:
        """Return the message id, or ``None`` when no sender is configured."""
        if not self.sender:
            logger.info(
                "No sender email configured, skipping notification",
                extra={"alert_id": alert.id, "room_id": alert.room_id},
            )
            return None

        notification = render_notification(alert, self.recipient)
        try:
            message_id = self.client.send_email(
                source=self.sender,
                destinations=[notification.recipient],
                subject=notification.subject,
                html_body=notification.body,
            )
        except Exception as exc:
            raise NotificationError(f"Failed to send alert {alert.id}: {exc}") from exc

        logger.info(
            "Alert email sent",
            extra={"alert_id": alert.id, "recipient": notification.recipient},
        )
        return message_id
