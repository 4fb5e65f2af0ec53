"""Query and acknowledge operations over the alert store."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from app.schemas import Alert, AlertType, Severity
from datastore.mock_dynamodb import AlertTable, build_default_alert_table

logger = logging.getLogger(__name__)


class AlertService:
    def __init__(self, table: AlertTable) -> None:
        self.table = table

    def list_alerts(
        self,
        room_id: Optional[str] = None,
        alert_type: Optional[AlertType] = None,
        severity: Optional[Severity] = None,
        acknowledged: Optional[bool] = None,
    ) -> list[Alert]:
        """Return matching alerts, newest first."""
        items = self.table.scan()
        if room_id is not None:
            items = [item for item in items if item.room_id == room_id]
        if alert_type is not None:
            items = [item for item in items if item.type == alert_type]
        if severity is not None:
            items = [item for item in items if item.severity == severity]
        if acknowledged is not None:
            items = [item for item in items if item.acknowledged == acknowledged]
        return sorted(items, key=lambda item: item.timestamp, reverse=True)

    def acknowledge(self, alert_id: str, now: Optional[datetime] = None) -> Alert:
        """Mark an alert acknowledged; repeated calls keep the first timestamp."""
        moment = now or datetime.now(timezone.utc)

        def _apply(current: Alert) -> Alert:
            if current.acknowledged:
                return current
            return current.model_copy(
                update={"acknowledged": True, "acknowledged_at": moment}
            )

        alert = self.table.update_item(alert_id, _apply)
        logger.info(
            "Alert acknowledged",
            extra={"alert_id": alert.id, "room_id": alert.room_id},
        )
        return alert


@lru_cache
def build_default_alert_service() -> AlertService:
    return AlertService(build_default_alert_table())
