from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.schemas import (
    AlertType,
    HighOccupancyAlert,
    HighOccupancyDetails,
    Severity,
    TemperatureDetails,
    TemperatureThresholdAlert,
)
from datastore.mock_dynamodb import AlertTable
from services.alerts import AlertService

_BASE = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def service() -> AlertService:
    table = AlertTable(name="alerts")
    table.put_item(
        HighOccupancyAlert(
            id="occ-1",
            timestamp=_BASE,
            room_id="A1",
            severity=Severity.warning,
            message="High occupancy detected in Room A1",
            details=HighOccupancyDetails(occupancy=9),
        )
    )
    table.put_item(
        TemperatureThresholdAlert(
            id="temp-1",
            timestamp=_BASE + timedelta(minutes=5),
            room_id="B2",
            severity=Severity.critical,
            message="High temperature detected in Room B2",
            details=TemperatureDetails(temperature=33.0),
        )
    )
    return AlertService(table)


def test_list_alerts_newest_first(service: AlertService) -> None:
    assert [alert.id for alert in service.list_alerts()] == ["temp-1", "occ-1"]


def test_list_alerts_filters(service: AlertService) -> None:
    assert [a.id for a in service.list_alerts(room_id="A1")] == ["occ-1"]
    assert [a.id for a in service.list_alerts(alert_type=AlertType.temperature_threshold)] == [
        "temp-1"
    ]
    assert [a.id for a in service.list_alerts(severity=Severity.warning)] == ["occ-1"]
    assert service.list_alerts(acknowledged=True) == []


def test_acknowledge_sets_both_fields_once(service: AlertService) -> None:
    first_moment = _BASE + timedelta(hours=1)

    alert = service.acknowledge("occ-1", now=first_moment)
    again = service.acknowledge("occ-1", now=first_moment + timedelta(hours=1))

    assert alert.acknowledged is True
    assert alert.acknowledged_at == first_moment
    assert again.acknowledged_at == first_moment
    assert [a.id for a in service.list_alerts(acknowledged=True)] == ["occ-1"]
    assert [a.id for a in service.list_alerts(acknowledged=False)] == ["temp-1"]


def test_acknowledge_missing_alert_raises(service: AlertService) -> None:
    with pytest.raises(KeyError):
        service.acknowledge("missing")
