from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.schemas import TelemetryIn
from datastore.mock_dynamodb import TelemetryTable
from models.records import Mode
from services.telemetry import TelemetryService, decide_mode


@pytest.mark.parametrize(
    ("temperature", "occupancy", "aqi", "expected"),
    [
        (35.0, 0, 250.0, Mode.eco),
        (26.1, 2, 50.0, Mode.cool),
        (22.0, 2, 100.1, Mode.cool),
        (26.0, 2, 100.0, Mode.comfort),
    ],
)
def test_decide_mode(temperature: float, occupancy: int, aqi: float, expected: Mode) -> None:
    assert decide_mode(temperature, occupancy, aqi) is expected


def test_ingest_stamps_time_and_mode() -> None:
    table = TelemetryTable(name="room_data")
    service = TelemetryService(table)
    now = datetime(2024, 5, 1, 10, 15, 30, 123456, tzinfo=timezone.utc)

    record = service.ingest(
        TelemetryIn(room_id="A1", temperature=28.0, humidity=40, occupancy=2, aqi=30),
        now=now,
    )

    assert record.timestamp == "2024-05-01T10:15:30.123Z"
    assert record.mode is Mode.cool
    assert table.get_item("A1", record.timestamp) == record


def test_history_limit_keeps_most_recent() -> None:
    service = TelemetryService(TelemetryTable(name="room_data"))
    start = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    for offset in range(5):
        service.ingest(
            TelemetryIn(
                room_id="A1",
                temperature=21,
                humidity=40,
                occupancy=1,
                aqi=20,
                timestamp=start + timedelta(minutes=offset),
            )
        )

    history = service.history("A1", limit=2)

    assert [item.timestamp for item in history] == [
        "2024-05-01T10:03:00.000Z",
        "2024-05-01T10:04:00.000Z",
    ]
    assert len(service.history("A1")) == 5
    assert service.history("missing") == []
