"""Telemetry ingestion and room read models."""

from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from app.schemas import TelemetryIn, TelemetryRecord
from datastore.mock_dynamodb import TelemetryTable, build_default_telemetry_table
from models.records import Mode

COOL_TEMPERATURE = 26.0
COOL_AQI = 100.0


def decide_mode(temperature: float, occupancy: int, aqi: float) -> Mode:
    """Pick the HVAC mode for a fresh reading."""
    if occupancy == 0:
        return Mode.eco
    if temperature > COOL_TEMPERATURE or aqi > COOL_AQI:
        return Mode.cool
    return Mode.comfort


def _format_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TelemetryService:
    """Writes validated readings to the telemetry table and reads them back."""

    def __init__(self, table: TelemetryTable) -> None:
        self.table = table

    def ingest(self, payload: TelemetryIn, now: Optional[datetime] = None) -> TelemetryRecord:
        moment = payload.timestamp or now or datetime.now(timezone.utc)
        record = TelemetryRecord(
            room_id=payload.room_id,
            timestamp=_format_timestamp(moment),
            temperature=payload.temperature,
            humidity=payload.humidity,
            occupancy=payload.occupancy,
            aqi=payload.aqi,
            mode=decide_mode(payload.temperature, payload.occupancy, payload.aqi),
        )
        self.table.put_item(record)
        return record

    def latest(self) -> list[TelemetryRecord]:
        return self.table.latest_per_room()

    def history(self, room_id: str, limit: Optional[int] = None) -> list[TelemetryRecord]:
        items = self.table.query(room_id)
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items


@lru_cache
def build_default_telemetry_service() -> TelemetryService:
    return TelemetryService(build_default_telemetry_table())
