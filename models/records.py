"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Mode(str, Enum):
    """HVAC operating mode assigned to a room at ingestion time."""

    eco = "Eco"
    comfort = "Comfort"
    cool = "Cool"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Mode"]:
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class ChangeKind(str, Enum):
    insert = "INSERT"
    update = "MODIFY"
    other = "OTHER"


@dataclass(frozen=True, slots=True)
class TelemetrySample:
    """A single sensor reading for a room at an instant."""

    room_id: str
    timestamp: str
    temperature: float
    humidity: float
    occupancy: int
    aqi: float
    mode: Optional[Mode]


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """One entry of the telemetry change feed."""

    kind: ChangeKind
    new_sample: Optional[TelemetrySample] = None
    old_sample: Optional[TelemetrySample] = None
