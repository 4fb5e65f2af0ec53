"""Alert derivation for telemetry change events."""

from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Callable, List, Optional
from uuid import uuid4

from app.schemas import (
    Alert,
    HighOccupancyAlert,
    HighOccupancyDetails,
    ModeChangeAlert,
    ModeChangeDetails,
    Severity,
    SystemFaultAlert,
    SystemFaultDetails,
    TemperatureDetails,
    TemperatureThresholdAlert,
)
from models.records import ChangeEvent, ChangeKind, TelemetrySample
from services.policy import FAULT_CODES, ThresholdPolicy

Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class AlertEngine:
    """Stateless rule evaluation over one change event at a time.

    The clock, id factory and random source are injectable so tests can pin
    them; nothing else influences the result.
    """

    def __init__(
        self,
        policy: ThresholdPolicy,
        clock: Clock = _utc_now,
        id_factory: IdFactory = _new_id,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.policy = policy
        self._clock = clock
        self._id_factory = id_factory
        self._rng = rng or random.Random()

    def derive(self, event: ChangeEvent) -> List[Alert]:
        if event.kind not in (ChangeKind.insert, ChangeKind.update):
            return []
        sample = event.new_sample
        if sample is None:
            return []

        alerts: List[Alert] = []

        mode_change = self._check_mode_change(sample, event.old_sample)
        if mode_change is not None:
            alerts.append(mode_change)

        temperature = self._check_temperature(sample)
        if temperature is not None:
            alerts.append(temperature)

        occupancy = self._check_occupancy(sample)
        if occupancy is not None:
            alerts.append(occupancy)

        fault = self._simulate_fault(sample)
        if fault is not None:
            alerts.append(fault)

        return alerts

    def _common(self, sample: TelemetrySample) -> dict:
        return {
            "id": self._id_factory(),
            "timestamp": self._clock(),
            "room_id": sample.room_id,
            "acknowledged": False,
        }

    def _check_mode_change(
        self, sample: TelemetrySample, previous: Optional[TelemetrySample]
    ) -> Optional[Alert]:
        if previous is None or previous.mode is None or sample.mode is None:
            return None
        if previous.mode == sample.mode:
            return None
        return ModeChangeAlert(
            **self._common(sample),
            severity=Severity.info,
            message=f"Room {sample.room_id} HVAC mode changed to {sample.mode.value}",
            details=ModeChangeDetails(old_mode=previous.mode, new_mode=sample.mode),
        )

    def _check_temperature(self, sample: TelemetrySample) -> Optional[Alert]:
        if sample.temperature > self.policy.temperature_max:
            severity, label = Severity.critical, "High"
        elif sample.temperature < self.policy.temperature_min:
            severity, label = Severity.warning, "Low"
        else:
            return None
        return TemperatureThresholdAlert(
            **self._common(sample),
            severity=severity,
            message=f"{label} temperature detected in Room {sample.room_id}",
            details=TemperatureDetails(temperature=sample.temperature),
        )

    def _check_occupancy(self, sample: TelemetrySample) -> Optional[Alert]:
        if sample.occupancy <= self.policy.occupancy_max:
            return None
        return HighOccupancyAlert(
            **self._common(sample),
            severity=Severity.warning,
            message=f"High occupancy detected in Room {sample.room_id}",
            details=HighOccupancyDetails(occupancy=sample.occupancy),
        )

    def _simulate_fault(self, sample: TelemetrySample) -> Optional[Alert]:
        probability = self.policy.fault_simulation_probability
        if probability <= 0.0:
            return None
        if self._rng.random() >= probability:
            return None
        return SystemFaultAlert(
            **self._common(sample),
            severity=Severity.critical,
            message=f"HVAC system fault detected in Room {sample.room_id}",
            details=SystemFaultDetails(fault_code=self._rng.choice(FAULT_CODES)),
        )


def derive_alerts(
    event: ChangeEvent,
    policy: ThresholdPolicy,
    clock: Clock = _utc_now,
    id_factory: IdFactory = _new_id,
    rng: Optional[random.Random] = None,
) -> List[Alert]:
    """Derive the ordered alerts for a single change event."""
    return AlertEngine(policy, clock=clock, id_factory=id_factory, rng=rng).derive(event)
