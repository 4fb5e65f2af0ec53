"""Unit tests for alert derivation rules."""

from __future__ import annotations

import itertools
import random
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from app.schemas import AlertType, Severity
from models.records import ChangeEvent, ChangeKind, Mode, TelemetrySample
from services.engine import AlertEngine, derive_alerts
from services.policy import FAULT_CODES, ThresholdPolicy

POLICY = ThresholdPolicy(temperature_min=18, temperature_max=30, occupancy_max=8)
FIXED_NOW = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


def _sample(
    temperature: float = 22.0,
    occupancy: int = 3,
    mode: Optional[Mode] = Mode.comfort,
    room_id: str = "A1",
) -> TelemetrySample:
    return TelemetrySample(
        room_id=room_id,
        timestamp="2024-05-01T09:29:00.000Z",
        temperature=temperature,
        humidity=45.0,
        occupancy=occupancy,
        aqi=40.0,
        mode=mode,
    )


def _engine(policy: ThresholdPolicy = POLICY, rng: Optional[random.Random] = None) -> AlertEngine:
    counter = itertools.count(1)
    return AlertEngine(
        policy,
        clock=lambda: FIXED_NOW,
        id_factory=lambda: f"alert-{next(counter)}",
        rng=rng,
    )


def test_insert_without_old_image_never_reports_mode_change() -> None:
    for mode in (Mode.eco, Mode.comfort, Mode.cool):
        event = ChangeEvent(kind=ChangeKind.insert, new_sample=_sample(mode=mode))

        assert _engine().derive(event) == []


def test_mode_change_produces_single_info_alert() -> None:
    event = ChangeEvent(
        kind=ChangeKind.update,
        new_sample=_sample(mode=Mode.cool),
        old_sample=_sample(mode=Mode.eco),
    )

    alerts = _engine().derive(event)

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.type is AlertType.mode_change
    assert alert.severity is Severity.info
    assert alert.details.model_dump(by_alias=True, mode="json") == {
        "oldMode": "Eco",
        "newMode": "Cool",
    }
    assert alert.message == "Room A1 HVAC mode changed to Cool"


def test_unchanged_or_unknown_mode_is_ignored() -> None:
    same = ChangeEvent(
        kind=ChangeKind.update,
        new_sample=_sample(mode=Mode.eco),
        old_sample=_sample(mode=Mode.eco),
    )
    unknown = ChangeEvent(
        kind=ChangeKind.update,
        new_sample=_sample(mode=Mode.eco),
        old_sample=_sample(mode=None),
    )

    assert _engine().derive(same) == []
    assert _engine().derive(unknown) == []


@pytest.mark.parametrize("temperature", [18.0, 24.0, 30.0])
def test_temperature_inside_band_is_quiet(temperature: float) -> None:
    event = ChangeEvent(kind=ChangeKind.insert, new_sample=_sample(temperature=temperature))

    assert _engine().derive(event) == []


def test_temperature_above_max_is_critical() -> None:
    event = ChangeEvent(kind=ChangeKind.insert, new_sample=_sample(temperature=30.1))

    alerts = _engine().derive(event)

    assert [alert.type for alert in alerts] == [AlertType.temperature_threshold]
    assert alerts[0].severity is Severity.critical
    assert alerts[0].details.temperature == 30.1
    assert alerts[0].message == "High temperature detected in Room A1"


def test_temperature_below_min_is_warning() -> None:
    event = ChangeEvent(kind=ChangeKind.insert, new_sample=_sample(temperature=17.9))

    alerts = _engine().derive(event)

    assert len(alerts) == 1
    assert alerts[0].severity is Severity.warning
    assert alerts[0].details.temperature == 17.9
    assert alerts[0].message == "Low temperature detected in Room A1"


def test_occupancy_boundary() -> None:
    at_limit = ChangeEvent(kind=ChangeKind.insert, new_sample=_sample(occupancy=8))
    over_limit = ChangeEvent(kind=ChangeKind.insert, new_sample=_sample(occupancy=9))

    assert _engine().derive(at_limit) == []

    alerts = _engine().derive(over_limit)
    assert len(alerts) == 1
    assert alerts[0].type is AlertType.high_occupancy
    assert alerts[0].severity is Severity.warning
    assert alerts[0].details.occupancy == 9


def test_multiple_conditions_keep_evaluation_order() -> None:
    event = ChangeEvent(
        kind=ChangeKind.update,
        new_sample=_sample(temperature=33.0, occupancy=12, mode=Mode.cool),
        old_sample=_sample(mode=Mode.comfort),
    )

    alerts = derive_alerts(event, POLICY)

    assert [alert.type for alert in alerts] == [
        AlertType.mode_change,
        AlertType.temperature_threshold,
        AlertType.high_occupancy,
    ]
    assert len({alert.id for alert in alerts}) == 3
    assert all(alert.acknowledged is False for alert in alerts)
    assert all(alert.acknowledged_at is None for alert in alerts)
    assert all(alert.room_id == "A1" for alert in alerts)


def test_alert_timestamp_comes_from_clock_not_sample() -> None:
    event = ChangeEvent(kind=ChangeKind.insert, new_sample=_sample(temperature=40.0))

    alerts = _engine().derive(event)

    assert alerts[0].timestamp == FIXED_NOW
    assert alerts[0].id == "alert-1"


@pytest.mark.parametrize(
    "event",
    [
        ChangeEvent(kind=ChangeKind.other, new_sample=_sample(temperature=40.0)),
        ChangeEvent(kind=ChangeKind.insert, new_sample=None),
        ChangeEvent(kind=ChangeKind.update, new_sample=None, old_sample=_sample()),
    ],
)
def test_unsupported_events_produce_nothing(event: ChangeEvent) -> None:
    assert _engine().derive(event) == []


def test_redelivery_duplicates_alerts_with_new_identity() -> None:
    event = ChangeEvent(
        kind=ChangeKind.update,
        new_sample=_sample(temperature=35.0, mode=Mode.cool),
        old_sample=_sample(mode=Mode.eco),
    )

    ticks = itertools.count()

    def clock() -> datetime:
        return FIXED_NOW + timedelta(seconds=next(ticks))

    first = derive_alerts(event, POLICY, clock=clock)
    second = derive_alerts(event, POLICY, clock=clock)

    assert len(first) == len(second) == 2
    for original, replay in zip(first, second):
        assert original.id != replay.id
        assert original.timestamp < replay.timestamp
        assert original.type == replay.type
        assert original.details == replay.details
        assert original.room_id == replay.room_id


def test_zero_fault_probability_never_touches_random_source() -> None:
    class ExplodingRandom(random.Random):
        def random(self) -> float:  # pragma: no cover - must not be called
            raise AssertionError("random source consulted with p=0")

    event = ChangeEvent(kind=ChangeKind.insert, new_sample=_sample())

    assert _engine(rng=ExplodingRandom()).derive(event) == []


def test_certain_fault_simulation_appends_system_fault_last() -> None:
    policy = ThresholdPolicy(
        temperature_min=18,
        temperature_max=30,
        occupancy_max=8,
        fault_simulation_probability=1.0,
    )
    event = ChangeEvent(kind=ChangeKind.insert, new_sample=_sample(temperature=31.0))

    alerts = _engine(policy=policy, rng=random.Random(7)).derive(event)

    assert [alert.type for alert in alerts] == [
        AlertType.temperature_threshold,
        AlertType.system_fault,
    ]
    fault = alerts[-1]
    assert fault.severity is Severity.critical
    assert fault.details.fault_code in FAULT_CODES
    assert fault.message == "HVAC system fault detected in Room A1"


def test_zeroed_fields_still_run_checks() -> None:
    event = ChangeEvent(kind=ChangeKind.insert, new_sample=_sample(temperature=0.0, occupancy=0))

    alerts = _engine().derive(event)

    assert [alert.type for alert in alerts] == [AlertType.temperature_threshold]
    assert alerts[0].severity is Severity.warning
