from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_TELEMETRY_TABLE_ENV = "TELEMETRY_TABLE_NAME"
_TELEMETRY_PATH_ENV = "TELEMETRY_PERSISTENCE_PATH"
_ALERTS_TABLE_ENV = "ALERTS_TABLE_NAME"
_ALERTS_PATH_ENV = "ALERTS_PERSISTENCE_PATH"
_TEMPERATURE_MIN_ENV = "ALERT_TEMPERATURE_MIN"
_TEMPERATURE_MAX_ENV = "ALERT_TEMPERATURE_MAX"
_OCCUPANCY_MAX_ENV = "ALERT_OCCUPANCY_MAX"
_FAULT_PROBABILITY_ENV = "FAULT_SIMULATION_PROBABILITY"
_SENDER_EMAIL_ENV = "ALERT_SENDER_EMAIL"
_RECIPIENT_EMAIL_ENV = "ALERT_RECIPIENT_EMAIL"
_OUTBOX_PATH_ENV = "MAIL_OUTBOX_PATH"
_SHARD_COUNT_ENV = "STREAM_SHARD_COUNT"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    telemetry_table_name: str
    telemetry_persistence_path: Optional[str]
    alerts_table_name: str
    alerts_persistence_path: Optional[str]
    temperature_min: float
    temperature_max: float
    occupancy_max: int
    fault_simulation_probability: float
    sender_email: Optional[str]
    recipient_email: str
    outbox_path: Optional[str]
    stream_shards: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        return float(candidate)
    except ValueError:
        return default


def _read_positive_int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_non_negative_int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _read_probability(default: float) -> float:
    parsed = _read_float_env(_FAULT_PROBABILITY_ENV, default)
    if parsed != parsed:  # NaN
        return default
    return min(max(parsed, 0.0), 1.0)


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        telemetry_table_name=_read_str_env(_TELEMETRY_TABLE_ENV, "room_data"),
        telemetry_persistence_path=_read_optional_env(
            _TELEMETRY_PATH_ENV, "./tmp/room_data.json"
        ),
        alerts_table_name=_read_str_env(_ALERTS_TABLE_ENV, "alerts"),
        alerts_persistence_path=_read_optional_env(_ALERTS_PATH_ENV, "./tmp/alerts.json"),
        temperature_min=_read_float_env(_TEMPERATURE_MIN_ENV, 18.0),
        temperature_max=_read_float_env(_TEMPERATURE_MAX_ENV, 30.0),
        occupancy_max=_read_non_negative_int_env(_OCCUPANCY_MAX_ENV, 8),
        fault_simulation_probability=_read_probability(0.0),
        sender_email=_read_optional_env(_SENDER_EMAIL_ENV, None),
        recipient_email=_read_str_env(_RECIPIENT_EMAIL_ENV, "admin@example.com"),
        outbox_path=_read_optional_env(_OUTBOX_PATH_ENV, "./tmp/outbox"),
        stream_shards=_read_positive_int_env(_SHARD_COUNT_ENV, 4),
        log_level=_read_log_level("INFO"),
    )
