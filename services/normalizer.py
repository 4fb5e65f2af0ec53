"""Translate raw change-feed records into domain change events."""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Optional

from models.records import ChangeEvent, ChangeKind, Mode, TelemetrySample

logger = logging.getLogger(__name__)

_KINDS = {
    "INSERT": ChangeKind.insert,
    "MODIFY": ChangeKind.update,
}


def parse_stream_record(record: Mapping[str, Any]) -> ChangeEvent:
    """Build a :class:`ChangeEvent` from a NEW_AND_OLD_IMAGES stream record.

    Unknown event names (``REMOVE`` and anything else) map to
    ``ChangeKind.other``. Numeric attributes that are missing or unparseable
    are read as ``0`` rather than rejecting the record.
    """
    kind = _KINDS.get(str(record.get("eventName") or "").upper(), ChangeKind.other)
    change = record.get("dynamodb") or {}
    new_image = change.get("NewImage")
    old_image = change.get("OldImage")

    new_sample = parse_image(new_image) if new_image else None
    old_sample = parse_image(old_image) if old_image and kind is ChangeKind.update else None
    return ChangeEvent(kind=kind, new_sample=new_sample, old_sample=old_sample)


def parse_image(image: Mapping[str, Any]) -> TelemetrySample:
    room_id = _read_string(image, "room_id") or ""
    return TelemetrySample(
        room_id=room_id,
        timestamp=_read_string(image, "timestamp") or "",
        temperature=_read_float(image, "temperature", room_id),
        humidity=_read_float(image, "humidity", room_id),
        occupancy=_read_int(image, "occupancy", room_id),
        aqi=_read_float(image, "aqi", room_id),
        mode=Mode.parse(_read_string(image, "mode")),
    )


def _attribute(image: Mapping[str, Any], name: str, type_tag: str) -> Optional[Any]:
    value = image.get(name)
    if isinstance(value, Mapping):
        return value.get(type_tag)
    return value


def _read_string(image: Mapping[str, Any], name: str) -> Optional[str]:
    value = _attribute(image, name, "S")
    if value is None:
        return None
    return str(value)


def _read_float(image: Mapping[str, Any], name: str, room_id: str) -> float:
    raw = _attribute(image, name, "N")
    if raw is None:
        return 0.0
    try:
        parsed = float(raw)
    except (TypeError, ValueError):
        parsed = math.nan
    if not math.isfinite(parsed):
        logger.warning(
            "Defaulting unparseable %s to 0",
            name,
            extra={"room_id": room_id or None, "reason": f"invalid {name}: {raw!r}"},
        )
        return 0.0
    return parsed


def _read_int(image: Mapping[str, Any], name: str, room_id: str) -> int:
    value = _read_float(image, name, room_id)
    # Occupancy is a whole, non-negative head count.
    return max(int(value), 0)
