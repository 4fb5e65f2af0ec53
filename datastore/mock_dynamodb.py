from __future__ import annotations
import json
import logging
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar
from uuid import uuid4

from app.schemas import Alert, AlertAdapter, TelemetryRecord
from settings import get_settings

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT")
StreamListener = Callable[[Dict[str, Any]], None]


class ConditionalCheckFailedError(Exception):
    """Raised when a conditional write finds an existing item."""


def serialize_image(item: Dict[str, Any]) -> Dict[str, Any]:
    """Encode a plain mapping using DynamoDB attribute-value notation."""
    return {key: _serialize_value(value) for key, value in item.items()}


def _serialize_value(value: Any) -> Dict[str, Any]:
    if value is None:
        return {"NULL": True}
    if isinstance(value, bool):
        return {"BOOL": value}
    if isinstance(value, (int, float)):
        return {"N": str(value)}
    if isinstance(value, dict):
        return {"M": serialize_image(value)}
    if isinstance(value, (list, tuple)):
        return {"L": [_serialize_value(entry) for entry in value]}
    return {"S": str(value)}


class _JsonBackedTable(Generic[ItemT]):
    """In-memory table with optional JSON persistence, keyed by a string."""

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._items: Dict[str, ItemT] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def _key(self, item: ItemT) -> str:
        raise NotImplementedError

    def _copy(self, item: ItemT) -> ItemT:
        return item.model_copy(deep=True)  # type: ignore[attr-defined]

    def _dump(self, item: ItemT) -> Dict[str, Any]:
        return item.model_dump(mode="json", by_alias=True)  # type: ignore[attr-defined]

    def _load(self, payload: Dict[str, Any]) -> ItemT:
        raise NotImplementedError

    def scan(self) -> list[ItemT]:
        """Return deep copies of all stored items."""

        with self._lock:
            return [self._copy(item) for item in self._items.values()]

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {key: self._dump(item) for key, item in self._items.items()}
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            logger.warning(
                "Ignoring unreadable table snapshot %s",
                self.persistence_path,
                extra={"reason": "unreadable snapshot"},
            )
            data = {}

        for key, payload in data.items():
            self._items[key] = self._load(payload)


class TelemetryTable(_JsonBackedTable[TelemetryRecord]):
    """Room telemetry keyed by ``(room_id, timestamp)`` with a NEW_AND_OLD_IMAGES stream."""

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        super().__init__(name, persistence_path)
        self._listeners: List[StreamListener] = []
        self._sequence = 0

    def _key(self, item: TelemetryRecord) -> str:
        return f"{item.room_id}#{item.timestamp}"

    def _load(self, payload: Dict[str, Any]) -> TelemetryRecord:
        return TelemetryRecord.model_validate(payload)

    def subscribe(self, listener: StreamListener) -> None:
        """Register a change-feed consumer.

        Listeners are invoked under the table lock, in write order, and must
        not block.
        """
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: StreamListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def put_item(self, item: TelemetryRecord) -> None:
        key = self._key(item)
        with self._lock:
            previous = self._items.get(key)
            self._items[key] = item.model_copy(deep=True)
            self._persist()
            self._sequence += 1
            record = self._stream_record(item, previous, self._sequence)
            for listener in list(self._listeners):
                listener(record)

    def get_item(self, room_id: str, timestamp: str) -> Optional[TelemetryRecord]:
        with self._lock:
            item = self._items.get(f"{room_id}#{timestamp}")
            if item is None:
                return None
            return item.model_copy(deep=True)

    def query(self, room_id: str) -> list[TelemetryRecord]:
        """Return all samples for a room ordered by timestamp."""

        with self._lock:
            matches = [
                item.model_copy(deep=True)
                for item in self._items.values()
                if item.room_id == room_id
            ]
        return sorted(matches, key=lambda item: item.timestamp)

    def latest_per_room(self) -> list[TelemetryRecord]:
        latest: Dict[str, TelemetryRecord] = {}
        for item in self.scan():
            current = latest.get(item.room_id)
            if current is None or item.timestamp > current.timestamp:
                latest[item.room_id] = item
        return [latest[room_id] for room_id in sorted(latest)]

    def _stream_record(
        self,
        item: TelemetryRecord,
        previous: Optional[TelemetryRecord],
        sequence: int,
    ) -> Dict[str, Any]:
        change: Dict[str, Any] = {
            "Keys": serialize_image({"room_id": item.room_id, "timestamp": item.timestamp}),
            "NewImage": serialize_image(item.model_dump(mode="json")),
            "SequenceNumber": str(sequence),
            "StreamViewType": "NEW_AND_OLD_IMAGES",
        }
        if previous is not None:
            change["OldImage"] = serialize_image(previous.model_dump(mode="json"))
        return {
            "eventID": uuid4().hex,
            "eventName": "MODIFY" if previous is not None else "INSERT",
            "eventSource": "mock:dynamodb",
            "tableName": self.name,
            "dynamodb": change,
        }


class AlertTable(_JsonBackedTable[Alert]):
    """Insert-only alert store keyed by the generated alert id."""

    def _key(self, item: Alert) -> str:
        return item.id

    def _load(self, payload: Dict[str, Any]) -> Alert:
        return AlertAdapter.validate_python(payload)

    def put_item(self, item: Alert) -> None:
        """Insert an alert; an existing id fails the write."""
        with self._lock:
            if item.id in self._items:
                raise ConditionalCheckFailedError(
                    f"Alert {item.id!r} already exists in table {self.name!r}."
                )
            self._items[item.id] = item.model_copy(deep=True)
            self._persist()

    def get_item(self, key: str) -> Optional[Alert]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            return item.model_copy(deep=True)

    def update_item(self, key: str, update: Callable[[Alert], Alert]) -> Alert:
        """Atomically replace an existing alert with ``update(current)``."""
        with self._lock:
            current = self._items.get(key)
            if current is None:
                raise KeyError(f"Alert {key!r} not found.")
            updated = update(current.model_copy(deep=True))
            if updated.id != key:
                raise ValueError("Alert id cannot change on update.")
            self._items[key] = updated.model_copy(deep=True)
            self._persist()
            return updated.model_copy(deep=True)


def _resolve_path(configured: Optional[str], override: Optional[str]) -> Optional[Path]:
    candidate = configured if override is None else override
    return Path(candidate) if candidate else None


@lru_cache
def build_default_telemetry_table(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> TelemetryTable:
    settings = get_settings()
    table_name = settings.telemetry_table_name if name is None else name
    persistence = _resolve_path(settings.telemetry_persistence_path, path)
    return TelemetryTable(name=table_name, persistence_path=persistence)


@lru_cache
def build_default_alert_table(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> AlertTable:
    settings = get_settings()
    table_name = settings.alerts_table_name if name is None else name
    persistence = _resolve_path(settings.alerts_persistence_path, path)
    return AlertTable(name=table_name, persistence_path=persistence)
