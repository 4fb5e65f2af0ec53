"""Change-feed consumer that turns telemetry writes into alerts."""

from __future__ import annotations

import logging
import zlib
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from functools import lru_cache
from threading import Lock
from typing import Any, Dict, List, Mapping, Optional, Set

from datastore.mock_dynamodb import (
    AlertTable,
    TelemetryTable,
    build_default_alert_table,
    build_default_telemetry_table,
)
from notifications.email import EmailNotifier
from notifications.mock_ses import build_default_ses_client
from services.engine import AlertEngine
from services.normalizer import parse_stream_record
from services.policy import ThresholdPolicy
from services.sink import AlertSink, DispatchOutcome
from settings import get_settings

logger = logging.getLogger(__name__)


@dataclass
class ProcessingReport:
    """What happened to one change-feed record."""

    event_name: str
    room_id: Optional[str] = None
    outcomes: List[DispatchOutcome] = field(default_factory=list)

    @property
    def alert_count(self) -> int:
        return len(self.outcomes)

    @property
    def failed_count(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.persisted)


class StreamProcessor:
    """Consumes telemetry stream records, one at a time per shard.

    Records are routed to a single-threaded shard by a stable hash of the
    room id, so a room's events are handled in feed order while different
    rooms may be processed concurrently.
    """

    def __init__(
        self,
        engine: AlertEngine,
        sink: AlertSink,
        shards: int = 4,
    ) -> None:
        if shards < 1:
            raise ValueError("shards must be at least 1.")
        self.engine = engine
        self.sink = sink
        self.executors = [
            ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"stream-shard-{index}")
            for index in range(shards)
        ]
        self._futures: Set[Future[ProcessingReport]] = set()
        self._futures_lock = Lock()

    def attach(self, table: TelemetryTable) -> None:
        table.subscribe(self.submit)

    def detach(self, table: TelemetryTable) -> None:
        table.unsubscribe(self.submit)

    def submit(self, record: Mapping[str, Any]) -> Future[ProcessingReport]:
        """Queue a record on its room's shard."""
        shard = self._shard_for(record)
        logger.debug(
            "Queued change event",
            extra={"event_name": record.get("eventName"), "shard": shard},
        )
        future = self.executors[shard].submit(self.process_record, record)
        with self._futures_lock:
            self._futures.add(future)
        future.add_done_callback(self._clear_future)
        return future

    def process_record(self, record: Mapping[str, Any]) -> ProcessingReport:
        """Derive and dispatch the alerts for a single stream record."""
        event_name = str(record.get("eventName") or "UNKNOWN")
        event = parse_stream_record(record)
        report = ProcessingReport(event_name=event_name)
        if event.new_sample is not None:
            report.room_id = event.new_sample.room_id

        alerts = self.engine.derive(event)
        if not alerts:
            logger.debug(
                "No alerts for change event",
                extra={"event_name": event_name, "room_id": report.room_id},
            )
            return report

        report.outcomes = self.sink.dispatch_all(alerts)
        log = logger.error if report.failed_count else logger.info
        log(
            "Processed change event",
            extra={
                "event_name": event_name,
                "room_id": report.room_id,
                "alert_count": report.alert_count,
                "failed_count": report.failed_count,
            },
        )
        return report

    def drain(self, timeout: Optional[float] = None) -> None:
        """Block until every queued record has been processed."""
        with self._futures_lock:
            pending = set(self._futures)
        if pending:
            wait(pending, timeout=timeout)

    def shutdown(self) -> None:
        """Stop accepting records and finish the ones already queued.

        Queued records belong to samples that are already stored, so they are
        processed rather than cancelled. Detach from the table first.
        """
        for executor in self.executors:
            executor.shutdown(wait=True)

    def _clear_future(self, future: Future[ProcessingReport]) -> None:
        with self._futures_lock:
            self._futures.discard(future)
        if future.cancelled():
            logger.error(
                "Change event dropped before processing",
                extra={"reason": "cancelled"},
            )
            return
        exc = future.exception()
        if exc is not None:
            logger.error(
                "Change event processing crashed",
                exc_info=exc,
                extra={"reason": str(exc)},
            )

    def _shard_for(self, record: Mapping[str, Any]) -> int:
        change: Dict[str, Any] = record.get("dynamodb") or {}
        keys = change.get("Keys") or change.get("NewImage") or {}
        room = keys.get("room_id") or {}
        room_id = room.get("S", "") if isinstance(room, Mapping) else str(room)
        return zlib.crc32(room_id.encode("utf-8")) % len(self.executors)


def build_sink(table: AlertTable) -> AlertSink:
    settings = get_settings()
    notifier = EmailNotifier(
        client=build_default_ses_client(),
        sender=settings.sender_email,
        recipient=settings.recipient_email,
    )
    return AlertSink(table=table, notifier=notifier)


@lru_cache
def build_default_processor(
    shards: Optional[int] = None,
) -> StreamProcessor:
    """Factory that wires the stream processor with default mocks."""
    settings = get_settings()
    engine = AlertEngine(ThresholdPolicy.from_settings(settings))
    sink = build_sink(build_default_alert_table())
    processor = StreamProcessor(
        engine=engine,
        sink=sink,
        shards=shards or settings.stream_shards,
    )
    processor.attach(build_default_telemetry_table())
    return processor
