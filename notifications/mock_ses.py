from __future__ import annotations
import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import List, Optional, Sequence
from uuid import uuid4

from settings import get_settings


class MessageRejected(Exception):
    """Raised when the mock mail service refuses a message."""


@dataclass(frozen=True)
class SentMessage:
    message_id: str
    source: str
    destinations: List[str]
    subject: str
    html_body: str
    sent_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class MockSESClient:
    """Captures outgoing e-mail in memory and, optionally, in an outbox directory."""

    def __init__(self, outbox_path: Optional[Path] = None) -> None:
        self._sent: List[SentMessage] = []
        self.outbox_path = outbox_path
        self._lock = Lock()
        if outbox_path:
            outbox_path.mkdir(parents=True, exist_ok=True)

    def send_email(
        self,
        source: str,
        destinations: Sequence[str],
        subject: str,
        html_body: str,
    ) -> str:
        if not source:
            raise MessageRejected("Email address is not verified: missing source.")
        if not destinations or not all(destinations):
            raise MessageRejected("At least one destination address is required.")

        message = SentMessage(
            message_id=uuid4().hex,
            source=source,
            destinations=list(destinations),
            subject=subject,
            html_body=html_body,
        )
        with self._lock:
            self._sent.append(message)
            if self.outbox_path:
                path = self.outbox_path / f"{message.message_id}.json"
                path.write_text(json.dumps(asdict(message), indent=2, sort_keys=True))
        return message.message_id

    def sent_messages(self) -> List[SentMessage]:
        with self._lock:
            return list(self._sent)


@lru_cache
def build_default_ses_client(outbox_path: Optional[str] = None) -> MockSESClient:
    settings = get_settings()
    outbox = settings.outbox_path if outbox_path is None else outbox_path
    return MockSESClient(outbox_path=Path(outbox) if outbox else None)
