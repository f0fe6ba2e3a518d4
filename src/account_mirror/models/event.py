"""In-memory event model for frames received from the account event stream."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, NamedTuple


class EventIdentity(NamedTuple):
    """Key used to recognise re-delivery of the same logical event.

    Only used for deduplication, never for business logic. Two different
    events with the same timestamp, type, account and payload digest collide;
    that is accepted.
    """

    timestamp: str
    category: str
    account_id: str
    fingerprint: str


def payload_fingerprint(payload: Any, length: int = 16) -> str:
    """Short deterministic digest of a payload's canonical JSON form."""
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:length]


@dataclass(frozen=True)
class StreamEvent:
    """A decoded stream frame.

    Frames arrive as ``{"type", "account_id", "data", "timestamp"}``. ``category``
    holds the raw frame type (``position``, ``order_action``, ...), not the
    resource category it maps to.
    """

    category: str
    account_id: str
    payload: Any
    timestamp: str
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_frame(cls, frame: Dict[str, Any]) -> "StreamEvent":
        """Build an event from a decoded frame.

        Raises:
            ValueError: If the frame is not an object or lacks ``type``/``account_id``.
        """
        if not isinstance(frame, dict):
            raise ValueError(f"Stream frame must be an object, got {type(frame).__name__}")

        category = frame.get("type")
        account_id = frame.get("account_id")
        if not isinstance(category, str) or not category:
            raise ValueError("Stream frame is missing 'type'")
        if account_id is None or account_id == "":
            raise ValueError("Stream frame is missing 'account_id'")

        timestamp = frame.get("timestamp")
        return cls(
            category=category,
            account_id=str(account_id),
            payload=frame.get("data"),
            timestamp="" if timestamp is None else str(timestamp),
        )

    def identity(self, fingerprint_length: int = 16) -> EventIdentity:
        return EventIdentity(
            timestamp=self.timestamp,
            category=self.category,
            account_id=self.account_id,
            fingerprint=payload_fingerprint(self.payload, fingerprint_length),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Frame-shaped view of the event, as consumers of the buffer see it."""
        return {
            "type": self.category,
            "account_id": self.account_id,
            "data": self.payload,
            "timestamp": self.timestamp,
            "received_at": self.received_at.isoformat(),
        }
