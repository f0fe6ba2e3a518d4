"""Bounded newest-first record of received stream events."""

from collections import deque
from typing import Deque, List, Optional

from ...models.event import StreamEvent


class MessageBuffer:
    """Keeps the most recent ``capacity`` events, newest first.

    Events for every account land here; filtering by account is left to readers.
    """

    def __init__(self, capacity: int = 1000):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        # appendleft + maxlen drops the oldest entry from the right on overflow
        self._events: Deque[StreamEvent] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, event: StreamEvent) -> None:
        self._events.appendleft(event)

    def latest(self, limit: Optional[int] = None) -> List[StreamEvent]:
        """Return up to ``limit`` events, newest first."""
        if limit is None or limit >= len(self._events):
            return list(self._events)
        return [self._events[i] for i in range(max(limit, 0))]

    def for_account(self, account_id: str, limit: Optional[int] = None) -> List[StreamEvent]:
        events = [event for event in self._events if event.account_id == account_id]
        return events if limit is None else events[: max(limit, 0)]

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(list(self._events))
