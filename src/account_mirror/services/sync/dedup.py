"""Bounded index of already processed event identities."""

from collections import OrderedDict
from typing import Hashable, Optional

from ...config.logging import get_logger
from ...config.settings import settings

logger = get_logger(__name__)


class DedupIndex:
    """
    FIFO-bounded set of event identities.

    When a new identity pushes the size past ``capacity``, the oldest half is
    evicted in one go. Recent identities always survive an eviction, so a
    re-delivery right after eviction is still recognised.
    """

    def __init__(self, capacity: Optional[int] = None):
        capacity = settings.dedup_cap if capacity is None else capacity
        if capacity < 2:
            raise ValueError("capacity must be at least 2")
        self._capacity = capacity
        self._seen: "OrderedDict[Hashable, None]" = OrderedDict()
        self._evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def evictions(self) -> int:
        """Number of eviction passes performed so far."""
        return self._evictions

    def seen(self, identity: Hashable) -> bool:
        return identity in self._seen

    def mark_seen(self, identity: Hashable) -> None:
        if identity in self._seen:
            return
        self._seen[identity] = None
        if len(self._seen) > self._capacity:
            self._evict_oldest_half()

    def check_and_mark(self, identity: Hashable) -> bool:
        """Mark ``identity``; return True if it had been seen before."""
        if self.seen(identity):
            return True
        self.mark_seen(identity)
        return False

    def clear(self) -> None:
        self._seen.clear()

    def _evict_oldest_half(self) -> None:
        drop = len(self._seen) // 2
        for _ in range(drop):
            self._seen.popitem(last=False)
        self._evictions += 1
        logger.debug("dedup_index_evicted", evicted=drop, remaining=len(self._seen))

    def __contains__(self, identity: Hashable) -> bool:
        return self.seen(identity)

    def __len__(self) -> int:
        return len(self._seen)
