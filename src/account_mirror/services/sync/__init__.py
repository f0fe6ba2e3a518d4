"""Event reconciliation: dedup, routing, debouncing and the engine tying them together."""

from .debounce import DebounceScheduler
from .dedup import DedupIndex
from .engine import AccountSyncEngine
from .router import EVENT_CATEGORY_MAP, EventRouter

__all__ = [
    "AccountSyncEngine",
    "DebounceScheduler",
    "DedupIndex",
    "EVENT_CATEGORY_MAP",
    "EventRouter",
]
