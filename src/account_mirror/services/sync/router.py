"""Classification of stream events into snapshot refresh intents."""

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ...config.logging import get_logger
from ...config.settings import settings
from ...models.event import StreamEvent
from ...models.resources import ResourceCategory
from .debounce import DebounceScheduler
from .dedup import DedupIndex

logger = get_logger(__name__)

# Stream event type -> resource category it invalidates.
EVENT_CATEGORY_MAP: Dict[str, ResourceCategory] = {
    "position": ResourceCategory.POSITIONS,
    "order": ResourceCategory.ORDERS,
    "order_action": ResourceCategory.ORDERS,
    "trade": ResourceCategory.TRADES,
    "account_info": ResourceCategory.OVERVIEW,
    "buying_power": ResourceCategory.OVERVIEW,
}

# Low-volume categories refreshed without debouncing.
IMMEDIATE_CATEGORIES = frozenset({ResourceCategory.OVERVIEW})


def classify(event_type: str) -> Optional[ResourceCategory]:
    return EVENT_CATEGORY_MAP.get(event_type)


@dataclass
class RouterStats:
    """Counters of routing outcomes since the router was created or reset."""

    routed: int = 0
    duplicates: int = 0
    other_account: int = 0
    unclassified: int = 0


class EventRouter:
    """Turns stream events into refresh intents for one observed account.

    Per event, in order: drop it if its identity was already processed
    (marking it otherwise), drop it if it belongs to another account, map its
    type to a resource category, then either request an immediate refresh
    (overview) or hand the category to the debounce scheduler. Unknown types
    are ignored. Runs synchronously, so the check-and-mark of two deliveries
    of the same event can never interleave.
    """

    def __init__(
        self,
        account_id: str,
        dedup: DedupIndex,
        scheduler: DebounceScheduler,
        request_refresh: Callable[[ResourceCategory], None],
        fingerprint_length: Optional[int] = None,
    ):
        """
        Args:
            account_id: Account whose view this router feeds.
            dedup: Identity index shared with nobody else.
            scheduler: Receives debounced refresh intents.
            request_refresh: Starts an immediate (non-debounced) refresh.
            fingerprint_length: Hex characters of the payload digest in identities.
        """
        self._account_id = account_id
        self._dedup = dedup
        self._scheduler = scheduler
        self._request_refresh = request_refresh
        self._fingerprint_length = (
            settings.payload_fingerprint_length if fingerprint_length is None else fingerprint_length
        )
        self.stats = RouterStats()

    @property
    def account_id(self) -> str:
        return self._account_id

    def observe(self, account_id: str) -> None:
        """Point the router at another account and reset its counters."""
        self._account_id = account_id
        self.stats = RouterStats()

    def route(self, event: StreamEvent) -> Optional[ResourceCategory]:
        """
        Route one event.

        Returns:
            The category a refresh was requested or scheduled for, or None if
            the event was discarded.
        """
        identity = event.identity(self._fingerprint_length)
        if self._dedup.check_and_mark(identity):
            self.stats.duplicates += 1
            logger.debug(
                "stream_event_duplicate",
                event_type=event.category,
                account_id=event.account_id,
                timestamp=event.timestamp,
            )
            return None

        if event.account_id != self._account_id:
            self.stats.other_account += 1
            return None

        category = classify(event.category)
        if category is None:
            self.stats.unclassified += 1
            logger.debug("stream_event_unclassified", event_type=event.category)
            return None

        self.stats.routed += 1
        if category in IMMEDIATE_CATEGORIES:
            logger.info(
                "refresh_requested",
                category=category.value,
                account_id=self._account_id,
                event_type=event.category,
                debounced=False,
            )
            self._request_refresh(category)
        else:
            logger.debug(
                "refresh_requested",
                category=category.value,
                account_id=self._account_id,
                event_type=event.category,
                debounced=True,
            )
            self._scheduler.schedule_refresh(category)
        return category
