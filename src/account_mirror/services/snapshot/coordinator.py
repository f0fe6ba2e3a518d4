"""Per-account snapshot state and the fetches that replace it."""

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set

from ...config.logging import get_logger
from ...config.settings import settings
from ...exceptions import UnauthorizedError
from ...models.resources import CategorySnapshot, ResourceCategory
from ...utils.tracing import get_or_create_trace_id
from ..auth.provider import AuthProvider
from .client import SnapshotClient

logger = get_logger(__name__)

SnapshotListener = Callable[[CategorySnapshot], None]


class SnapshotCoordinator:
    """
    Owns the snapshot state of one account.

    Features:
    - One loading flag per category, true while at least one fetch is in flight
    - Stale-but-available: a failed fetch leaves the previous snapshot in place
    - 401 terminates the session through the auth provider, never retried
    - Results arriving after ``dispose`` are discarded
    - Optional sequence fencing so an older response never overwrites a newer one
    """

    def __init__(
        self,
        client: SnapshotClient,
        auth: AuthProvider,
        account_id: str,
        fencing: Optional[bool] = None,
    ):
        """
        Args:
            client: Snapshot REST client.
            auth: Notified when a fetch answers 401.
            account_id: Account whose state this coordinator holds.
            fencing: Discard responses older than the last applied one per category.
                Off by default: the last response to arrive wins.
        """
        self._client = client
        self._auth = auth
        self._account_id = account_id
        self._fencing = settings.snapshot_fencing if fencing is None else fencing
        self._snapshots: Dict[ResourceCategory, CategorySnapshot] = {}
        self._in_flight: Dict[ResourceCategory, int] = {c: 0 for c in ResourceCategory}
        self._issued: Dict[ResourceCategory, int] = {c: 0 for c in ResourceCategory}
        self._applied: Dict[ResourceCategory, int] = {c: 0 for c in ResourceCategory}
        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[SnapshotListener] = []
        self._disposed = False

    @property
    def account_id(self) -> str:
        return self._account_id

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def loading(self) -> Dict[ResourceCategory, bool]:
        return {category: count > 0 for category, count in self._in_flight.items()}

    def is_loading(self, category: ResourceCategory) -> bool:
        return self._in_flight[category] > 0

    @property
    def snapshots(self) -> Dict[ResourceCategory, Any]:
        """Data of every category fetched successfully at least once."""
        return {category: snapshot.data for category, snapshot in self._snapshots.items()}

    def snapshot(self, category: ResourceCategory) -> Optional[CategorySnapshot]:
        return self._snapshots.get(category)

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a callback invoked after each applied snapshot."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    async def refresh(self, category: ResourceCategory) -> bool:
        """
        Fetch ``category`` and replace its snapshot on success.

        Never raises for fetch failures.

        Returns:
            True if a new snapshot was applied.
        """
        if self._disposed:
            return False

        trace_id = get_or_create_trace_id()
        self._issued[category] += 1
        sequence = self._issued[category]
        self._in_flight[category] += 1
        logger.debug(
            "snapshot_fetch_started",
            category=category.value,
            account_id=self._account_id,
            sequence=sequence,
            trace_id=trace_id,
        )

        try:
            data = await self._client.fetch(category, self._account_id)
        except UnauthorizedError:
            logger.warning(
                "snapshot_fetch_unauthorized",
                category=category.value,
                account_id=self._account_id,
                trace_id=trace_id,
            )
            if not self._disposed:
                self._auth.logout(reason="unauthorized")
            return False
        except Exception as e:
            logger.error(
                "snapshot_fetch_failed",
                category=category.value,
                account_id=self._account_id,
                error=str(e),
                error_type=type(e).__name__,
                trace_id=trace_id,
            )
            return False
        finally:
            self._in_flight[category] -= 1

        if self._disposed:
            logger.debug(
                "snapshot_discarded_after_dispose",
                category=category.value,
                account_id=self._account_id,
            )
            return False

        if self._fencing and sequence < self._applied[category]:
            logger.info(
                "snapshot_discarded_out_of_order",
                category=category.value,
                sequence=sequence,
                applied_sequence=self._applied[category],
            )
            return False

        self._applied[category] = sequence
        snapshot = CategorySnapshot(
            category=category,
            account_id=self._account_id,
            data=data,
            fetched_at=datetime.now(timezone.utc),
            sequence=sequence,
        )
        self._snapshots[category] = snapshot
        logger.info(
            "snapshot_applied",
            category=category.value,
            account_id=self._account_id,
            sequence=sequence,
            items=len(data) if isinstance(data, list) else 1,
            trace_id=trace_id,
        )

        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(
                    "snapshot_listener_error",
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
        return True

    async def refresh_all(self) -> Dict[ResourceCategory, bool]:
        """Fetch every category concurrently; one failure never blocks the others."""
        categories = list(ResourceCategory)
        results = await asyncio.gather(
            *(self.refresh(category) for category in categories), return_exceptions=True
        )
        outcome = {category: result is True for category, result in zip(categories, results)}
        logger.info(
            "snapshot_refresh_all_completed",
            account_id=self._account_id,
            succeeded=[c.value for c, ok in outcome.items() if ok],
            failed=[c.value for c, ok in outcome.items() if not ok],
        )
        return outcome

    def request_refresh(self, category: ResourceCategory) -> Optional[asyncio.Task]:
        """Start ``refresh(category)`` in the background (for synchronous callers)."""
        if self._disposed:
            return None
        task = asyncio.create_task(self.refresh(category))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for background refreshes started so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def dispose(self) -> None:
        """Stop applying results; in-flight fetches finish but are discarded."""
        self._disposed = True
        self._listeners.clear()
        logger.debug(
            "snapshot_coordinator_disposed",
            account_id=self._account_id,
            in_flight=sum(self._in_flight.values()),
        )
