"""Real-time synchronisation of one account view with the event stream."""

from typing import Any, Callable, Dict, List, Optional

from ...config.logging import get_logger
from ...config.settings import settings
from ...exceptions import UnauthorizedError
from ...models.event import StreamEvent
from ...models.resources import CategorySnapshot, ResourceCategory
from ..auth.provider import AuthProvider
from ..snapshot.client import SnapshotClient
from ..snapshot.coordinator import SnapshotCoordinator
from ..stream.connection import StreamConnection
from .debounce import DebounceScheduler
from .dedup import DedupIndex
from .router import EventRouter

logger = get_logger(__name__)


class AccountSyncEngine:
    """Keeps the snapshots of one observed account in step with the stream.

    The stream connection is shared and account-agnostic; the engine only
    subscribes to it. Everything account-scoped (dedup window, debounce timers,
    snapshot state) is owned here and reset when the observed account changes.
    """

    def __init__(
        self,
        account_id: str,
        connection: StreamConnection,
        client: SnapshotClient,
        auth: AuthProvider,
        *,
        debounce_delay: Optional[float] = None,
        dedup_capacity: Optional[int] = None,
        fencing: Optional[bool] = None,
    ):
        self._connection = connection
        self._client = client
        self._auth = auth
        self._fencing = fencing
        self._dedup = DedupIndex(settings.dedup_cap if dedup_capacity is None else dedup_capacity)
        self._coordinator = SnapshotCoordinator(client, auth, account_id, fencing=fencing)
        self._scheduler = DebounceScheduler(self._fire_refresh, delay=debounce_delay)
        self._router = EventRouter(
            account_id, self._dedup, self._scheduler, self._fire_refresh
        )
        self._snapshot_listeners: List[Callable[[CategorySnapshot], None]] = []
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._started = False

    @property
    def account_id(self) -> str:
        return self._router.account_id

    @property
    def started(self) -> bool:
        return self._started

    @property
    def is_connected(self) -> bool:
        return self._connection.is_connected

    @property
    def router(self) -> EventRouter:
        return self._router

    @property
    def coordinator(self) -> SnapshotCoordinator:
        return self._coordinator

    @property
    def scheduler(self) -> DebounceScheduler:
        return self._scheduler

    @property
    def dedup(self) -> DedupIndex:
        return self._dedup

    @property
    def snapshots(self) -> Dict[ResourceCategory, Any]:
        return self._coordinator.snapshots

    @property
    def loading(self) -> Dict[ResourceCategory, bool]:
        return self._coordinator.loading

    @property
    def messages(self) -> List[StreamEvent]:
        """All received events, newest first, whatever their account."""
        return self._connection.messages

    def account_messages(self, limit: Optional[int] = None) -> List[StreamEvent]:
        return self._connection.buffer.for_account(self.account_id, limit)

    def add_snapshot_listener(self, listener: Callable[[CategorySnapshot], None]) -> None:
        """Register a view callback; survives account switches."""
        self._snapshot_listeners.append(listener)
        self._coordinator.add_listener(listener)

    async def start(self) -> Dict[ResourceCategory, bool]:
        """Subscribe to the stream and load every category."""
        if not self._started:
            self._unsubscribe = self._connection.subscribe(self.handle_event)
            self._started = True
            logger.info("account_sync_started", account_id=self.account_id)
        return await self._coordinator.refresh_all()

    def handle_event(self, event: StreamEvent) -> Optional[ResourceCategory]:
        return self._router.route(event)

    async def switch_account(self, account_id: str) -> Dict[ResourceCategory, bool]:
        """Observe another account: drop timers, dedup window and old-account results."""
        previous = self.account_id
        # Timers first, so no stale timer can fetch for the new account context.
        self._scheduler.cancel_all()
        self._dedup.clear()
        self._coordinator.dispose()
        self._coordinator = SnapshotCoordinator(
            self._client, self._auth, account_id, fencing=self._fencing
        )
        for listener in self._snapshot_listeners:
            self._coordinator.add_listener(listener)
        self._router.observe(account_id)
        logger.info("account_sync_switched", previous_account_id=previous, account_id=account_id)
        return await self._coordinator.refresh_all()

    async def manual_refresh(self) -> Dict[ResourceCategory, bool]:
        """Operator refresh: ask the backend to re-pull, then reload everything."""
        try:
            await self._client.request_account_refresh(self.account_id)
        except UnauthorizedError:
            logger.warning("manual_refresh_unauthorized", account_id=self.account_id)
            self._auth.logout(reason="unauthorized")
            return {category: False for category in ResourceCategory}
        except Exception as e:
            logger.error(
                "manual_refresh_request_failed",
                account_id=self.account_id,
                error=str(e),
                error_type=type(e).__name__,
            )
        return await self._coordinator.refresh_all()

    def stop(self) -> None:
        """Unsubscribe, cancel timers and discard in-flight results."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._scheduler.close()
        self._coordinator.dispose()
        self._started = False
        logger.info("account_sync_stopped", account_id=self.account_id)

    def _fire_refresh(self, category: ResourceCategory) -> None:
        self._coordinator.request_refresh(category)
