"""Session-scoped owner of the stream connection, HTTP client and auth."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

import httpx

from ..config.logging import get_logger
from ..config.settings import settings
from ..exceptions import UnauthorizedError
from ..models.resources import Account
from .auth.provider import AuthProvider
from .snapshot.client import SnapshotClient, create_http_client
from .stream.connection import StreamConnection
from .sync.engine import AccountSyncEngine

logger = get_logger(__name__)


class MirrorSession:
    """One dashboard session.

    Constructed explicitly and passed to whoever needs it; there is no
    module-level connection. Use as an async context manager, or call
    ``connect`` and ``dispose`` yourself.
    """

    def __init__(
        self,
        *,
        connection: Optional[StreamConnection] = None,
        http: Optional[httpx.AsyncClient] = None,
        auth_token: Optional[str] = None,
        debounce_delay: Optional[float] = None,
    ):
        self._owns_http = http is None
        self._http = http if http is not None else create_http_client()
        self.auth = AuthProvider(
            self._http, token=auth_token if auth_token is not None else settings.mirror_auth_token
        )
        self.client = SnapshotClient(self._http, self.auth)
        self.connection = connection if connection is not None else StreamConnection()
        self._debounce_delay = debounce_delay
        self._engine: Optional[AccountSyncEngine] = None
        # One account load or switch at a time.
        self._open_lock = asyncio.Lock()
        self.auth.add_session_end_listener(self._on_session_end)

    @property
    def engine(self) -> Optional[AccountSyncEngine]:
        return self._engine

    async def connect(self) -> None:
        await self.connection.connect()

    async def list_accounts(self) -> List[Account]:
        """
        Raises:
            UnauthorizedError: After terminating the session.
            SnapshotFetchError: On any other failure.
        """
        try:
            return await self.client.list_accounts()
        except UnauthorizedError:
            self.auth.logout(reason="unauthorized")
            raise

    async def open_account(self, account_id: str) -> AccountSyncEngine:
        """Start observing ``account_id``, switching the engine if another one is open.

        Concurrent calls run one after the other. The engine is shared, so a
        caller that must read the state of ``account_id`` uses ``account`` instead.
        """
        async with self._open_lock:
            return await self._open_account(account_id)

    @asynccontextmanager
    async def account(self, account_id: str) -> AsyncIterator[AccountSyncEngine]:
        """Hold ``account_id`` as the observed account for the duration of the block.

        Other loads and switches wait until the block exits, so state read
        inside it belongs to ``account_id``.
        """
        async with self._open_lock:
            yield await self._open_account(account_id)

    async def _open_account(self, account_id: str) -> AccountSyncEngine:
        engine = self._engine
        if engine is None:
            engine = AccountSyncEngine(
                account_id,
                self.connection,
                self.client,
                self.auth,
                debounce_delay=self._debounce_delay,
            )
            self._engine = engine
            await engine.start()
        elif engine.account_id != account_id:
            await engine.switch_account(account_id)
        # A 401 during the initial load may already have closed the engine.
        return engine

    def close_account(self) -> None:
        if self._engine is not None:
            self._engine.stop()
            self._engine = None

    async def dispose(self) -> None:
        self.close_account()
        await self.connection.dispose()
        if self._owns_http:
            await self._http.aclose()
        logger.info("mirror_session_disposed")

    async def __aenter__(self) -> "MirrorSession":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    def _on_session_end(self, reason: str) -> None:
        logger.info("mirror_session_ended", reason=reason)
        self.close_account()
