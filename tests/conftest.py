"""
Pytest configuration and fixtures.
"""

import httpx
import pytest
import pytest_asyncio

from account_mirror.services.auth.provider import AuthProvider
from account_mirror.services.snapshot.client import SnapshotClient
from account_mirror.services.stream.buffer import MessageBuffer
from account_mirror.services.stream.connection import StreamConnection
from account_mirror.services.stream.reconnection import ReconnectPolicy
from tests.fixtures.backend import FakeBackend
from tests.fixtures.stream import FakeConnector


@pytest.fixture
def backend():
    """Fake dashboard backend."""
    return FakeBackend()


@pytest_asyncio.fixture
async def http(backend):
    """HTTP client wired to the fake backend."""
    async with httpx.AsyncClient(
        base_url="http://backend.test", transport=httpx.MockTransport(backend)
    ) as client:
        yield client


@pytest.fixture
def auth(http):
    return AuthProvider(http, token="token-123")


@pytest.fixture
def snapshot_client(http, auth):
    return SnapshotClient(http, auth)


@pytest.fixture
def connector():
    return FakeConnector()


@pytest_asyncio.fixture
async def make_connection(connector):
    """Factory for stream connections using the fake connector; disposes them afterwards."""
    created = []

    def _make(delay: float = 0.05, capacity: int = 1000, open_timeout: float = 1.0) -> StreamConnection:
        connection = StreamConnection(
            "ws://backend.test/ws",
            buffer=MessageBuffer(capacity),
            reconnect_policy=ReconnectPolicy(initial_delay=delay, multiplier=1.0, max_delay=delay),
            connector=connector,
            open_timeout=open_timeout,
        )
        created.append(connection)
        return connection

    yield _make

    for connection in created:
        await connection.dispose()
