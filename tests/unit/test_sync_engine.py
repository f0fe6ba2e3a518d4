"""Unit tests for AccountSyncEngine, driven by stream frames and a fake backend."""

import asyncio

import pytest
import pytest_asyncio

from account_mirror.models.resources import ResourceCategory
from account_mirror.services.sync.engine import AccountSyncEngine
from tests.fixtures.stream import make_frame

DEBOUNCE = 0.05


@pytest.fixture
def connection(make_connection):
    return make_connection(delay=10.0)


@pytest_asyncio.fixture
async def engine(connection, snapshot_client, auth, backend):
    engine = AccountSyncEngine(
        "A", connection, snapshot_client, auth, debounce_delay=DEBOUNCE
    )
    await engine.start()
    backend.requests.clear()
    yield engine
    engine.stop()


async def settle(engine, seconds: float = DEBOUNCE * 3):
    await asyncio.sleep(seconds)
    await engine.coordinator.wait_idle()


@pytest.mark.asyncio
async def test_start_loads_every_category(connection, snapshot_client, auth, backend):
    engine = AccountSyncEngine("A", connection, snapshot_client, auth, debounce_delay=DEBOUNCE)

    results = await engine.start()

    assert all(results.values())
    assert set(engine.snapshots) == set(ResourceCategory)
    for resource in ("positions", "orders", "trades", "overview", "activity"):
        assert backend.count(resource, "A") == 1
    assert not any(engine.loading.values())
    engine.stop()


@pytest.mark.asyncio
async def test_burst_collapses_into_one_fetch(engine, connection, backend):
    """Test that five position events inside the window cause one positions fetch."""
    for n in range(5):
        connection._handle_frame(make_frame("position", data={"n": n}, timestamp=f"t{n}"))

    await settle(engine)

    assert backend.count("positions", "A") == 1
    assert backend.count("orders") == 0


@pytest.mark.asyncio
async def test_duplicate_delivery_fetches_once(engine, connection, backend):
    frame = make_frame("trade", data={"trade_id": "trd-9"})
    connection._handle_frame(frame)
    await settle(engine)
    connection._handle_frame(frame)
    await settle(engine)

    assert backend.count("trades", "A") == 1
    assert engine.router.stats.duplicates == 1


@pytest.mark.asyncio
async def test_other_account_events_are_ignored(engine, connection, backend):
    """Test that events for another account never trigger a fetch."""
    connection._handle_frame(make_frame("position", account_id="B"))
    connection._handle_frame(make_frame("account_info", account_id="B"))
    await settle(engine)

    assert backend.paths() == []
    assert len(engine.messages) == 2
    assert engine.account_messages() == []


@pytest.mark.asyncio
async def test_categories_refresh_independently(engine, connection, backend):
    connection._handle_frame(make_frame("position", timestamp="t1"))
    connection._handle_frame(make_frame("order_action", timestamp="t2"))
    connection._handle_frame(make_frame("trade", timestamp="t3"))
    await settle(engine)

    assert backend.count("positions", "A") == 1
    assert backend.count("orders", "A") == 1
    assert backend.count("trades", "A") == 1
    assert backend.count("overview") == 0


@pytest.mark.asyncio
async def test_overview_is_refreshed_without_debounce(connection, snapshot_client, auth, backend):
    """Test that an account_info event fetches the overview even with a long debounce."""
    engine = AccountSyncEngine("A", connection, snapshot_client, auth, debounce_delay=10.0)
    await engine.start()
    backend.requests.clear()

    connection._handle_frame(make_frame("account_info"))

    assert engine.scheduler.pending == []
    await engine.coordinator.wait_idle()
    assert backend.count("overview", "A") == 1
    engine.stop()


@pytest.mark.asyncio
async def test_unknown_events_are_ignored(engine, connection, backend):
    connection._handle_frame(make_frame("heartbeat"))
    await settle(engine)

    assert backend.paths() == []


@pytest.mark.asyncio
async def test_unauthorized_refresh_ends_session(engine, connection, backend, auth):
    backend.status["positions"] = 401
    previous = engine.snapshots[ResourceCategory.POSITIONS]

    connection._handle_frame(make_frame("position"))
    await settle(engine)

    assert not auth.session_active
    assert engine.snapshots[ResourceCategory.POSITIONS] == previous


@pytest.mark.asyncio
async def test_failed_refresh_keeps_stale_snapshot(engine, connection, backend, auth):
    backend.status["orders"] = 500
    previous = engine.snapshots[ResourceCategory.ORDERS]

    connection._handle_frame(make_frame("order"))
    await settle(engine)

    assert engine.snapshots[ResourceCategory.ORDERS] == previous
    assert not engine.loading[ResourceCategory.ORDERS]
    assert auth.session_active


@pytest.mark.asyncio
async def test_switch_account_cancels_timers_and_reloads(engine, connection, backend):
    """Test that pending timers of the old account never fetch after a switch."""
    connection._handle_frame(make_frame("position"))
    assert engine.scheduler.is_pending(ResourceCategory.POSITIONS)

    results = await engine.switch_account("B")
    await settle(engine)

    assert all(results.values())
    assert engine.account_id == "B"
    assert backend.count("positions", "A") == 0
    assert backend.count("positions", "B") == 1
    assert engine.coordinator.account_id == "B"
    assert engine.snapshots[ResourceCategory.OVERVIEW].account_id == "B"


@pytest.mark.asyncio
async def test_switch_account_clears_dedup(engine, connection, backend):
    frame_for_b = make_frame("position", account_id="B")
    connection._handle_frame(frame_for_b)
    await engine.switch_account("B")
    backend.requests.clear()

    connection._handle_frame(frame_for_b)
    await settle(engine)

    assert backend.count("positions", "B") == 1


@pytest.mark.asyncio
async def test_snapshot_listeners_survive_switch(engine):
    received = []
    engine.add_snapshot_listener(received.append)

    await engine.switch_account("B")

    assert {snapshot.account_id for snapshot in received} == {"B"}
    assert len(received) == len(ResourceCategory)


@pytest.mark.asyncio
async def test_manual_refresh(engine, backend):
    """Test that a manual refresh asks the backend to re-pull and reloads everything."""
    results = await engine.manual_refresh()

    assert all(results.values())
    assert backend.paths("POST") == ["/api/accounts/A/refresh"]
    assert len(backend.paths("GET")) == len(ResourceCategory)


@pytest.mark.asyncio
async def test_manual_refresh_backend_failure_still_reloads(engine, backend, auth):
    backend.status["refresh"] = 503

    results = await engine.manual_refresh()

    assert all(results.values())
    assert len(backend.paths("GET")) == len(ResourceCategory)
    assert auth.session_active


@pytest.mark.asyncio
async def test_manual_refresh_unauthorized_ends_session(engine, backend, auth):
    backend.status["refresh"] = 401

    results = await engine.manual_refresh()

    assert not any(results.values())
    assert backend.paths("GET") == []
    assert not auth.session_active


@pytest.mark.asyncio
async def test_stop_unsubscribes(engine, connection, backend):
    engine.stop()

    connection._handle_frame(make_frame("position"))
    await asyncio.sleep(DEBOUNCE * 3)

    assert not engine.started
    assert backend.paths() == []
    assert engine.coordinator.disposed
