"""Unit tests for SnapshotClient."""

import httpx
import pytest

from account_mirror.exceptions import SnapshotFetchError, UnauthorizedError
from account_mirror.models.resources import AccountOverview, Order, Position, ResourceCategory
from account_mirror.services.auth.provider import AuthProvider
from account_mirror.services.snapshot.client import SnapshotClient, create_http_client


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "category, path",
    [
        (ResourceCategory.POSITIONS, "/api/accounts/A/positions"),
        (ResourceCategory.ORDERS, "/api/accounts/A/orders"),
        (ResourceCategory.TRADES, "/api/accounts/A/trades"),
        (ResourceCategory.OVERVIEW, "/api/accounts/A/overview"),
        (ResourceCategory.ACTIVITY, "/api/accounts/A/activity"),
    ],
)
async def test_fetch_paths(snapshot_client, backend, category, path):
    await snapshot_client.fetch(category, "A")

    assert backend.paths() == [path]


@pytest.mark.asyncio
async def test_fetch_sends_bearer_token(snapshot_client, backend):
    await snapshot_client.fetch(ResourceCategory.POSITIONS, "A")

    assert backend.requests[0].headers["Authorization"] == "Bearer token-123"


@pytest.mark.asyncio
async def test_fetch_without_token_sends_no_authorization(http, backend):
    client = SnapshotClient(http, AuthProvider(http))

    await client.fetch(ResourceCategory.POSITIONS, "A")

    assert "Authorization" not in backend.requests[0].headers


@pytest.mark.asyncio
async def test_trades_and_activity_limits(http, auth, backend):
    client = SnapshotClient(http, auth, trades_limit=50, activity_limit=20)

    await client.fetch(ResourceCategory.TRADES, "A")
    await client.fetch(ResourceCategory.ACTIVITY, "A")

    assert backend.requests[0].url.params["limit"] == "50"
    assert backend.requests[1].url.params["limit"] == "20"


@pytest.mark.asyncio
async def test_default_limits(snapshot_client, backend):
    await snapshot_client.fetch(ResourceCategory.TRADES, "A")
    await snapshot_client.fetch(ResourceCategory.POSITIONS, "A")

    assert backend.requests[0].url.params["limit"] == "1000"
    assert "limit" not in backend.requests[1].url.params


@pytest.mark.asyncio
async def test_list_categories_are_parsed(snapshot_client):
    positions = await snapshot_client.fetch(ResourceCategory.POSITIONS, "A")
    orders = await snapshot_client.fetch(ResourceCategory.ORDERS, "A")

    assert isinstance(positions[0], Position)
    assert positions[0].symbol == "AAPL"
    assert positions[0].quantity == 100
    assert isinstance(orders[0], Order)
    assert orders[0].order_id == "ord-1"


@pytest.mark.asyncio
async def test_overview_is_an_object(snapshot_client):
    overview = await snapshot_client.fetch(ResourceCategory.OVERVIEW, "A")

    assert isinstance(overview, AccountOverview)
    assert overview.account_id == "A"
    assert overview.buying_power == 100000.0


@pytest.mark.asyncio
async def test_unknown_fields_are_kept(snapshot_client, backend):
    backend.bodies["positions"] = {"positions": [{"symbol": "MSFT", "sector": "tech"}]}

    positions = await snapshot_client.fetch(ResourceCategory.POSITIONS, "A")

    assert positions[0].model_dump()["sector"] == "tech"


@pytest.mark.asyncio
async def test_missing_list_key_yields_empty_list(snapshot_client, backend):
    backend.bodies["orders"] = {"count": 0}

    assert await snapshot_client.fetch(ResourceCategory.ORDERS, "A") == []


@pytest.mark.asyncio
async def test_unexpected_shape_raises(snapshot_client, backend):
    backend.bodies["positions"] = [{"symbol": "AAPL"}]

    with pytest.raises(SnapshotFetchError):
        await snapshot_client.fetch(ResourceCategory.POSITIONS, "A")


@pytest.mark.asyncio
async def test_invalid_items_raise(snapshot_client, backend):
    backend.bodies["orders"] = {"orders": [{"symbol": "AAPL"}]}

    with pytest.raises(SnapshotFetchError) as exc_info:
        await snapshot_client.fetch(ResourceCategory.ORDERS, "A")

    assert exc_info.value.category == "orders"


@pytest.mark.asyncio
async def test_unauthorized(snapshot_client, backend):
    backend.status["positions"] = 401

    with pytest.raises(UnauthorizedError) as exc_info:
        await snapshot_client.fetch(ResourceCategory.POSITIONS, "A")

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_server_error(snapshot_client, backend):
    backend.status["trades"] = 500

    with pytest.raises(SnapshotFetchError) as exc_info:
        await snapshot_client.fetch(ResourceCategory.TRADES, "A")

    assert not isinstance(exc_info.value, UnauthorizedError)
    assert exc_info.value.status_code == 500
    assert exc_info.value.category == "trades"


@pytest.mark.asyncio
async def test_transport_error(auth):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(
        base_url="http://backend.test", transport=httpx.MockTransport(handler)
    ) as http:
        client = SnapshotClient(http, auth)
        with pytest.raises(SnapshotFetchError) as exc_info:
            await client.fetch(ResourceCategory.POSITIONS, "A")

    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_list_accounts(snapshot_client, backend):
    accounts = await snapshot_client.list_accounts()

    assert [a.account_id for a in accounts] == ["A", "B"]
    assert backend.paths() == ["/api/accounts"]


@pytest.mark.asyncio
async def test_request_account_refresh(snapshot_client, backend):
    await snapshot_client.request_account_refresh("A")

    assert backend.paths("POST") == ["/api/accounts/A/refresh"]


@pytest.mark.asyncio
async def test_request_account_refresh_unauthorized(snapshot_client, backend):
    backend.status["refresh"] = 401

    with pytest.raises(UnauthorizedError):
        await snapshot_client.request_account_refresh("A")


@pytest.mark.asyncio
async def test_create_http_client_uses_settings():
    client = create_http_client()
    try:
        assert str(client.base_url).rstrip("/") == "http://localhost:8000"
        assert client.timeout.read == 10.0
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_numeric_identifiers_are_accepted(snapshot_client, backend):
    """Test that numeric ids from the backend do not reject the whole category."""
    backend.bodies["orders"] = {"orders": [{"order_id": 12345, "symbol": "AAPL", "token": 7}]}
    backend.bodies["trades"] = {"trades": [{"trade_id": 987, "symbol": "AAPL", "order_id": 12345}]}

    orders = await snapshot_client.fetch(ResourceCategory.ORDERS, "A")
    trades = await snapshot_client.fetch(ResourceCategory.TRADES, "A")

    assert orders[0].order_id == "12345"
    assert orders[0].token == "7"
    assert trades[0].trade_id == "987"
    assert trades[0].order_id == "12345"
