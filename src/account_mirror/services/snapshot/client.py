"""
Dashboard backend REST client.

Fetches the authoritative snapshot of one resource category for an account,
the account list, and triggers the backend-side account refresh.
"""

from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ...config.logging import get_logger
from ...config.settings import settings
from ...exceptions import SnapshotFetchError, UnauthorizedError
from ...models.resources import (
    Account,
    AccountOverview,
    Activity,
    Order,
    Position,
    ResourceCategory,
    Trade,
)
from ..auth.provider import AuthProvider

logger = get_logger(__name__)

# category -> (path suffix, list key in the response body, item model)
_ENDPOINTS: Dict[ResourceCategory, tuple] = {
    ResourceCategory.POSITIONS: ("positions", "positions", Position),
    ResourceCategory.ORDERS: ("orders", "orders", Order),
    ResourceCategory.TRADES: ("trades", "trades", Trade),
    ResourceCategory.OVERVIEW: ("overview", None, AccountOverview),
    ResourceCategory.ACTIVITY: ("activity", "activities", Activity),
}


def create_http_client(
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Build the shared HTTP client for the dashboard backend."""
    return httpx.AsyncClient(
        base_url=base_url or settings.mirror_api_base_url,
        timeout=settings.snapshot_timeout_seconds if timeout is None else timeout,
        transport=transport,
    )


class SnapshotClient:
    """Client for the dashboard backend snapshot endpoints."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        auth: AuthProvider,
        trades_limit: Optional[int] = None,
        activity_limit: Optional[int] = None,
    ):
        self._http = http
        self._auth = auth
        self._params: Dict[ResourceCategory, Dict[str, Any]] = {
            ResourceCategory.TRADES: {
                "limit": settings.trades_limit if trades_limit is None else trades_limit
            },
            ResourceCategory.ACTIVITY: {
                "limit": settings.activity_limit if activity_limit is None else activity_limit
            },
        }

    async def fetch(self, category: ResourceCategory, account_id: str) -> Any:
        """
        Fetch the current snapshot of ``category`` for ``account_id``.

        Returns:
            A list of resource models, or an ``AccountOverview`` for the overview.

        Raises:
            UnauthorizedError: On a 401 answer.
            SnapshotFetchError: On any other failure (transport, status, body).
        """
        suffix, list_key, model = _ENDPOINTS[category]
        body = await self._request(
            "GET",
            f"/api/accounts/{account_id}/{suffix}",
            category=category.value,
            params=self._params.get(category),
        )

        if list_key is not None and not isinstance(body, dict):
            raise SnapshotFetchError(
                f"Unexpected {category.value} response shape", category=category.value
            )

        try:
            if list_key is None:
                return model.model_validate(body)
            items = body.get(list_key) or []
            return [model.model_validate(item) for item in items]
        except ValidationError as e:
            logger.error(
                "snapshot_validation_failed",
                category=category.value,
                account_id=account_id,
                error=str(e),
            )
            raise SnapshotFetchError(
                f"Invalid {category.value} snapshot: {e}", category=category.value
            ) from e

    async def list_accounts(self) -> List[Account]:
        """Fetch the accounts visible to the current session."""
        body = await self._request("GET", "/api/accounts", category="accounts")
        items = (body.get("accounts") or []) if isinstance(body, dict) else []
        try:
            return [Account.model_validate(item) for item in items]
        except ValidationError as e:
            raise SnapshotFetchError(f"Invalid account list: {e}", category="accounts") from e

    async def request_account_refresh(self, account_id: str) -> None:
        """Ask the backend to re-pull the account from the broker."""
        await self._request("POST", f"/api/accounts/{account_id}/refresh", category="refresh")

    async def _request(
        self,
        method: str,
        path: str,
        category: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            response = await self._http.request(
                method, path, params=params, headers=self._auth.auth_headers()
            )
        except httpx.TimeoutException as e:
            logger.warning("snapshot_request_timeout", path=path, category=category)
            raise SnapshotFetchError(f"Request to {path} timed out", category=category) from e
        except httpx.HTTPError as e:
            raise SnapshotFetchError(
                f"Request to {path} failed: {e}", category=category
            ) from e

        if response.status_code == 401:
            raise UnauthorizedError(
                f"Unauthorized response from {path}", category=category, status_code=401
            )
        if not response.is_success:
            raise SnapshotFetchError(
                f"{path} answered {response.status_code}",
                category=category,
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise SnapshotFetchError(
                f"{path} returned invalid JSON", category=category, status_code=response.status_code
            ) from e
