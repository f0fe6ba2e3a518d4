"""Account state REST API (v1).

Read-only projection of the engine state for the view layer, plus the
operator's manual refresh action.
"""

from __future__ import annotations

from typing import Any, List, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from ...config.logging import get_logger
from ...exceptions import SnapshotFetchError, UnauthorizedError
from ...models.resources import Account, ResourceCategory
from ...services.session import MirrorSession
from ...services.sync.engine import AccountSyncEngine
from ..schemas import (
    AccountStateResponse,
    CategoryStateView,
    MessagesResponse,
    RefreshResponse,
    StreamMessageView,
)

router = APIRouter(prefix="/api/v1", tags=["accounts"])
logger = get_logger(__name__)


def _session(request: Request) -> MirrorSession:
    session: MirrorSession = request.app.state.session
    if not session.auth.session_active:
        raise HTTPException(status_code=401, detail="Session has ended")
    return session


def _dump(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump()
    if isinstance(data, list):
        return [_dump(item) for item in data]
    return data


def _to_state_response(engine: AccountSyncEngine) -> AccountStateResponse:
    coordinator = engine.coordinator
    categories = {}
    for category in ResourceCategory:
        snapshot = coordinator.snapshot(category)
        categories[category.value] = CategoryStateView(
            loading=coordinator.is_loading(category),
            fetched_at=snapshot.fetched_at if snapshot else None,
            data=_dump(snapshot.data) if snapshot else None,
        )
    return AccountStateResponse(
        account_id=engine.account_id,
        connected=engine.is_connected,
        categories=categories,
        pending_refreshes=[c.value for c in engine.scheduler.pending],
    )


@router.get("/accounts", response_model=List[Account])
async def list_accounts(request: Request) -> List[Account]:
    """Accounts visible to the current session, as reported by the backend."""
    session = _session(request)
    try:
        return await session.list_accounts()
    except UnauthorizedError:
        raise HTTPException(status_code=401, detail="Unauthorized")
    except SnapshotFetchError as e:
        logger.error("account_list_failed", error=e.message, status_code=e.status_code)
        raise HTTPException(status_code=502, detail="Account list unavailable")


@router.get("/accounts/{account_id}/state", response_model=AccountStateResponse)
async def get_account_state(account_id: str, request: Request) -> AccountStateResponse:
    """Current snapshots of ``account_id``; starts observing it if needed."""
    session = _session(request)
    async with session.account(account_id) as engine:
        return _to_state_response(engine)


@router.post("/accounts/{account_id}/refresh", response_model=RefreshResponse)
async def refresh_account(account_id: str, request: Request) -> RefreshResponse:
    """Manual refresh: unconditional reload of every category."""
    session = _session(request)
    async with session.account(account_id) as engine:
        results = await engine.manual_refresh()
    logger.info("manual_refresh_completed", account_id=account_id)
    return RefreshResponse(
        account_id=account_id,
        results={category.value: ok for category, ok in results.items()},
    )


@router.get("/messages", response_model=MessagesResponse)
async def list_messages(
    request: Request,
    limit: int = Query(100, ge=1, le=1000, description="Maximum messages to return"),
    account_id: Optional[str] = Query(None, description="Only messages of this account"),
) -> MessagesResponse:
    """Received stream messages, newest first."""
    buffer = request.app.state.session.connection.buffer
    events = buffer.for_account(account_id, limit) if account_id else buffer.latest(limit)
    return MessagesResponse(
        count=len(events),
        messages=[
            StreamMessageView(
                type=event.category,
                account_id=event.account_id,
                data=event.payload,
                timestamp=event.timestamp,
                received_at=event.received_at,
            )
            for event in events
        ],
    )
