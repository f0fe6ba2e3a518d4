"""Response models of the view API."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "degraded"]
    service: str
    stream_connected: bool = False
    stream_status: str = "unknown"
    stream_url: str = ""
    stream_last_message_at: Optional[datetime] = None
    stream_reconnect_count: int = 0
    stream_reconnect_pending: bool = False
    buffered_messages: int = 0
    observed_account_id: Optional[str] = None
    session_active: bool = True


class CategoryStateView(BaseModel):
    loading: bool = False
    fetched_at: Optional[datetime] = None
    data: Any = None


class AccountStateResponse(BaseModel):
    """Snapshot state of the observed account."""

    account_id: str
    connected: bool
    categories: Dict[str, CategoryStateView] = Field(default_factory=dict)
    pending_refreshes: List[str] = Field(default_factory=list)


class StreamMessageView(BaseModel):
    type: str
    account_id: str
    data: Any = None
    timestamp: str
    received_at: datetime


class MessagesResponse(BaseModel):
    count: int
    messages: List[StreamMessageView]


class RefreshResponse(BaseModel):
    account_id: str
    results: Dict[str, bool]


class LoginRequest(BaseModel):
    username: str
    password: str


class AuthStatusResponse(BaseModel):
    """Session state after a login, verify or logout call."""

    authenticated: bool
    session_active: bool
