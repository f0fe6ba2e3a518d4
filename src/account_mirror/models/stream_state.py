"""Event stream connection state model."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class ConnectionStatus(str, Enum):
    """Event stream connection status."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class StreamState(BaseModel):
    """Represents the state of the event stream connection."""

    connection_id: UUID = Field(default_factory=uuid4, description="Unique connection identifier")
    url: str = Field(..., description="Event stream URL")
    status: ConnectionStatus = Field(
        default=ConnectionStatus.DISCONNECTED, description="Current connection status"
    )
    connected_at: Optional[datetime] = Field(
        default=None, description="When the current connection was opened"
    )
    last_message_at: Optional[datetime] = Field(
        default=None, description="When the last frame was received"
    )
    reconnect_count: int = Field(default=0, description="Number of reconnection attempts")
    last_error: Optional[str] = Field(default=None, description="Last error message (if any)")
