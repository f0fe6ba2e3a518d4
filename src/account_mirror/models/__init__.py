"""Data models."""

from .event import EventIdentity, StreamEvent
from .resources import (
    Account,
    AccountOverview,
    Activity,
    CategorySnapshot,
    Order,
    Position,
    ResourceCategory,
    Trade,
)
from .stream_state import ConnectionStatus, StreamState

__all__ = [
    "Account",
    "AccountOverview",
    "Activity",
    "CategorySnapshot",
    "ConnectionStatus",
    "EventIdentity",
    "Order",
    "Position",
    "ResourceCategory",
    "StreamEvent",
    "StreamState",
    "Trade",
]
