"""Snapshot REST client and per-account snapshot state."""

from .client import SnapshotClient, create_http_client
from .coordinator import SnapshotCoordinator

__all__ = ["SnapshotClient", "SnapshotCoordinator", "create_http_client"]
