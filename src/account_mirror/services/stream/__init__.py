"""Event stream connection, message buffer and reconnect policy."""

from .buffer import MessageBuffer
from .connection import StreamConnection
from .reconnection import ReconnectPolicy

__all__ = ["MessageBuffer", "ReconnectPolicy", "StreamConnection"]
