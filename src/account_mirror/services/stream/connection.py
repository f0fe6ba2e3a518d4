"""Event stream connection manager with websockets library."""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional

import websockets
from websockets.exceptions import ConnectionClosedOK

from ...config.logging import get_logger
from ...config.settings import settings
from ...exceptions import StreamConnectionError
from ...models.event import StreamEvent
from ...models.stream_state import ConnectionStatus, StreamState
from ...utils.tracing import (
    clear_trace_id,
    generate_trace_id,
    get_or_create_trace_id,
    set_trace_id,
)
from .buffer import MessageBuffer
from .reconnection import ReconnectPolicy

logger = get_logger(__name__)

EventListener = Callable[[StreamEvent], None]
Connector = Callable[[str], Awaitable[Any]]


class StreamConnection:
    """Owns the single event stream connection of a session.

    State machine: DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED.
    Any close (graceful, error-induced or a failed handshake) schedules exactly
    one reconnect attempt; a successful open cancels a pending attempt.
    Decoded events are appended to the message buffer and then handed to the
    registered listeners synchronously, in arrival order.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        buffer: Optional[MessageBuffer] = None,
        reconnect_policy: Optional[ReconnectPolicy] = None,
        connector: Optional[Connector] = None,
        open_timeout: Optional[float] = None,
    ):
        """
        Initialize the connection manager.

        Args:
            url: Event stream URL; defaults to the configured stream URL.
            buffer: Buffer receiving decoded events.
            reconnect_policy: Decides the delay before each reconnect attempt.
            connector: Coroutine factory opening a websocket for a URL
                (``websockets.connect`` unless overridden).
            open_timeout: Handshake timeout in seconds.
        """
        self._url = url or settings.stream_url
        self._buffer = buffer if buffer is not None else MessageBuffer(settings.message_buffer_cap)
        self._policy = reconnect_policy or ReconnectPolicy()
        self._connector = connector or websockets.connect
        self._open_timeout = (
            settings.stream_open_timeout_seconds if open_timeout is None else open_timeout
        )
        self._state = StreamState(url=self._url)
        self._websocket: Optional[Any] = None
        self._receive_task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._listeners: List[EventListener] = []
        self._disposed = False

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> StreamState:
        """Get current connection state."""
        return self._state

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    @property
    def is_connected(self) -> bool:
        return self._websocket is not None and self._state.status == ConnectionStatus.CONNECTED

    @property
    def buffer(self) -> MessageBuffer:
        return self._buffer

    @property
    def messages(self) -> List[StreamEvent]:
        """Received events, newest first."""
        return self._buffer.latest()

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    @property
    def disposed(self) -> bool:
        return self._disposed

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register a listener for decoded events; returns a function removing it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def connect(self) -> None:
        """
        Open the event stream.

        A failed handshake is not raised: it is treated like a close and a
        reconnect attempt is scheduled.

        Raises:
            StreamConnectionError: If the connection has already been disposed.
        """
        if self._disposed:
            raise StreamConnectionError("Stream connection has been disposed")

        trace_id = generate_trace_id()
        set_trace_id(trace_id)

        if self._state.status != ConnectionStatus.DISCONNECTED:
            logger.warning(
                "stream_already_connected",
                status=self._state.status.value,
                connection_id=str(self._state.connection_id),
                trace_id=trace_id,
            )
            return

        self._set_status(ConnectionStatus.CONNECTING, reason="connect")
        logger.info(
            "stream_connecting",
            url=self._url,
            connection_id=str(self._state.connection_id),
            trace_id=trace_id,
        )

        try:
            websocket = await asyncio.wait_for(
                self._connector(self._url), timeout=self._open_timeout
            )
        except asyncio.CancelledError:
            self._set_status(ConnectionStatus.DISCONNECTED, reason="connect_cancelled")
            raise
        except Exception as e:
            logger.warning(
                "stream_connect_failed",
                url=self._url,
                error=str(e),
                error_type=type(e).__name__,
                connection_id=str(self._state.connection_id),
                trace_id=trace_id,
            )
            self._on_error(e)
            self._on_close(reason="connect_failed")
            return

        if self._disposed:
            # Disposed while the handshake was in flight.
            await websocket.close()
            return

        self._websocket = websocket
        self._on_open()
        self._receive_task = asyncio.create_task(self._receive_frames(websocket))

    async def send(self, message: dict) -> None:
        """
        Send a message through the stream.

        Raises:
            StreamConnectionError: If the stream is not connected or the send fails.
        """
        if not self.is_connected:
            raise StreamConnectionError("Event stream is not connected")

        try:
            await self._websocket.send(json.dumps(message))
            logger.debug("stream_message_sent", message=message)
        except Exception as e:
            logger.error("stream_send_error", error=str(e), error_type=type(e).__name__)
            raise StreamConnectionError(f"Failed to send message: {e}") from e

    async def dispose(self) -> None:
        """Close the connection and cancel any pending reconnect attempt."""
        self._disposed = True

        reconnect_task, self._reconnect_task = self._reconnect_task, None
        receive_task, self._receive_task = self._receive_task, None
        for task in (reconnect_task, receive_task):
            if task is None or task is asyncio.current_task():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        websocket, self._websocket = self._websocket, None
        if websocket is not None:
            try:
                await websocket.close()
            except Exception as e:
                logger.warning("stream_close_error", error=str(e), error_type=type(e).__name__)

        if self._state.status != ConnectionStatus.DISCONNECTED:
            self._set_status(ConnectionStatus.DISCONNECTED, reason="disposed")
        self._listeners.clear()
        logger.info("stream_disposed", connection_id=str(self._state.connection_id))

    async def __aenter__(self) -> "StreamConnection":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    def _on_open(self) -> None:
        self._state.connected_at = datetime.now(timezone.utc)
        self._state.last_error = None
        self._set_status(ConnectionStatus.CONNECTED, reason="open")
        self._policy.reset()
        self._cancel_reconnect()
        logger.info(
            "stream_connected",
            url=self._url,
            connection_id=str(self._state.connection_id),
        )

    def _on_error(self, error: BaseException) -> None:
        self._state.last_error = str(error) or type(error).__name__
        if self._state.status != ConnectionStatus.DISCONNECTED:
            self._set_status(ConnectionStatus.DISCONNECTED, reason="error")

    def _on_close(self, reason: str) -> None:
        self._websocket = None
        if self._state.status != ConnectionStatus.DISCONNECTED:
            self._set_status(ConnectionStatus.DISCONNECTED, reason=reason)
        if not self._disposed:
            self._schedule_reconnect()

    def _set_status(self, status: ConnectionStatus, reason: str) -> None:
        old_status = self._state.status
        self._state.status = status
        logger.info(
            "stream_state_changed",
            old_status=old_status.value,
            new_status=status.value,
            connection_id=str(self._state.connection_id),
            reason=reason,
        )

    def _schedule_reconnect(self) -> None:
        # The attempt currently running may schedule its own successor.
        if self.reconnect_pending and self._reconnect_task is not asyncio.current_task():
            logger.debug("stream_reconnect_already_pending")
            return
        delay = self._policy.next_delay()
        logger.info(
            "stream_reconnect_scheduled",
            delay=delay,
            attempt=self._policy.attempts,
            connection_id=str(self._state.connection_id),
        )
        self._reconnect_task = asyncio.create_task(self._reconnect_after(delay))

    def _cancel_reconnect(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            logger.debug("stream_reconnect_cancelled")

    async def _reconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._disposed:
            return
        self._state.reconnect_count += 1
        logger.info(
            "stream_reconnecting",
            attempt=self._state.reconnect_count,
            connection_id=str(self._state.connection_id),
        )
        try:
            # The slot stays taken during the handshake so dispose can cancel it.
            await self.connect()
        finally:
            if self._reconnect_task is asyncio.current_task():
                self._reconnect_task = None

    async def _receive_frames(self, websocket: Any) -> None:
        """Receive frames until the socket closes, then hand over to reconnection."""
        reason = "closed"
        try:
            async for message in websocket:
                self._handle_frame(message)
        except asyncio.CancelledError:
            raise
        except ConnectionClosedOK:
            pass
        except Exception as e:
            reason = "receive_error"
            logger.warning(
                "stream_receive_error",
                error=str(e),
                error_type=type(e).__name__,
                connection_id=str(self._state.connection_id),
            )
            self._on_error(e)

        if self._websocket is websocket:
            logger.warning(
                "stream_connection_closed",
                connection_id=str(self._state.connection_id),
                reason=reason,
            )
            self._receive_task = None
            self._on_close(reason=reason)

    def _handle_frame(self, raw: Any) -> None:
        self._state.last_message_at = datetime.now(timezone.utc)
        try:
            event = StreamEvent.from_frame(json.loads(raw))
        except (TypeError, ValueError) as e:
            # Undecodable frames never affect connection state.
            logger.debug(
                "stream_frame_dropped",
                error=str(e),
                error_type=type(e).__name__,
                raw_message=str(raw)[:200],
            )
            return

        set_trace_id(generate_trace_id())
        self._buffer.append(event)
        logger.debug(
            "stream_event_received",
            event_type=event.category,
            account_id=event.account_id,
            timestamp=event.timestamp,
        )

        try:
            for listener in list(self._listeners):
                try:
                    listener(event)
                except Exception as e:
                    logger.error(
                        "stream_listener_error",
                        error=str(e),
                        error_type=type(e).__name__,
                        event_type=event.category,
                        trace_id=get_or_create_trace_id(),
                        exc_info=True,
                    )
        finally:
            # Tasks spawned by listeners already hold a copy of the trace context.
            clear_trace_id()
