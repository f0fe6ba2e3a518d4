"""Trace ID generation and propagation utilities.

Every received stream frame and every snapshot fetch runs under a trace ID so
that a refresh can be followed from the event that caused it to the request
that served it.
"""

import contextvars
import uuid
from typing import Optional

import structlog

# Context variable to store trace ID for the current async context
_trace_id_context: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "trace_id", default=None
)


def generate_trace_id() -> str:
    """Generate a new unique trace ID."""
    return str(uuid.uuid4())


def set_trace_id(trace_id: Optional[str]) -> None:
    """Set trace ID in the current async context.

    Tasks created afterwards inherit a copy of the context, so a fetch spawned
    while handling a frame keeps the frame's trace ID.

    Args:
        trace_id: Trace ID to set, or None to clear it.
    """
    _trace_id_context.set(trace_id)
    if trace_id:
        structlog.contextvars.bind_contextvars(trace_id=trace_id)
    else:
        structlog.contextvars.unbind_contextvars("trace_id")


def get_trace_id() -> Optional[str]:
    """Get current trace ID from the async context."""
    return _trace_id_context.get(None)


def get_or_create_trace_id() -> str:
    """Get current trace ID or create a new one if none exists."""
    trace_id = get_trace_id()
    if not trace_id:
        trace_id = generate_trace_id()
        set_trace_id(trace_id)
    return trace_id


def clear_trace_id() -> None:
    """Clear trace ID from the current async context."""
    _trace_id_context.set(None)
    structlog.contextvars.unbind_contextvars("trace_id")
