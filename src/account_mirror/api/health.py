"""Health check endpoint."""

from fastapi import APIRouter, Request

from ..config.settings import settings
from ..models.stream_state import ConnectionStatus
from .schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint.

    A disconnected stream counts as healthy while a reconnect attempt is
    pending; with nothing scheduled it is reported as "degraded".
    """
    session = request.app.state.session
    connection = session.connection
    state = connection.state

    healthy = state.status != ConnectionStatus.DISCONNECTED or connection.reconnect_pending
    engine = session.engine

    return HealthResponse(
        status="healthy" if healthy else "degraded",
        service=settings.mirror_service_name,
        stream_connected=connection.is_connected,
        stream_status=state.status.value,
        stream_url=connection.url,
        stream_last_message_at=state.last_message_at,
        stream_reconnect_count=state.reconnect_count,
        stream_reconnect_pending=connection.reconnect_pending,
        buffered_messages=len(connection.buffer),
        observed_account_id=engine.account_id if engine else None,
        session_active=session.auth.session_active,
    )
