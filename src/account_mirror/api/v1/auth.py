"""Session authentication API (v1).

Login restores a session that ended on a 401; verify and logout mirror the
backend's own auth endpoints.
"""

from fastapi import APIRouter, HTTPException, Request

from ...config.logging import get_logger
from ...exceptions import AuthenticationError
from ...services.session import MirrorSession
from ..schemas import AuthStatusResponse, LoginRequest

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])
logger = get_logger(__name__)


def _status(session: MirrorSession) -> AuthStatusResponse:
    return AuthStatusResponse(
        authenticated=session.auth.is_authenticated,
        session_active=session.auth.session_active,
    )


@router.post("/login", response_model=AuthStatusResponse)
async def login(body: LoginRequest, request: Request) -> AuthStatusResponse:
    session: MirrorSession = request.app.state.session
    try:
        await session.auth.login(body.username, body.password)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=e.message)
    return _status(session)


@router.get("/verify", response_model=AuthStatusResponse)
async def verify(request: Request) -> AuthStatusResponse:
    """Check the stored token against the backend; a rejected token is dropped."""
    session: MirrorSession = request.app.state.session
    await session.auth.verify()
    return _status(session)


@router.post("/logout", response_model=AuthStatusResponse)
async def logout(request: Request) -> AuthStatusResponse:
    session: MirrorSession = request.app.state.session
    session.auth.logout(reason="logout")
    return _status(session)
