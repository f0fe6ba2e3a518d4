"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api.health import router as health_router
from .api.v1 import accounts_router, auth_router
from .config.logging import get_logger, setup_logging
from .config.settings import settings
from .exceptions import AccountMirrorError
from .services.session import MirrorSession

# Setup logging first
setup_logging()
logger = get_logger(__name__)


def create_app(session: Optional[MirrorSession] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        session: Pre-built session (tests inject one with fake transports).
            When omitted, the lifespan builds a session and opens the stream.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("application_starting", service=settings.mirror_service_name)
        owned = session is None
        app.state.session = session if session is not None else MirrorSession()
        if owned:
            if app.state.session.auth.token:
                valid = await app.state.session.auth.verify()
                logger.info("auth_token_verified", valid=valid)
            await app.state.session.connect()
        logger.info("application_started", stream_url=app.state.session.connection.url)

        yield

        logger.info("application_shutting_down")
        if owned:
            await app.state.session.dispose()
        logger.info("application_shutdown_complete")

    app = FastAPI(
        title="Account Mirror",
        description="Live mirror of trading account state",
        version="1.0.0",
        lifespan=lifespan,
    )
    if session is not None:
        app.state.session = session

    app.include_router(health_router)
    app.include_router(accounts_router)
    app.include_router(auth_router)

    @app.exception_handler(AccountMirrorError)
    async def account_mirror_error_handler(request: Request, exc: AccountMirrorError):
        logger.error(
            "request_failed",
            path=request.url.path,
            error=exc.message,
            error_type=type(exc).__name__,
            trace_id=exc.trace_id,
        )
        return JSONResponse(status_code=500, content={"detail": exc.message})

    return app


app = create_app()


def main():
    """Main entry point for the service."""
    uvicorn.run(
        "account_mirror.main:app",
        host="0.0.0.0",
        port=settings.mirror_api_port,
        log_config=None,  # Use our structured logging
        access_log=False,
    )


if __name__ == "__main__":
    main()
