"""View API (v1)."""

from .accounts import router as accounts_router
from .auth import router as auth_router

__all__ = ["accounts_router", "auth_router"]
