"""Session authentication."""

from .provider import AuthProvider

__all__ = ["AuthProvider"]
