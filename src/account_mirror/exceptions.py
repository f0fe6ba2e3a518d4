"""Error handling and exception classes."""

from typing import Optional


class AccountMirrorError(Exception):
    """Base exception for the account mirror service."""

    def __init__(self, message: str, trace_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.trace_id = trace_id


class StreamConnectionError(AccountMirrorError):
    """Raised when the event stream cannot be used (e.g. send while disconnected)."""

    pass


class SnapshotFetchError(AccountMirrorError):
    """Raised when a snapshot or action request fails."""

    def __init__(
        self,
        message: str,
        category: Optional[str] = None,
        status_code: Optional[int] = None,
        trace_id: Optional[str] = None,
    ):
        super().__init__(message, trace_id=trace_id)
        self.category = category
        self.status_code = status_code


class UnauthorizedError(SnapshotFetchError):
    """Raised when the backend answers 401; the session must be terminated."""

    pass


class AuthenticationError(AccountMirrorError):
    """Raised when login fails."""

    pass
