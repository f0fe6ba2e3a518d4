"""Bearer-token session for the dashboard backend."""

from typing import Callable, Dict, List, Optional

import httpx

from ...config.logging import get_logger
from ...exceptions import AuthenticationError

logger = get_logger(__name__)

SessionEndListener = Callable[[str], None]


class AuthProvider:
    """Holds the bearer credential and terminates the session on demand.

    ``logout`` is the hook snapshot consumers call when the backend answers 401.
    Listeners registered with ``add_session_end_listener`` are notified once per
    session, no matter how many 401s arrive.
    """

    def __init__(self, http: httpx.AsyncClient, token: Optional[str] = None):
        self._http = http
        self._token = token
        self._session_active = True
        self._listeners: List[SessionEndListener] = []

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    @property
    def session_active(self) -> bool:
        return self._session_active

    def auth_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def add_session_end_listener(self, listener: SessionEndListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    async def login(self, username: str, password: str) -> str:
        """
        Exchange credentials for an access token.

        Raises:
            AuthenticationError: If the backend rejects the credentials or is unreachable.
        """
        try:
            response = await self._http.post(
                "/api/auth/login",
                json={"username": username, "password": password},
            )
        except httpx.HTTPError as e:
            logger.error("login_request_failed", error=str(e), error_type=type(e).__name__)
            raise AuthenticationError(f"Login request failed: {e}") from e

        if response.status_code != 200:
            logger.warning("login_rejected", status_code=response.status_code, username=username)
            raise AuthenticationError(f"Login rejected with status {response.status_code}")

        try:
            token = response.json()["access_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise AuthenticationError("Login response has no access_token") from e

        self._token = token
        self._session_active = True
        logger.info("login_succeeded", username=username)
        return token

    async def verify(self) -> bool:
        """Check the stored token; an invalid or unverifiable token is dropped."""
        if not self._token:
            return False
        try:
            response = await self._http.get("/api/auth/verify", headers=self.auth_headers())
        except httpx.HTTPError as e:
            logger.warning("token_verification_failed", error=str(e), error_type=type(e).__name__)
            self._token = None
            return False

        if response.is_success:
            return True
        logger.info("token_rejected", status_code=response.status_code)
        self._token = None
        return False

    def logout(self, reason: str = "logout") -> None:
        """Drop the token and notify session-end listeners (once per session)."""
        self._token = None
        if not self._session_active:
            return
        self._session_active = False
        logger.warning("session_terminated", reason=reason)
        for listener in list(self._listeners):
            try:
                listener(reason)
            except Exception as e:
                logger.error(
                    "session_end_listener_error",
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
