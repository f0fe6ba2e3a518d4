"""Unit tests for AuthProvider."""

from unittest.mock import MagicMock

import pytest

from account_mirror.exceptions import AuthenticationError
from account_mirror.services.auth.provider import AuthProvider


@pytest.mark.asyncio
async def test_auth_headers(auth):
    headers = auth.auth_headers()

    assert headers["Authorization"] == "Bearer token-123"
    assert headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_logout_notifies_once(auth):
    """Test that repeated 401s end the session only once."""
    listener = MagicMock()
    auth.add_session_end_listener(listener)

    auth.logout(reason="unauthorized")
    auth.logout(reason="unauthorized")

    listener.assert_called_once_with("unauthorized")
    assert auth.token is None
    assert not auth.is_authenticated
    assert not auth.session_active
    assert "Authorization" not in auth.auth_headers()


@pytest.mark.asyncio
async def test_listener_error_does_not_block_others(auth):
    broken = MagicMock(side_effect=RuntimeError("boom"))
    listener = MagicMock()
    auth.add_session_end_listener(broken)
    auth.add_session_end_listener(listener)

    auth.logout()

    listener.assert_called_once_with("logout")


@pytest.mark.asyncio
async def test_remove_listener(auth):
    listener = MagicMock()
    remove = auth.add_session_end_listener(listener)
    remove()

    auth.logout()

    listener.assert_not_called()


@pytest.mark.asyncio
async def test_login(http, backend):
    provider = AuthProvider(http)
    provider.logout()

    token = await provider.login("operator", "secret")

    assert token == "token-123"
    assert provider.is_authenticated
    assert provider.session_active
    assert backend.paths("POST") == ["/api/auth/login"]


@pytest.mark.asyncio
async def test_login_rejected(http, backend):
    backend.status["login"] = 401
    provider = AuthProvider(http)

    with pytest.raises(AuthenticationError):
        await provider.login("operator", "wrong")

    assert not provider.is_authenticated


@pytest.mark.asyncio
async def test_verify(auth, backend):
    assert await auth.verify() is True
    assert backend.requests[0].headers["Authorization"] == "Bearer token-123"


@pytest.mark.asyncio
async def test_verify_rejected_drops_token(auth, backend):
    backend.status["verify"] = 401

    assert await auth.verify() is False
    assert auth.token is None


@pytest.mark.asyncio
async def test_verify_without_token(http, backend):
    assert await AuthProvider(http).verify() is False
    assert backend.requests == []
