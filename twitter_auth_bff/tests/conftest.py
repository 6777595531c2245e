"""Shared fixtures for the Twitter auth BFF tests."""

# pylint: disable=redefined-outer-name

from __future__ import annotations

import asyncio

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from fastapi.testclient import TestClient

from twitter_auth_bff.config import Settings
from twitter_auth_bff.main import create_app
from twitter_auth_bff.oauth_client import TokenResponse
from twitter_auth_bff.session_middleware import sign_session_id, unsign_session_id
from twitter_auth_bff.session_store import InMemorySessionStore


SESSION_SECRET = "test-session-secret"
REDIRECT_URI = "http://testserver/auth/twitter/callback"
COOKIE_NAME = "session_id"


@pytest.fixture()
def settings(tmp_path) -> Settings:
    """Settings that do not depend on the process environment."""
    return Settings(
        TWITTER_CLIENT_ID="test-client-id",
        TWITTER_CLIENT_SECRET="test-client-secret",
        TWITTER_REDIRECT_URI=REDIRECT_URI,
        SESSION_SECRET_KEY=SESSION_SECRET,
        SESSION_COOKIE_NAME=COOKIE_NAME,
        PUBLIC_DIR=tmp_path / "public",
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture()
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture()
def mock_oauth_client() -> MagicMock:
    """Provider client double; exchange succeeds with AT1/RT1/7200."""
    client = MagicMock()
    client.build_authorization_url.side_effect = (
        lambda state, code_challenge: f"https://twitter.test/authorize?state={state}&challenge={code_challenge}"
    )
    client.exchange_code = AsyncMock(
        return_value=TokenResponse(access_token="AT1", refresh_token="RT1", expires_in=7200)
    )
    client.aclose = AsyncMock()
    return client


@pytest.fixture()
def client(settings, store, mock_oauth_client) -> TestClient:
    app = create_app(settings=settings, session_store=store, oauth_client=mock_oauth_client)
    return TestClient(app, follow_redirects=False)


def seed_session(store: InMemorySessionStore, session_id: str, **fields: Any) -> None:
    """Write a session record directly, outside any request."""
    record = {
        "state": None,
        "code_verifier": None,
        "access_token": None,
        "refresh_token": None,
        "expires_in": None,
        "token_acquired_at": None,
    }
    record.update(fields)
    asyncio.run(store.set(session_id, record))


def read_session(store: InMemorySessionStore, session_id: str) -> dict[str, Any] | None:
    return asyncio.run(store.get(session_id))


def session_cookie(session_id: str) -> dict[str, str]:
    """Request headers presenting the signed cookie for ``session_id``."""
    return {"Cookie": f"{COOKIE_NAME}={sign_session_id(session_id, SESSION_SECRET)}"}


def issued_session_id(response) -> str | None:
    """Session id from the cookie the response sets, if any."""
    return unsign_session_id(response.cookies.get(COOKIE_NAME), SESSION_SECRET)
