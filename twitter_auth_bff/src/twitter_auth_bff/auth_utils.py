# src/twitter_auth_bff/auth_utils.py

import hmac
import logging
import time
import typing

from fastapi import Request

from .exceptions import (
    AuthorizationDeniedError,
    SessionDestroyError,
    StateMismatchError,
    TokenExchangeError,
)
from .oauth_client import TokenResponse, TwitterOAuthClient
from .pkce import PKCEChallenge, generate_state
from .session_data import SessionData
from .session_store import SessionStore

logger = logging.getLogger("twitter_auth_bff.auth")


async def _load_session(store: SessionStore, session_id: str) -> SessionData:
    record = await store.get(session_id)
    return SessionData(**record) if record is not None else SessionData()


def _states_match(returned_state: typing.Optional[str], expected_state: typing.Optional[str]) -> bool:
    if not returned_state or not expected_state:
        return False
    return hmac.compare_digest(returned_state.encode(), expected_state.encode())


# --- OAuth2 PKCE Flow Functions ---

async def begin_login(request: Request, store: SessionStore, oauth_client: TwitterOAuthClient) -> str:
    """
    Starts a login attempt for the request's session and returns the
    Twitter authorization URL to redirect to.
    A new verifier/state pair replaces any attempt still pending on the session.
    """
    session_id = request.state.session_id
    pkce = PKCEChallenge.generate()
    state = generate_state()

    async with store.lock(session_id):
        session = await _load_session(store, session_id)
        session.code_verifier = pkce.verifier
        session.state = state
        await store.set(session_id, session.model_dump())
    request.state.session = session

    auth_url = oauth_client.build_authorization_url(state=state, code_challenge=pkce.challenge)
    logger.info("Login started for session %s, redirecting to Twitter", session_id[:8])
    return auth_url


async def complete_login(
        request: Request,
        store: SessionStore,
        oauth_client: TwitterOAuthClient,
        code: typing.Optional[str],
        state: typing.Optional[str],
        error: typing.Optional[str] = None,
        error_description: typing.Optional[str] = None,
) -> TokenResponse:
    """
    Validates the callback against the session and exchanges the code for tokens.

    Runs under the session's lock so that of two callbacks racing on the same
    session only the first can consume the pending state/verifier pair. The
    pair is cleared as soon as the state matches, whatever the outcome of the
    exchange.

    Raises StateMismatchError (nothing in the session is touched),
    AuthorizationDeniedError, or TokenExchangeError (no tokens stored).
    """
    session_id = request.state.session_id

    async with store.lock(session_id):
        session = await _load_session(store, session_id)

        if not _states_match(state, session.state):
            logger.warning("State mismatch on callback for session %s", session_id[:8])
            raise StateMismatchError()

        code_verifier = session.code_verifier
        session.clear_pending_login()
        await store.set(session_id, session.model_dump())
        request.state.session = session

        if error:
            logger.warning("Twitter returned an authorization error: %s", error)
            raise AuthorizationDeniedError(error, error_description)
        if not code:
            raise TokenExchangeError("Authorization code missing from callback.")
        if not code_verifier:
            raise TokenExchangeError("Code verifier missing from session.")

        try:
            tokens = await oauth_client.exchange_code(code=code, code_verifier=code_verifier)
        except TokenExchangeError:
            logger.exception("Error logging in with Twitter")
            raise
        except Exception as e:
            logger.exception("Unexpected error logging in with Twitter")
            raise TokenExchangeError(f"Unexpected error during token exchange: {e}") from e

        session.access_token = tokens.access_token
        session.refresh_token = tokens.refresh_token
        session.expires_in = tokens.expires_in
        session.token_acquired_at = int(time.time())
        await store.set(session_id, session.model_dump())
        request.state.session = session

    logger.info("Twitter login successful for session %s", session_id[:8])
    return tokens


async def end_session(request: Request, store: SessionStore) -> None:
    """
    Destroys the request's session record. On success the session is marked
    destroyed so the middleware does not re-issue its cookie.
    Holds the session's lock so an in-flight callback finishes its write
    before the record goes away, instead of recreating it afterwards.
    """
    session_id = request.state.session_id
    async with store.lock(session_id):
        try:
            await store.delete(session_id)
        except SessionDestroyError:
            raise
        except Exception as e:
            raise SessionDestroyError(session_id, str(e)) from e

    request.state.session = SessionData()
    request.state.session_destroyed = True
    logger.info("Session %s destroyed", session_id[:8])
