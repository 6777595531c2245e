# src/twitter_auth_bff/session_middleware.py

import hashlib
import hmac
import logging
import secrets
import typing

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response as StarletteResponse

from .session_data import SessionData
from .session_store import SessionStore

logger = logging.getLogger("twitter_auth_bff.session")


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


def sign_session_id(session_id: str, secret: str) -> str:
    """Cookie value: ``<session_id>.<hex HMAC-SHA256 of session_id>``."""
    signature = hmac.new(secret.encode(), session_id.encode(), hashlib.sha256).hexdigest()
    return f"{session_id}.{signature}"


def unsign_session_id(cookie_value: typing.Optional[str], secret: str) -> typing.Optional[str]:
    """Returns the session id if the cookie signature checks out, else None."""
    if not cookie_value or "." not in cookie_value:
        return None
    session_id, signature = cookie_value.rsplit(".", 1)
    expected = hmac.new(secret.encode(), session_id.encode(), hashlib.sha256).hexdigest()
    if not session_id or not hmac.compare_digest(signature.encode(), expected.encode()):
        return None
    return session_id


class SessionMiddlewareCustom(BaseHTTPMiddleware):
    """
    Attaches a server-side session to every request.

    The browser only ever holds the signed session id. A missing, tampered
    or stale cookie gets a brand new (empty) session. Handlers that destroy
    the session set ``request.state.session_destroyed`` so the cookie is not
    re-issued on the way out.
    """

    def __init__(
            self,
            app,
            store: SessionStore,
            secret_key: str,
            cookie_name: str = "session_id",
            max_age: int = 60 * 60 * 4,
            secure: bool = False,
            exempt_paths: typing.Iterable[str] = ("/healthz",),
    ):
        super().__init__(app)
        self.store = store
        self.secret_key = secret_key
        self.cookie_name = cookie_name
        self.max_age = max_age
        self.secure = secure
        self.exempt_paths = frozenset(exempt_paths)

    async def dispatch(self, request, call_next):
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        session_id = unsign_session_id(request.cookies.get(self.cookie_name), self.secret_key)
        record = await self.store.get(session_id) if session_id else None
        if record is None:
            session_id = new_session_id()
            record = SessionData().model_dump()
            await self.store.set(session_id, record)
            logger.debug("Created new session %s for %s", session_id[:8], request.url.path)

        request.state.session_id = session_id
        request.state.session = SessionData(**record)
        request.state.session_destroyed = False

        response: StarletteResponse = await call_next(request)
        if not getattr(request.state, "session_destroyed", False):
            response.set_cookie(
                self.cookie_name,
                sign_session_id(session_id, self.secret_key),
                max_age=self.max_age,
                path="/",
                httponly=True,
                secure=self.secure,
                samesite="lax",
            )
        return response