# src/twitter_auth_bff/main.py

import asyncio
import logging
import typing
from contextlib import asynccontextmanager, suppress

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles

from . import auth_utils
from .config import Settings, get_settings
from .exceptions import (
    AuthorizationDeniedError,
    SessionDestroyError,
    StateMismatchError,
    TokenExchangeError,
)
from .log import configure_logging
from .oauth_client import TwitterOAuthClient
from .session_middleware import SessionMiddlewareCustom
from .session_store import InMemorySessionStore, SessionStore, sweep_sessions

logger = logging.getLogger("twitter_auth_bff.main")

LOGIN_PATH = "/auth/twitter"
CALLBACK_PATH = "/auth/twitter/callback"


# --- Dependencies ---

def get_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_oauth_client(request: Request) -> TwitterOAuthClient:
    return request.app.state.oauth_client


def _log_startup(settings: Settings) -> None:
    logger.info("--- Twitter Auth BFF (FastAPI) Starting Up ---")
    logger.info("Twitter Client ID: %s", settings.TWITTER_CLIENT_ID)
    logger.info("Twitter Redirect URI: %s", settings.TWITTER_REDIRECT_URI)
    logger.info("Twitter Scopes: %s", settings.TWITTER_SCOPES)
    logger.info("CORS allowed origin: %s", settings.CORS_ALLOWED_ORIGIN)
    logger.info("Session Secret Key is set: %s", "Yes" if settings.SESSION_SECRET_KEY else "NO")
    logger.info("Session cookie '%s' (secure=%s)", settings.SESSION_COOKIE_NAME, settings.SESSION_COOKIE_SECURE)


def create_app(
        settings: typing.Optional[Settings] = None,
        session_store: typing.Optional[SessionStore] = None,
        oauth_client: typing.Optional[TwitterOAuthClient] = None,
) -> FastAPI:
    """
    Builds the BFF application.
    Settings are resolved here, before any traffic is accepted, so missing
    credentials raise ConfigurationError at startup.
    """
    if settings is None:
        settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    if session_store is None:
        session_store = InMemorySessionStore(ttl=settings.SESSION_COOKIE_MAX_AGE)
    if oauth_client is None:
        oauth_client = TwitterOAuthClient.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _log_startup(settings)
        sweeper = asyncio.create_task(
            sweep_sessions(app.state.session_store, settings.SESSION_CLEANUP_INTERVAL)
        )
        yield
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
        await app.state.oauth_client.aclose()
        logger.info("--- Twitter Auth BFF shut down ---")

    app = FastAPI(
        title="Twitter Auth BFF API",
        description="Backend-For-Frontend performing Twitter OAuth2 PKCE login with server-side sessions.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_store = session_store
    app.state.oauth_client = oauth_client

    # --- Session Management Setup ---
    app.add_middleware(
        SessionMiddlewareCustom,
        store=session_store,
        secret_key=settings.SESSION_SECRET_KEY,
        cookie_name=settings.SESSION_COOKIE_NAME,
        max_age=settings.SESSION_COOKIE_MAX_AGE,
        secure=settings.SESSION_COOKIE_SECURE,
    )
    # Added last so it wraps the session middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.CORS_ALLOWED_ORIGIN],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Authentication Routes ---
    @app.get(LOGIN_PATH)
    async def twitter_login(
            request: Request,
            store: SessionStore = Depends(get_store),
            client: TwitterOAuthClient = Depends(get_oauth_client),
    ):
        auth_url = await auth_utils.begin_login(request, store, client)
        return RedirectResponse(url=auth_url, status_code=status.HTTP_302_FOUND)

    @app.get(CALLBACK_PATH)
    async def twitter_callback(
            request: Request,
            code: typing.Optional[str] = None,
            state: typing.Optional[str] = None,
            error: typing.Optional[str] = None,
            error_description: typing.Optional[str] = None,
            store: SessionStore = Depends(get_store),
            client: TwitterOAuthClient = Depends(get_oauth_client),
    ):
        try:
            await auth_utils.complete_login(
                request, store, client,
                code=code, state=state, error=error, error_description=error_description,
            )
        except StateMismatchError as e:
            return PlainTextResponse(str(e), status_code=status.HTTP_400_BAD_REQUEST)
        except AuthorizationDeniedError as e:
            return PlainTextResponse(str(e), status_code=status.HTTP_400_BAD_REQUEST)
        except TokenExchangeError:
            # Already logged with traceback by complete_login
            return PlainTextResponse("Error during login", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return {"message": "Login Success"}

    @app.get("/logout")
    async def logout(request: Request, store: SessionStore = Depends(get_store)):
        try:
            await auth_utils.end_session(request, store)
        except SessionDestroyError as e:
            logger.error("Error destroying session: %s", e)
            return PlainTextResponse("Logout failed", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

        response = RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)
        response.delete_cookie(
            key=settings.SESSION_COOKIE_NAME,
            path="/",
            secure=settings.SESSION_COOKIE_SECURE,
            httponly=True,
            samesite="lax",
        )
        return response

    @app.get("/healthz", include_in_schema=False)
    async def healthz():
        return {"status": "ok"}

    # --- Static Files (mounted last so the routes above win) ---
    if settings.PUBLIC_DIR.is_dir():
        app.mount("/", StaticFiles(directory=settings.PUBLIC_DIR, html=True), name="public")
    else:
        logger.debug("Public directory %s not found, static files disabled", settings.PUBLIC_DIR)

    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "twitter_auth_bff.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
    )
