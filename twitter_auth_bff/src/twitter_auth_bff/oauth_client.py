"""Twitter (X) OAuth2 client for the authorization-code + PKCE flow.

Builds the authorization URL and exchanges the returned code for tokens at
the provider's token endpoint. Confidential clients authenticate the token
request with HTTP Basic credentials.
"""

from __future__ import annotations

import logging

from typing import Any, Optional
from urllib.parse import urlencode

import httpx

from pydantic import BaseModel

from .exceptions import TokenExchangeError

logger = logging.getLogger("twitter_auth_bff.oauth")

TWITTER_AUTHORIZE_URL = "https://twitter.com/i/oauth2/authorize"
TWITTER_TOKEN_URL = "https://api.twitter.com/2/oauth2/token"  # noqa: S105


class TokenResponse(BaseModel):
    """Tokens returned by a successful code exchange."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: str = ""
    token_type: str = "bearer"


class TwitterOAuthClient:
    """OAuth2 client bound to one registered Twitter app.

    Parameters
    ----------
    client_id : str
        The OAuth2 client ID.
    client_secret : str
        The OAuth2 client secret.
    redirect_uri : str
        The callback URL registered with the app. Sent in both the
        authorization request and the token exchange.
    scopes : list[str]
        Requested scopes.
    authorize_url : str
        The provider's authorization endpoint.
    token_url : str
        The provider's token endpoint.
    timeout : float
        Seconds before the token request is abandoned.
    http_client : httpx.AsyncClient, optional
        Client to use instead of creating one lazily.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scopes: list[str] | None = None,
        authorize_url: str = TWITTER_AUTHORIZE_URL,
        token_url: str = TWITTER_TOKEN_URL,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scopes = scopes or ["tweet.read", "users.read", "offline.access"]
        self.authorize_url = authorize_url
        self.token_url = token_url
        self.timeout = timeout
        self._http_client = http_client

    @classmethod
    def from_settings(cls, settings: Any) -> TwitterOAuthClient:
        """Build a client from the service ``Settings``."""
        return cls(
            client_id=settings.TWITTER_CLIENT_ID,
            client_secret=settings.TWITTER_CLIENT_SECRET,
            redirect_uri=str(settings.TWITTER_REDIRECT_URI),
            scopes=list(settings.TWITTER_SCOPES),
            authorize_url=str(settings.TWITTER_AUTHORIZE_URL),
            token_url=str(settings.TWITTER_TOKEN_URL),
            timeout=settings.TOKEN_EXCHANGE_TIMEOUT,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def aclose(self) -> None:
        """Close the shared HTTP client. Call from app shutdown."""
        if self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()
        self._http_client = None

    def build_authorization_url(self, state: str, code_challenge: str) -> str:
        """Build the full authorization URL for one login attempt.

        Parameters
        ----------
        state : str
            CSRF nonce stored in the session.
        code_challenge : str
            S256 challenge derived from the session's code verifier.

        Returns
        -------
        str
            The provider URL the browser is redirected to.
        """
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(self.scopes),
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        return f"{self.authorize_url}?{urlencode(params)}"

    async def exchange_code(self, code: str, code_verifier: str) -> TokenResponse:
        """Exchange an authorization code for tokens.

        Parameters
        ----------
        code : str
            The authorization code from the callback.
        code_verifier : str
            The verifier whose challenge was sent in the authorization request.

        Returns
        -------
        TokenResponse
            Access token, refresh token and lifetime.

        Raises
        ------
        TokenExchangeError
            On timeout, transport failure, a non-2xx reply, an ``error``
            payload, or a reply without an access token.
        """
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "code_verifier": code_verifier,
            "redirect_uri": self.redirect_uri,
            "client_id": self.client_id,
        }

        try:
            client = await self._get_client()
            resp = await client.post(
                self.token_url,
                data=data,
                auth=(self.client_id, self.client_secret),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            raw = resp.json()
        except httpx.TimeoutException as exc:
            msg = f"Twitter token exchange timed out after {self.timeout}s"
            raise TokenExchangeError(msg) from exc
        except httpx.HTTPStatusError as exc:
            msg = f"Twitter token exchange failed: {exc.response.status_code} {_error_text(exc.response)}"
            raise TokenExchangeError(msg, status_code=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            msg = f"Twitter token exchange request failed: {exc}"
            raise TokenExchangeError(msg) from exc
        except ValueError as exc:
            msg = "Twitter token endpoint returned a non-JSON body"
            raise TokenExchangeError(msg) from exc

        if not isinstance(raw, dict):
            raise TokenExchangeError("Twitter token endpoint returned an unexpected payload")
        if "error" in raw:
            msg = f"Twitter token error: {raw.get('error_description', raw['error'])}"
            raise TokenExchangeError(msg)
        if not raw.get("access_token"):
            raise TokenExchangeError("Twitter token response has no access_token")

        return TokenResponse(
            access_token=raw["access_token"],
            refresh_token=raw.get("refresh_token"),
            expires_in=raw.get("expires_in"),
            scope=raw.get("scope", ""),
            token_type=raw.get("token_type", "bearer"),
        )


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("error_description") or body.get("error") or body)
    return str(body)
