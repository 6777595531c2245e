# src/twitter_auth_bff/exceptions.py

from typing import Optional


class TwitterAuthError(Exception):
    """Base class for errors raised while logging a user in or out."""


class StateMismatchError(TwitterAuthError):
    def __init__(self, message: str = "State mismatch!"):
        super().__init__(message)


class AuthorizationDeniedError(TwitterAuthError):
    """The provider redirected back with ``error`` instead of a code."""

    def __init__(self, error: str, error_description: Optional[str] = None):
        self.error = error
        self.error_description = error_description
        super().__init__(f"Authorization failed at Twitter: {error} - {error_description or 'no description'}")


class TokenExchangeError(TwitterAuthError):
    """The provider rejected the code/verifier, or the token request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class SessionDestroyError(TwitterAuthError):
    def __init__(self, session_id: str, reason: Optional[str] = None):
        self.session_id = session_id
        super().__init__(reason or "Session record could not be deleted.")


class ConfigurationError(TwitterAuthError):
    """Required settings are missing or invalid. Raised at startup only."""
