"""Twitter OAuth2 PKCE login backend-for-frontend."""

__version__ = "0.1.0"
