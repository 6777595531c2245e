# src/twitter_auth_bff/session_data.py

from pydantic import BaseModel
from typing import Optional


class SessionData(BaseModel):
    """
    Represents the data stored server-side for a user session.
    Only a signed session ID is stored in the browser cookie.
    """
    # Pending authorization attempt; written together, consumed together
    state: Optional[str] = None
    code_verifier: Optional[str] = None

    # Set only after a successful callback
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_acquired_at: Optional[int] = None

    @property
    def has_pending_login(self) -> bool:
        return self.state is not None and self.code_verifier is not None

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def clear_pending_login(self) -> None:
        self.state = None
        self.code_verifier = None
