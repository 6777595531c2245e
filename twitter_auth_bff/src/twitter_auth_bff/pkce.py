"""PKCE (Proof Key for Code Exchange) helpers.

RFC 7636 with the S256 method: the challenge is the unpadded base64url
encoding of the SHA-256 digest of the verifier.
"""

from __future__ import annotations

import hashlib
import secrets

from base64 import urlsafe_b64encode
from dataclasses import dataclass

VERIFIER_BYTES = 32
STATE_BYTES = 8


def generate_random_hex(n: int) -> str:
    """Return ``n`` bytes from the OS CSPRNG as a lowercase hex string."""
    return secrets.token_hex(n)


def derive_code_challenge(code_verifier: str) -> str:
    """Derive the S256 code challenge for ``code_verifier``.

    Parameters
    ----------
    code_verifier : str
        The verifier stored in the session.

    Returns
    -------
    str
        ``BASE64URL(SHA256(verifier))`` without ``=`` padding.
    """
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


@dataclass(frozen=True)
class PKCEChallenge:
    """PKCE code verifier and challenge pair.

    Attributes
    ----------
    verifier : str
        The code verifier (hex-encoded random bytes).
    challenge : str
        The code challenge derived from the verifier.
    method : str
        The challenge method, always "S256".
    """

    verifier: str
    challenge: str
    method: str = "S256"

    @classmethod
    def generate(cls, length: int = VERIFIER_BYTES) -> PKCEChallenge:
        """Generate a new verifier and its challenge.

        Parameters
        ----------
        length : int
            Number of random bytes in the verifier (default 32, which
            hex-encodes to 64 characters).
        """
        verifier = generate_random_hex(length)
        return cls(verifier=verifier, challenge=derive_code_challenge(verifier))


def generate_state() -> str:
    """Anti-CSRF nonce round-tripped through the authorization redirect."""
    return generate_random_hex(STATE_BYTES)
