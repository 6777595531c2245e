"""Server-side session storage.

Handlers and the session middleware only talk to the ``SessionStore``
interface; ``InMemorySessionStore`` is the process-local implementation
used by default. Another backend (Redis, a database) only needs to provide
the same four coroutines/methods.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import time

from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger("twitter_auth_bff.session")

DEFAULT_SESSION_TTL = 60 * 60 * 4  # 4 hours, same as the cookie max-age


class SessionStore(ABC):
    """Key-value store of session records keyed by session id."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    @abstractmethod
    async def get(self, session_id: str) -> dict[str, Any] | None:
        """Return a copy of the record, or None if absent or expired."""

    @abstractmethod
    async def set(self, session_id: str, record: dict[str, Any]) -> None:
        """Create or replace the record for ``session_id``."""

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        """Remove the record.

        Raises
        ------
        SessionDestroyError
            If the backend could not remove the record.
        """

    def lock(self, session_id: str) -> asyncio.Lock:
        """Per-session lock used to serialize callbacks on one session."""
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock

    def _discard_lock(self, session_id: str) -> None:
        lock = self._locks.get(session_id)
        if lock is not None and not lock.locked():
            del self._locks[session_id]

    def _discard_idle_locks(self, live_ids) -> None:
        for sid in [sid for sid, lock in self._locks.items() if sid not in live_ids and not lock.locked()]:
            del self._locks[sid]

    async def cleanup_expired(self) -> int:
        """Drop expired records. Returns how many were removed.

        Backends that expire records themselves keep this default.
        """
        return 0


class InMemorySessionStore(SessionStore):
    """Dict-backed store with a sliding expiry.

    Parameters
    ----------
    ttl : float or None
        Seconds a record stays valid after its last write. ``None`` keeps
        records until they are deleted.
    """

    def __init__(self, ttl: float | None = DEFAULT_SESSION_TTL) -> None:
        super().__init__()
        self.ttl = ttl
        self._records: dict[str, tuple[float | None, dict[str, Any]]] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._records

    async def get(self, session_id: str) -> dict[str, Any] | None:
        entry = self._records.get(session_id)
        if entry is None:
            return None
        expires_at, record = entry
        if expires_at is not None and expires_at <= time.time():
            logger.debug("Session %s expired", session_id[:8])
            self._records.pop(session_id, None)
            self._discard_lock(session_id)
            return None
        return copy.deepcopy(record)

    async def set(self, session_id: str, record: dict[str, Any]) -> None:
        expires_at = time.time() + self.ttl if self.ttl is not None else None
        self._records[session_id] = (expires_at, copy.deepcopy(record))

    async def delete(self, session_id: str) -> None:
        self._records.pop(session_id, None)
        self._discard_lock(session_id)

    async def cleanup_expired(self) -> int:
        """Drop expired records, and locks of sessions that no longer exist."""
        now = time.time()
        expired = [
            sid
            for sid, (expires_at, _) in self._records.items()
            if expires_at is not None and expires_at <= now
        ]
        for sid in expired:
            del self._records[sid]
        self._discard_idle_locks(self._records)
        if expired:
            logger.debug("Swept %d expired sessions", len(expired))
        return len(expired)


async def sweep_sessions(store: SessionStore, interval: float) -> None:
    """Call ``store.cleanup_expired()`` every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            await store.cleanup_expired()
        except Exception:
            logger.exception("Session cleanup failed")


__all__ = [
    "DEFAULT_SESSION_TTL",
    "InMemorySessionStore",
    "SessionStore",
    "sweep_sessions",
]
