"""
In-memory Session Store with TTL expiry and per-session locks.

Readers get deep-copied snapshots, so a caller can never observe (or
accidentally mutate) a half-updated stored session.
"""

import asyncio
import copy
import time
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from interviewcoach.core.domain.models import TopicPracticeSession, utcnow


@dataclass
class SessionEntry:
    """
    One stored session.

    Attributes:
        session: Stored snapshot
        expires_at: Clock value after which the entry is expired
    """

    session: TopicPracticeSession
    expires_at: float


class InMemorySessionStore:
    """
    Session store kept in process memory.

    Args:
        ttl_seconds: Lifetime of an entry after its last write
        clock: Seconds clock, injectable for tests
    """

    def __init__(self, ttl_seconds: float = 7200, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._items: dict[str, SessionEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self.logger = structlog.get_logger().bind(component="session_store", backend="memory")

    def lock(self, session_id: str) -> asyncio.Lock:
        """Get or create the mutation lock for a session."""
        if session_id not in self._locks:
            self._locks[session_id] = asyncio.Lock()
        return self._locks[session_id]

    async def get(self, session_id: str) -> TopicPracticeSession | None:
        entry = self._items.get(session_id)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            self._evict(session_id)
            self.logger.info("session_expired", session_id=session_id)
            return None
        return copy.deepcopy(entry.session)

    async def put(self, session: TopicPracticeSession) -> None:
        session.updated_at = utcnow()
        self._items[session.id] = SessionEntry(
            session=copy.deepcopy(session),
            expires_at=self._clock() + self.ttl_seconds,
        )
        self.logger.debug("session_saved", session_id=session.id)

    async def delete(self, session_id: str) -> bool:
        existed = session_id in self._items
        self._evict(session_id)
        if existed:
            self.logger.info("session_deleted", session_id=session_id)
        return existed

    async def purge_expired(self) -> int:
        now = self._clock()
        expired = [sid for sid, entry in self._items.items() if now >= entry.expires_at]
        for sid in expired:
            self._evict(sid)
        if expired:
            self.logger.info("sessions_purged", count=len(expired))
        return len(expired)

    def _evict(self, session_id: str) -> None:
        self._items.pop(session_id, None)
        lock = self._locks.get(session_id)
        if lock is not None and not lock.locked():
            del self._locks[session_id]

    def __len__(self) -> int:
        return len(self._items)
