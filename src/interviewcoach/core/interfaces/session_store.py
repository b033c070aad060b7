"""
Session Store Protocol

Keyed storage of TopicPracticeSession snapshots. Implementations serialize
mutations per session through ``lock`` while unrelated sessions proceed
independently.
"""

from typing import Protocol

from interviewcoach.core.domain.models import TopicPracticeSession


class SessionLockProtocol(Protocol):
    async def __aenter__(self) -> object: ...

    async def __aexit__(self, *exc_info: object) -> bool | None: ...


class SessionStoreProtocol(Protocol):
    """Protocol for session persistence."""

    async def get(self, session_id: str) -> TopicPracticeSession | None:
        """Return a snapshot of the session, or None if missing or expired."""
        ...

    async def put(self, session: TopicPracticeSession) -> None:
        """Store the session, replacing any previous snapshot."""
        ...

    async def delete(self, session_id: str) -> bool:
        """Remove the session. Returns True if it existed."""
        ...

    def lock(self, session_id: str) -> SessionLockProtocol:
        """Async context manager holding the per-session mutation lock."""
        ...
