"""
File-backed Session Store.

One JSON document per session, written with aiofiles. Expiry is based on
the session's ``updated_at`` timestamp so it survives process restarts.
"""

import asyncio
import json
from datetime import timedelta
from pathlib import Path

import aiofiles
import structlog
from pydantic import TypeAdapter

from interviewcoach.core.domain.models import TopicPracticeSession, utcnow

_session_adapter = TypeAdapter(TopicPracticeSession)


def session_to_json(session: TopicPracticeSession) -> str:
    return json.dumps(_session_adapter.dump_python(session, mode="json"), ensure_ascii=False)


def session_from_json(payload: str) -> TopicPracticeSession:
    return _session_adapter.validate_python(json.loads(payload))


class FileSessionStore:
    """
    Session store persisting sessions as JSON files.

    Args:
        store_dir: Directory holding ``<session_id>.json`` files
        ttl_seconds: Lifetime of a session after its last write
    """

    def __init__(self, store_dir: str = "./data/sessions", ttl_seconds: float = 7200):
        self.store_dir = Path(store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)
        self.ttl_seconds = ttl_seconds
        self._locks: dict[str, asyncio.Lock] = {}
        self.logger = structlog.get_logger().bind(component="session_store", backend="file")

    def _path(self, session_id: str) -> Path:
        if not session_id or any(c in session_id for c in "/\\."):
            raise ValueError(f"Invalid session id: {session_id!r}")
        return self.store_dir / f"{session_id}.json"

    def lock(self, session_id: str) -> asyncio.Lock:
        """Get or create the mutation lock for a session."""
        if session_id not in self._locks:
            self._locks[session_id] = asyncio.Lock()
        return self._locks[session_id]

    async def get(self, session_id: str) -> TopicPracticeSession | None:
        path = self._path(session_id)
        if not path.exists():
            return None

        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            payload = await f.read()
        session = session_from_json(payload)

        if utcnow() - session.updated_at >= timedelta(seconds=self.ttl_seconds):
            path.unlink(missing_ok=True)
            self.logger.info("session_expired", session_id=session_id)
            return None
        return session

    async def put(self, session: TopicPracticeSession) -> None:
        session.updated_at = utcnow()
        path = self._path(session.id)
        tmp_path = path.with_suffix(".tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(session_to_json(session))
        tmp_path.replace(path)
        self.logger.debug("session_saved", session_id=session.id)

    async def delete(self, session_id: str) -> bool:
        path = self._path(session_id)
        existed = path.exists()
        path.unlink(missing_ok=True)
        self._locks.pop(session_id, None)
        if existed:
            self.logger.info("session_deleted", session_id=session_id)
        return existed

    async def purge_expired(self) -> int:
        cutoff = utcnow() - timedelta(seconds=self.ttl_seconds)
        removed = 0
        for path in self.store_dir.glob("*.json"):
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                session = session_from_json(await f.read())
            if session.updated_at <= cutoff:
                path.unlink(missing_ok=True)
                removed += 1
        if removed:
            self.logger.info("sessions_purged", count=removed)
        return removed
