from __future__ import annotations

from typing import TYPE_CHECKING, Any

from threadnotes.core.models.base import utcnow
from threadnotes.core.models.thread import Thread
from threadnotes.core.repositories.thread_repository import ThreadRepository

if TYPE_CHECKING:
    from collections.abc import Sequence

    from threadnotes.core.realtime import ChangeFeed


class InMemoryThreadRepository(ThreadRepository):
    """Process-local thread store for development and tests.

    Every method completes without yielding to the event loop, so each write
    (including the note-count increment) is atomic with respect to other tasks.
    """

    def __init__(self, feed: ChangeFeed | None = None) -> None:
        self._feed = feed
        self._threads: dict[str, Thread] = {}

    async def create(self, thread: Thread) -> Thread:
        if thread.id in self._threads:
            raise ValueError(f"Thread {thread.id} already exists")
        self._threads[thread.id] = thread.model_copy(deep=True)
        self._publish(thread.id)
        return thread.model_copy(deep=True)

    async def get(self, thread_id: str) -> Thread | None:
        thread = self._threads.get(thread_id)
        return thread.model_copy(deep=True) if thread else None

    async def list(self, *, limit: int | None = None) -> Sequence[Thread]:
        threads = sorted(self._threads.values(), key=lambda t: t.updated_at, reverse=True)
        if limit is not None:
            threads = threads[:limit]
        return [t.model_copy(deep=True) for t in threads]

    async def update_fields(self, thread_id: str, changes: dict[str, Any]) -> Thread | None:
        existing = self._threads.get(thread_id)
        if existing is None:
            return None
        sanitized = {k: v for k, v in (changes or {}).items() if k not in {"id", "created_at"}}
        sanitized.setdefault("updated_at", utcnow())
        updated = Thread.model_validate({**existing.model_dump(), **sanitized})
        self._threads[thread_id] = updated
        self._publish(thread_id)
        return updated.model_copy(deep=True)

    async def increment_note_count(self, thread_id: str, by: int = 1) -> Thread | None:
        existing = self._threads.get(thread_id)
        if existing is None:
            return None
        return await self.update_fields(thread_id, {"note_count": existing.note_count + by})

    def _publish(self, thread_id: str) -> None:
        if self._feed is not None:
            self._feed.publish(self.COLLECTION, thread_id, thread_id=thread_id)
