from __future__ import annotations

from typing import TYPE_CHECKING, Any

from threadnotes.core.models.base import utcnow
from threadnotes.core.models.thread import Thread
from threadnotes.core.repositories.thread_repository import ThreadRepository
from threadnotes.utils.logging import get_logger

logger = get_logger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from supabase import Client

    from threadnotes.core.realtime import ChangeFeed


class SupabaseThreadRepository(ThreadRepository):
    """Supabase implementation of the ThreadRepository.

    Assumes a `threads` table with columns matching the `Thread` model fields,
    `tags` and `leading_questions` as `text[]`.
    """

    TABLE_NAME = "threads"
    MAX_INCREMENT_ATTEMPTS = 10

    def __init__(
        self,
        client: Client,
        feed: ChangeFeed | None = None,
        table_name: str | None = None,
    ) -> None:
        self._client: Client = client
        self._feed = feed
        self._table = table_name or self.TABLE_NAME

    async def create(self, thread: Thread) -> Thread:
        row = thread.model_dump(mode="json")
        resp = await self._run(
            lambda: self._client.table(self._table)
            .insert(row)
            .execute()
        )
        data = self._first(resp.data)
        created = self._row_to_thread(data) if data else thread
        self._publish(created.id)
        return created

    async def get(self, thread_id: str) -> Thread | None:
        resp = await self._run(
            lambda: self._client.table(self._table)
            .select("*")
            .eq("id", thread_id)
            .limit(1)
            .execute()
        )
        items = resp.data or []
        if not items:
            return None
        return self._row_to_thread(items[0])

    async def list(self, *, limit: int | None = None) -> Sequence[Thread]:
        def _query():
            q = self._client.table(self._table).select("*").order("updated_at", desc=True)
            if limit is not None:
                q = q.limit(limit)
            return q.execute()

        resp = await self._run(_query)
        items = resp.data or []
        return [self._row_to_thread(i) for i in items]

    async def update_fields(self, thread_id: str, changes: dict[str, Any]) -> Thread | None:
        # Never let callers rewrite identity or creation time
        sanitized: dict[str, Any] = {
            k: v for k, v in (changes or {}).items() if k not in {"id", "created_at"}
        }
        sanitized.setdefault("updated_at", utcnow())
        payload = self._to_json(sanitized)

        resp = await self._run(
            lambda: self._client.table(self._table)
            .update(payload)
            .eq("id", thread_id)
            .execute()
        )
        items = resp.data or []
        if not items:
            return None
        self._publish(thread_id)
        return self._row_to_thread(items[0])

    async def increment_note_count(self, thread_id: str, by: int = 1) -> Thread | None:
        """Compare-and-set loop: the update only matches while the count is unchanged."""
        for attempt in range(1, self.MAX_INCREMENT_ATTEMPTS + 1):
            current = await self.get(thread_id)
            if current is None:
                return None

            expected = current.note_count
            payload = {
                "note_count": expected + by,
                "updated_at": utcnow().isoformat(),
            }

            def _update(payload: dict[str, Any] = payload, expected: int = expected) -> Any:
                return (
                    self._client.table(self._table)
                    .update(payload)
                    .eq("id", thread_id)
                    .eq("note_count", expected)
                    .execute()
                )

            resp = await self._run(_update)
            items = resp.data or []
            if items:
                self._publish(thread_id)
                return self._row_to_thread(items[0])
            logger.debug(
                "note_count for thread %s changed concurrently (attempt %d), retrying",
                thread_id,
                attempt,
            )

        raise RuntimeError(f"Could not increment note_count for thread {thread_id}")

    def _publish(self, thread_id: str) -> None:
        if self._feed is not None:
            self._feed.publish(self.COLLECTION, thread_id, thread_id=thread_id)

    @staticmethod
    async def _run(func: Callable[[], Any]) -> Any:
        import asyncio
        return await asyncio.to_thread(func)

    @staticmethod
    def _first(data: Any) -> dict[str, Any]:
        if isinstance(data, list) and data:
            return data[0]
        if isinstance(data, dict):
            return data
        return {}

    @staticmethod
    def _to_json(changes: dict[str, Any]) -> dict[str, Any]:
        return {
            k: (v.isoformat() if hasattr(v, "isoformat") else v)
            for k, v in changes.items()
        }

    @staticmethod
    def _row_to_thread(row: dict[str, Any]) -> Thread:
        normalized = {k: v for k, v in row.items() if k in Thread.model_fields}
        if normalized.get("note_count") is None:
            normalized["note_count"] = 0
        return Thread.model_validate(normalized)
