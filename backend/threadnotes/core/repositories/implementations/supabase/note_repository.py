from __future__ import annotations

from typing import TYPE_CHECKING, Any

from threadnotes.core.models.note import Note
from threadnotes.core.repositories.note_repository import NoteRepository
from threadnotes.utils.logging import get_logger

logger = get_logger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from supabase import Client

    from threadnotes.core.realtime import ChangeFeed


class SupabaseNoteRepository(NoteRepository):
    """Supabase implementation of the NoteRepository.

    Uses Supabase's PostgREST client. Assumes a `notes` table with columns
    matching the `Note` model fields (snake_case) and an index on
    `(thread_id, created_at)`.
    """

    TABLE_NAME = "notes"

    def __init__(
        self,
        client: Client,
        feed: ChangeFeed | None = None,
        table_name: str | None = None,
    ) -> None:
        self._client: Client = client
        self._feed = feed
        self._table = table_name or self.TABLE_NAME

    async def create(self, note: Note) -> Note:
        row = self._note_to_row(note)
        resp = await self._run(
            lambda: self._client.table(self._table)
            .insert(row)
            .execute()
        )
        data = self._first(resp.data)
        created = self._row_to_note(data) if data else note
        if self._feed is not None:
            self._feed.publish(self.COLLECTION, created.id, thread_id=created.thread_id)
        return created

    async def get(self, note_id: str) -> Note | None:
        resp = await self._run(
            lambda: self._client.table(self._table)
            .select("*")
            .eq("id", note_id)
            .limit(1)
            .execute()
        )
        items = resp.data or []
        if not items:
            return None
        return self._row_to_note(items[0])

    async def list_by_thread(
        self,
        thread_id: str,
        *,
        include_prompts: bool = True,
    ) -> Sequence[Note]:
        def _query():
            q = self._client.table(self._table).select("*").eq("thread_id", thread_id)
            if not include_prompts:
                q = q.eq("is_prompt", False)
            return q.order("created_at", desc=False).execute()

        resp = await self._run(_query)
        items = resp.data or []
        return [self._row_to_note(i) for i in items]

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
    def _row_to_note(row: dict[str, Any]) -> Note:
        normalized = {k: v for k, v in row.items() if k in Note.model_fields}
        if normalized.get("is_prompt") is None:
            normalized["is_prompt"] = False
        return Note.model_validate(normalized)

    @staticmethod
    def _note_to_row(note: Note) -> dict[str, Any]:
        # mode="json" turns enums and datetimes into PostgREST-friendly values
        return note.model_dump(mode="json")
