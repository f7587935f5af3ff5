from __future__ import annotations

from typing import TYPE_CHECKING

from threadnotes.core.repositories.note_repository import NoteRepository

if TYPE_CHECKING:
    from collections.abc import Sequence

    from threadnotes.core.models.note import Note
    from threadnotes.core.realtime import ChangeFeed


class InMemoryNoteRepository(NoteRepository):
    """Process-local note store for development and tests."""

    def __init__(self, feed: ChangeFeed | None = None) -> None:
        self._feed = feed
        # Insertion order breaks created_at ties when sorting
        self._notes: dict[str, Note] = {}

    async def create(self, note: Note) -> Note:
        if note.id in self._notes:
            raise ValueError(f"Note {note.id} already exists")
        self._notes[note.id] = note.model_copy(deep=True)
        if self._feed is not None:
            self._feed.publish(self.COLLECTION, note.id, thread_id=note.thread_id)
        return note.model_copy(deep=True)

    async def get(self, note_id: str) -> Note | None:
        note = self._notes.get(note_id)
        return note.model_copy(deep=True) if note else None

    async def list_by_thread(
        self,
        thread_id: str,
        *,
        include_prompts: bool = True,
    ) -> Sequence[Note]:
        notes = [
            n for n in self._notes.values()
            if n.thread_id == thread_id and (include_prompts or not n.is_prompt)
        ]
        notes.sort(key=lambda n: n.created_at)
        return [n.model_copy(deep=True) for n in notes]
