from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from threadnotes.core.models.note import Note


class NoteRepository(ABC):
    """Abstract repository interface for notes.

    Notes are append-only: created once, never updated or deleted.
    """

    COLLECTION = "notes"

    @abstractmethod
    async def create(self, note: Note) -> Note:  # pragma: no cover - interface only
        """Persist a new note and return the stored entity."""

    @abstractmethod
    async def get(self, note_id: str) -> Note | None:  # pragma: no cover
        """Fetch a note by id or return None if not found."""

    @abstractmethod
    async def list_by_thread(
        self,
        thread_id: str,
        *,
        include_prompts: bool = True,
    ) -> Sequence[Note]:  # pragma: no cover
        """Return a thread's notes ordered by ``created_at`` ascending.

        Args:
            thread_id: Owning thread
            include_prompts: When False, skip system-generated prompt notes
        """
