from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    from threadnotes.core.models.thread import Thread


class ThreadRepository(ABC):
    """Abstract repository interface for threads.

    Implementations perform I/O and publish a change event for every write so
    that live queries observe it.
    """

    COLLECTION = "threads"

    @abstractmethod
    async def create(self, thread: Thread) -> Thread:  # pragma: no cover - interface only
        """Persist a new thread and return the stored entity."""

    @abstractmethod
    async def get(self, thread_id: str) -> Thread | None:  # pragma: no cover
        """Fetch a thread by id or return None if not found."""

    @abstractmethod
    async def list(self, *, limit: int | None = None) -> Sequence[Thread]:  # pragma: no cover
        """Return threads ordered by ``updated_at`` descending."""

    @abstractmethod
    async def update_fields(self, thread_id: str, changes: dict[str, Any]) -> Thread | None:  # pragma: no cover
        """Partially update a thread, refreshing ``updated_at``; None if missing."""

    @abstractmethod
    async def increment_note_count(self, thread_id: str, by: int = 1) -> Thread | None:  # pragma: no cover
        """Add ``by`` to ``note_count`` without losing concurrent increments.

        Also refreshes ``updated_at``. Returns None if the thread is missing.
        """
