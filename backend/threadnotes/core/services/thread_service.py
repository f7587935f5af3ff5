from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from threadnotes.background.enrichment import enrich_and_store_thread_metadata
from threadnotes.core.errors import NotFoundError
from threadnotes.core.models.note import Note
from threadnotes.core.models.thread import Thread
from threadnotes.core.realtime import LiveQuery
from threadnotes.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from threadnotes.core.realtime import ChangeEvent, ChangeFeed
    from threadnotes.core.repositories.note_repository import NoteRepository
    from threadnotes.core.repositories.thread_repository import ThreadRepository
    from threadnotes.core.schemas.note import NoteDraft
    from threadnotes.core.services.enrichment_service import EnrichmentService

logger = get_logger(__name__)


class ThreadService:
    """Creates threads and notes, triggers enrichment and serves live views.

    Holds no durable state: the repositories own all data and the change feed
    drives the live queries. Enrichment runs as a fire-and-forget task so that
    a write returns as soon as the store accepted it.
    """

    def __init__(
        self,
        thread_repo: ThreadRepository,
        note_repo: NoteRepository,
        feed: ChangeFeed,
        enrichment: EnrichmentService | None = None,
    ) -> None:
        self._threads = thread_repo
        self._notes = note_repo
        self._feed = feed
        self._enrichment = enrichment
        self._background: set[asyncio.Task[None]] = set()

    # Commands

    async def create_empty_thread(self) -> str:
        """Create a placeholder thread with no notes. No enrichment is triggered."""
        thread = await self._threads.create(Thread(note_count=0))
        logger.info("Created empty thread %s", thread.id)
        return thread.id

    async def create_thread(self, initial_note: NoteDraft) -> str:
        """Create a thread together with its first note and schedule enrichment."""
        thread = await self._threads.create(Thread(note_count=1))
        note = Note(
            thread_id=thread.id,
            content=initial_note.content,
            note_type=initial_note.note_type,
            is_prompt=False,
        )
        await self._notes.create(note)
        logger.info("Created thread %s with initial %s note", thread.id, note.note_type.value)

        self.trigger_enrichment(thread.id)
        return thread.id

    async def add_note_to_thread(self, thread_id: str, note_data: NoteDraft) -> str:
        """Append a note to an existing thread and schedule enrichment.

        Raises:
            NotFoundError: If the thread does not exist
        """
        thread = await self._threads.get(thread_id)
        if thread is None:
            raise NotFoundError("Thread", thread_id)

        note = await self._notes.create(
            Note(
                thread_id=thread_id,
                content=note_data.content,
                note_type=note_data.note_type,
                is_prompt=False,
            )
        )
        try:
            updated = await self._threads.increment_note_count(thread_id)
        except RuntimeError as err:
            logger.warning("Increment failed for thread %s, recounting notes: %s", thread_id, err)
            updated = await self._recount_notes(thread_id)
        if updated is None:
            raise NotFoundError("Thread", thread_id)
        logger.info("Added note %s to thread %s (note_count=%d)", note.id, thread_id, updated.note_count)

        self.trigger_enrichment(thread_id)
        return note.id

    async def _recount_notes(self, thread_id: str) -> Thread | None:
        notes = await self._notes.list_by_thread(thread_id, include_prompts=False)
        return await self._threads.update_fields(thread_id, {"note_count": len(notes)})

    def trigger_enrichment(self, thread_id: str) -> asyncio.Task[None] | None:
        """Schedule the enrichment job without awaiting it.

        Scheduling failures are logged and swallowed; note capture must not
        depend on enrichment being available.
        """
        if self._enrichment is None:
            logger.debug("Enrichment disabled, not scheduling job for thread %s", thread_id)
            return None
        try:
            task = asyncio.create_task(
                enrich_and_store_thread_metadata(
                    thread_id=thread_id,
                    thread_repo=self._threads,
                    note_repo=self._notes,
                    enrichment=self._enrichment,
                ),
                name=f"enrich-thread:{thread_id}",
            )
        except Exception as err:
            logger.error("Error triggering enrichment for thread %s: %s", thread_id, err)
            return None
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def drain(self) -> None:
        """Wait for all scheduled enrichment jobs, including ones they schedule."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # Queries

    async def get_thread(self, thread_id: str) -> Thread:
        thread = await self._threads.get(thread_id)
        if thread is None:
            raise NotFoundError("Thread", thread_id)
        return thread

    async def list_threads(self, limit: int | None = None) -> Sequence[Thread]:
        """List threads, most recently updated first."""
        return await self._threads.list(limit=limit)

    async def list_thread_notes(self, thread_id: str, *, include_prompts: bool = True) -> Sequence[Note]:
        await self.get_thread(thread_id)
        return await self._notes.list_by_thread(thread_id, include_prompts=include_prompts)

    async def get_note(self, note_id: str) -> Note:
        note = await self._notes.get(note_id)
        if note is None:
            raise NotFoundError("Note", note_id)
        return note

    # Live views

    def subscribe_to_threads(
        self,
        callback: Callable[[list[Thread]], None],
        *,
        limit: int | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> LiveQuery[list[Thread]]:
        """Push the full thread list (``updated_at`` descending) on load and on every change."""

        async def fetch() -> list[Thread]:
            return list(await self._threads.list(limit=limit))

        return LiveQuery(
            name="threads",
            feed=self._feed,
            collections=[self._threads.COLLECTION],
            fetch=fetch,
            callback=callback,
            on_error=on_error,
        ).start()

    def subscribe_to_thread(
        self,
        thread_id: str,
        callback: Callable[[Thread | None], None],
        *,
        on_error: Callable[[Exception], None] | None = None,
    ) -> LiveQuery[Thread | None]:
        """Push one thread document (or None while it does not exist)."""

        def matches(event: ChangeEvent) -> bool:
            return event.document_id == thread_id

        return LiveQuery(
            name=f"thread:{thread_id}",
            feed=self._feed,
            collections=[self._threads.COLLECTION],
            fetch=lambda: self._threads.get(thread_id),
            callback=callback,
            matches=matches,
            on_error=on_error,
        ).start()

    def subscribe_to_thread_notes(
        self,
        thread_id: str,
        callback: Callable[[list[Note]], None],
        *,
        include_prompts: bool = True,
        on_error: Callable[[Exception], None] | None = None,
    ) -> LiveQuery[list[Note]]:
        """Push a thread's notes (``created_at`` ascending) on load and on every change."""

        async def fetch() -> list[Note]:
            return list(await self._notes.list_by_thread(thread_id, include_prompts=include_prompts))

        def matches(event: ChangeEvent) -> bool:
            return event.thread_id == thread_id

        return LiveQuery(
            name=f"notes:{thread_id}",
            feed=self._feed,
            collections=[self._notes.COLLECTION],
            fetch=fetch,
            callback=callback,
            matches=matches,
            on_error=on_error,
        ).start()
