from __future__ import annotations

from typing import TYPE_CHECKING

from threadnotes.core.models.base import utcnow
from threadnotes.core.models.note import Note, NoteType
from threadnotes.utils.logging import get_logger

logger = get_logger(__name__)

if TYPE_CHECKING:
    from threadnotes.core.repositories.note_repository import NoteRepository
    from threadnotes.core.repositories.thread_repository import ThreadRepository
    from threadnotes.core.services.enrichment_service import EnrichmentService


async def enrich_and_store_thread_metadata(
    *,
    thread_id: str,
    thread_repo: ThreadRepository,
    note_repo: NoteRepository,
    enrichment: EnrichmentService,
) -> None:
    """Background job: regenerate a thread's metadata from its content notes.

    On success overwrites title, description, tags and leading questions and
    appends one prompt note with the questions. Any failure leaves the thread
    as it was. Swallows errors and logs for observability.
    """
    logger.info("Starting enrichment job for thread %s", thread_id)

    try:
        notes = await note_repo.list_by_thread(thread_id, include_prompts=False)
        contents = [n.content for n in notes if not n.is_prompt]
        if not contents:
            logger.warning("No content notes found in thread %s, skipping enrichment", thread_id)
            return

        logger.debug("Enriching thread %s from %d content notes", thread_id, len(contents))
        result = await enrichment.generate_thread_metadata(contents)
        if result is None:
            logger.warning("No enrichment result received for thread %s", thread_id)
            return

        payload = {
            "title": result.title,
            "description": result.description,
            "tags": result.tags,
            "leading_questions": result.questions,
            "updated_at": utcnow(),
        }
        updated = await thread_repo.update_fields(thread_id, payload)
        if updated is None:
            logger.warning("Thread %s disappeared before enrichment could be stored", thread_id)
            return

        prompt_note = Note(
            thread_id=thread_id,
            content="\n".join(result.questions),
            note_type=NoteType.TEXT,
            is_prompt=True,
        )
        await note_repo.create(prompt_note)
        logger.info("Successfully stored enrichment for thread %s", thread_id)

    except Exception as err:  # pragma: no cover - external failures
        logger.error("Enrichment job failed for thread %s: %s", thread_id, err)
        logger.error("Error type: %s", type(err).__name__)
