from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from fastapi import Depends
from fastapi.requests import HTTPConnection

from threadnotes.core.realtime import ChangeFeed
from threadnotes.core.repositories.implementations.memory.note_repository import (
    InMemoryNoteRepository,
)
from threadnotes.core.repositories.implementations.memory.thread_repository import (
    InMemoryThreadRepository,
)
from threadnotes.core.services.enrichment_service import EnrichmentService
from threadnotes.core.services.thread_service import ThreadService
from threadnotes.core.services.transcription_service import TranscriptionService
from threadnotes.utils.logging import get_logger
from threadnotes.utils.openai_client import create_openai_client

logger = get_logger(__name__)

if TYPE_CHECKING:
    from openai import AsyncOpenAI

    from threadnotes.config import Settings
    from threadnotes.core.repositories.note_repository import NoteRepository
    from threadnotes.core.repositories.thread_repository import ThreadRepository


@dataclass
class ServiceContainer:
    """Explicitly constructed process dependencies, owned by the app lifespan."""

    feed: ChangeFeed
    thread_repo: ThreadRepository
    note_repo: NoteRepository
    thread_service: ThreadService
    transcription: TranscriptionService
    openai_client: AsyncOpenAI | None = None

    async def aclose(self) -> None:
        await self.thread_service.drain()
        if self.openai_client is not None:
            await self.openai_client.close()
        logger.info("Service container closed")


def build_repositories(settings: Settings, feed: ChangeFeed) -> tuple[ThreadRepository, NoteRepository]:
    """Return thread and note repositories for the configured store backend."""
    if settings.store_backend == "memory":
        logger.warning("Using in-memory store; data is lost on restart")
        return InMemoryThreadRepository(feed), InMemoryNoteRepository(feed)

    from threadnotes.core.repositories.implementations.supabase.note_repository import (
        SupabaseNoteRepository,
    )
    from threadnotes.core.repositories.implementations.supabase.thread_repository import (
        SupabaseThreadRepository,
    )
    from threadnotes.db.base import create_supabase_client

    client = create_supabase_client(settings)
    return (
        SupabaseThreadRepository(client, feed, table_name=settings.threads_table),
        SupabaseNoteRepository(client, feed, table_name=settings.notes_table),
    )


def build_container(settings: Settings) -> ServiceContainer:
    feed = ChangeFeed()
    thread_repo, note_repo = build_repositories(settings, feed)
    openai_client = create_openai_client(settings)

    enrichment = EnrichmentService(
        openai_client,
        model=settings.enrichment_model,
        reasoning_effort=settings.enrichment_model_reasoning,
    )
    transcription = TranscriptionService(
        openai_client,
        model=settings.transcription_model,
        language=settings.transcription_language,
        max_audio_bytes=settings.max_audio_bytes,
        interim_every=settings.transcription_interim_chunks,
    )
    return ServiceContainer(
        feed=feed,
        thread_repo=thread_repo,
        note_repo=note_repo,
        thread_service=ThreadService(thread_repo, note_repo, feed, enrichment),
        transcription=transcription,
        openai_client=openai_client,
    )


def get_container(connection: HTTPConnection) -> ServiceContainer:
    """Return the container built by the lifespan (works for HTTP and WebSocket)."""
    return connection.app.state.container


def get_thread_service(container: ServiceContainer = Depends(get_container)) -> ThreadService:
    return container.thread_service


def get_transcription_service(
    container: ServiceContainer = Depends(get_container),
) -> TranscriptionService:
    return container.transcription
