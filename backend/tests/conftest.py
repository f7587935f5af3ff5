from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace

import pytest

from threadnotes.core.realtime import ChangeFeed
from threadnotes.core.repositories.implementations.memory.note_repository import InMemoryNoteRepository
from threadnotes.core.repositories.implementations.memory.thread_repository import (
    InMemoryThreadRepository,
)
from threadnotes.core.services.enrichment_service import EnrichmentService
from threadnotes.core.services.thread_service import ThreadService
from threadnotes.core.services.transcription_service import TranscriptionService

ENRICHMENT_REPLY = json.dumps(
    {
        "title": "Grocery shopping",
        "description": "A short shopping list with milk and eggs.",
        "tags": ["Shopping", "groceries", "errands"],
        "questions": [
            "Which store are you going to?",
            "Do you need anything else for breakfast?",
            "When do you plan to go shopping?",
        ],
    }
)


class FakeResponses:
    """Stands in for ``AsyncOpenAI.responses``; replies are consumed in order, the last one repeats."""

    def __init__(self, replies: list[str | Exception]) -> None:
        self.replies = list(replies)
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(output_text=reply)


class FakeTranscriptions:
    """Stands in for ``AsyncOpenAI.audio.transcriptions``."""

    def __init__(self, text: str = "", events: list | None = None, error: Exception | None = None) -> None:
        self.text = text
        self.events = events or []
        self.error = error
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if kwargs.get("stream"):
            return _aiter(self.events)
        return SimpleNamespace(text=self.text)


async def _aiter(items):
    for item in items:
        yield item


class FakeOpenAI:
    def __init__(
        self,
        replies: list[str | Exception] | None = None,
        transcriptions: FakeTranscriptions | None = None,
    ) -> None:
        self.responses = FakeResponses(replies or [ENRICHMENT_REPLY])
        self.audio = SimpleNamespace(transcriptions=transcriptions or FakeTranscriptions())


async def next_delivery(queue: asyncio.Queue, timeout: float = 1.0):
    return await asyncio.wait_for(queue.get(), timeout=timeout)


@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture
def thread_repo(feed) -> InMemoryThreadRepository:
    return InMemoryThreadRepository(feed)


@pytest.fixture
def note_repo(feed) -> InMemoryNoteRepository:
    return InMemoryNoteRepository(feed)


@pytest.fixture
def fake_openai() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture
def enrichment(fake_openai) -> EnrichmentService:
    return EnrichmentService(fake_openai, model="test-model")


@pytest.fixture
def service(thread_repo, note_repo, feed, enrichment) -> ThreadService:
    return ThreadService(thread_repo, note_repo, feed, enrichment)


@pytest.fixture
def transcription(fake_openai) -> TranscriptionService:
    return TranscriptionService(fake_openai, model="gpt-4o-mini-transcribe", max_audio_bytes=1024)


def delta(text: str):
    """Streaming transcription event carrying more text."""
    return SimpleNamespace(type="transcript.text.delta", delta=text)


def done(text: str):
    return SimpleNamespace(type="transcript.text.done", text=text)
