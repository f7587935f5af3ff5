from __future__ import annotations

import asyncio

import pytest

from threadnotes.api.v1.streaming import live_query_events
from threadnotes.core.models.note import NoteType
from threadnotes.core.repositories.implementations.memory.thread_repository import (
    InMemoryThreadRepository,
)
from threadnotes.core.schemas.note import NoteDraft
from threadnotes.core.services.thread_service import ThreadService

from conftest import next_delivery


def draft(content: str) -> NoteDraft:
    return NoteDraft(content=content, note_type=NoteType.TEXT)


@pytest.fixture
def plain_service(thread_repo, note_repo, feed) -> ThreadService:
    return ThreadService(thread_repo, note_repo, feed, enrichment=None)


@pytest.mark.asyncio
async def test_threads_subscription_delivers_empty_list(plain_service):
    queue: asyncio.Queue = asyncio.Queue()
    query = plain_service.subscribe_to_threads(queue.put_nowait)

    assert await next_delivery(queue) == []
    await query.aclose()


@pytest.mark.asyncio
async def test_threads_subscription_orders_by_most_recent_update(plain_service):
    first = await plain_service.create_empty_thread()
    second = await plain_service.create_empty_thread()

    queue: asyncio.Queue = asyncio.Queue()
    query = plain_service.subscribe_to_threads(queue.put_nowait)
    initial = await next_delivery(queue)
    assert [t.id for t in initial] == [second, first]

    await plain_service.add_note_to_thread(first, draft("bump"))
    updated = await next_delivery(queue)
    assert [t.id for t in updated] == [first, second]
    assert updated[0].note_count == 1
    await query.aclose()


@pytest.mark.asyncio
async def test_unsubscribe_stops_deliveries(plain_service, feed):
    queue: asyncio.Queue = asyncio.Queue()
    query = plain_service.subscribe_to_threads(queue.put_nowait)
    await next_delivery(queue)

    query.unsubscribe()
    query.unsubscribe()
    await plain_service.create_empty_thread()
    await asyncio.sleep(0.05)

    assert queue.empty()
    assert not query.active
    assert feed.listener_count("threads") == 0


@pytest.mark.asyncio
async def test_unsubscribe_from_inside_callback(plain_service):
    deliveries: list[int] = []
    holder: dict = {}

    def callback(threads):
        deliveries.append(len(threads))
        holder["query"].unsubscribe()

    holder["query"] = plain_service.subscribe_to_threads(callback)
    await asyncio.sleep(0.01)
    await plain_service.create_empty_thread()
    await asyncio.sleep(0.05)

    assert deliveries == [0]


@pytest.mark.asyncio
async def test_notes_subscription_is_filtered_and_ordered(plain_service):
    thread_id = await plain_service.create_empty_thread()
    other_id = await plain_service.create_empty_thread()

    queue: asyncio.Queue = asyncio.Queue()
    query = plain_service.subscribe_to_thread_notes(thread_id, queue.put_nowait)
    assert await next_delivery(queue) == []

    await plain_service.add_note_to_thread(other_id, draft("elsewhere"))
    await plain_service.add_note_to_thread(thread_id, draft("first"))
    await plain_service.add_note_to_thread(thread_id, draft("second"))

    notes = await next_delivery(queue)
    while len(notes) < 2:
        notes = await next_delivery(queue)
    assert [n.content for n in notes] == ["first", "second"]
    assert all(n.thread_id == thread_id for n in notes)
    await query.aclose()


@pytest.mark.asyncio
async def test_thread_subscription_sees_enrichment(service):
    thread_id = await service.create_empty_thread()

    queue: asyncio.Queue = asyncio.Queue()
    query = service.subscribe_to_thread(thread_id, queue.put_nowait)
    assert (await next_delivery(queue)).title == "New Thread"

    await service.add_note_to_thread(thread_id, draft("Buy milk"))
    await service.drain()

    thread = await next_delivery(queue)
    while thread.title == "New Thread":
        thread = await next_delivery(queue)
    assert thread.title == "Grocery shopping"
    assert len(thread.leading_questions) == 3
    await query.aclose()


class FlakyThreadRepository(InMemoryThreadRepository):
    def __init__(self, feed):
        super().__init__(feed)
        self.failures = 1

    async def list(self, *, limit=None):
        if self.failures:
            self.failures -= 1
            raise ConnectionError("store unavailable")
        return await super().list(limit=limit)


@pytest.mark.asyncio
async def test_refresh_failure_is_reported_and_recovers(note_repo, feed):
    thread_repo = FlakyThreadRepository(feed)
    service = ThreadService(thread_repo, note_repo, feed, enrichment=None)
    errors: list[Exception] = []
    queue: asyncio.Queue = asyncio.Queue()

    query = service.subscribe_to_threads(queue.put_nowait, on_error=errors.append)
    await asyncio.sleep(0.01)
    assert len(errors) == 1
    assert queue.empty()

    thread_id = await service.create_empty_thread()
    threads = await next_delivery(queue)
    assert [t.id for t in threads] == [thread_id]
    await query.aclose()


@pytest.mark.asyncio
async def test_sse_relay_formats_events_and_detaches(plain_service, feed):
    thread_id = await plain_service.create_empty_thread()
    events = live_query_events(
        plain_service.subscribe_to_threads,
        event="threads",
        encode=lambda threads: [t.id for t in threads],
    )

    assert await events.__anext__() == "event: threads\n"
    assert await events.__anext__() == f'data: ["{thread_id}"]\n\n'

    await events.aclose()
    assert feed.listener_count("threads") == 0


@pytest.mark.asyncio
async def test_failing_error_handler_keeps_subscription_alive(note_repo, feed):
    thread_repo = FlakyThreadRepository(feed)
    service = ThreadService(thread_repo, note_repo, feed, enrichment=None)
    queue: asyncio.Queue = asyncio.Queue()

    def on_error(err):
        raise RuntimeError("handler bug")

    query = service.subscribe_to_threads(queue.put_nowait, on_error=on_error)
    await asyncio.sleep(0.01)
    assert query.active

    thread_id = await service.create_empty_thread()
    threads = await next_delivery(queue)
    assert [t.id for t in threads] == [thread_id]
    await query.aclose()


@pytest.mark.asyncio
async def test_sse_relay_skips_stale_snapshots_for_slow_clients(plain_service):
    await plain_service.create_empty_thread()
    events = live_query_events(
        plain_service.subscribe_to_threads,
        event="threads",
        encode=lambda threads: len(threads),
        heartbeat=0.05,
    )
    assert await events.__anext__() == "event: threads\n"
    assert await events.__anext__() == "data: 1\n\n"

    for _ in range(3):
        await plain_service.create_empty_thread()
        await asyncio.sleep(0.01)

    assert await events.__anext__() == "event: threads\n"
    assert await events.__anext__() == "data: 4\n\n"
    assert await events.__anext__() == ": keep-alive\n\n"
    await events.aclose()
