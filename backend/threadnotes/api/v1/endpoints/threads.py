from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, Request, status

from threadnotes.api.v1.schemas.note import NoteCreate, NoteRead
from threadnotes.api.v1.schemas.thread import ThreadCreate, ThreadRead
from threadnotes.api.v1.streaming import live_query_events, sse_response
from threadnotes.core.errors import NotFoundError
from threadnotes.dependencies import get_thread_service

if TYPE_CHECKING:
    from threadnotes.core.models.note import Note
    from threadnotes.core.models.thread import Thread
    from threadnotes.core.services.thread_service import ThreadService

router = APIRouter()


def _thread_json(thread: Thread | None) -> dict | None:
    if thread is None:
        return None
    return ThreadRead.model_validate(thread).model_dump(mode="json")


def _notes_json(notes: list[Note]) -> list[dict]:
    return [NoteRead.model_validate(n).model_dump(mode="json") for n in notes]


@router.post("/", response_model=ThreadRead, status_code=status.HTTP_201_CREATED)
async def create_thread(
    payload: ThreadCreate | None = None,
    service: ThreadService = Depends(get_thread_service),
):
    """Create a thread. With ``initial_note`` the thread is enriched in the background."""
    if payload is None or payload.initial_note is None:
        thread_id = await service.create_empty_thread()
    else:
        thread_id = await service.create_thread(payload.initial_note)
    thread = await service.get_thread(thread_id)
    return ThreadRead.model_validate(thread)


@router.get("/", response_model=list[ThreadRead])
async def list_threads(
    limit: int | None = None,
    service: ThreadService = Depends(get_thread_service),
):
    threads = await service.list_threads(limit=limit)
    return [ThreadRead.model_validate(t) for t in threads]


@router.get("/stream")
async def stream_threads(
    request: Request,
    service: ThreadService = Depends(get_thread_service),
):
    """Stream the full thread list on connect and after every change (SSE)."""
    events = live_query_events(
        service.subscribe_to_threads,
        event="threads",
        encode=lambda threads: [_thread_json(t) for t in threads],
        request=request,
    )
    return sse_response(events)


@router.get("/{thread_id}", response_model=ThreadRead)
async def get_thread(
    thread_id: str,
    service: ThreadService = Depends(get_thread_service),
):
    try:
        thread = await service.get_thread(thread_id)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Thread not found") from err
    return ThreadRead.model_validate(thread)


@router.get("/{thread_id}/stream")
async def stream_thread(
    thread_id: str,
    request: Request,
    service: ThreadService = Depends(get_thread_service),
):
    """Stream one thread's metadata; ``null`` while the thread does not exist (SSE)."""
    events = live_query_events(
        lambda callback: service.subscribe_to_thread(thread_id, callback),
        event="thread",
        encode=_thread_json,
        request=request,
    )
    return sse_response(events)


@router.get("/{thread_id}/notes", response_model=list[NoteRead])
async def list_thread_notes(
    thread_id: str,
    include_prompts: bool = True,
    service: ThreadService = Depends(get_thread_service),
):
    try:
        notes = await service.list_thread_notes(thread_id, include_prompts=include_prompts)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Thread not found") from err
    return [NoteRead.model_validate(n) for n in notes]


@router.get("/{thread_id}/notes/stream")
async def stream_thread_notes(
    thread_id: str,
    request: Request,
    include_prompts: bool = True,
    service: ThreadService = Depends(get_thread_service),
):
    """Stream a thread's notes in creation order after every change (SSE)."""
    events = live_query_events(
        lambda callback: service.subscribe_to_thread_notes(
            thread_id, callback, include_prompts=include_prompts
        ),
        event="notes",
        encode=_notes_json,
        request=request,
    )
    return sse_response(events)


@router.post("/{thread_id}/notes", response_model=NoteRead, status_code=status.HTTP_201_CREATED)
async def add_note(
    thread_id: str,
    payload: NoteCreate,
    service: ThreadService = Depends(get_thread_service),
):
    try:
        note_id = await service.add_note_to_thread(thread_id, payload)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Thread not found") from err
    note = await service.get_note(note_id)
    return NoteRead.model_validate(note)
