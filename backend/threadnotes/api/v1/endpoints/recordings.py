from __future__ import annotations

import json
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status

from threadnotes.api.v1.schemas.recording import (
    RecordingCreate,
    RecordingRead,
    TranscriptionRead,
    TranscriptionRequest,
)
from threadnotes.core.errors import NotFoundError, TranscriptionError
from threadnotes.core.models.note import NoteType
from threadnotes.core.schemas.note import NoteDraft
from threadnotes.core.services.transcription_service import final_transcript
from threadnotes.dependencies import get_thread_service, get_transcription_service
from threadnotes.utils.audio import DEFAULT_AUDIO_MIME_TYPE, decode_audio_payload
from threadnotes.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from threadnotes.core.schemas.transcription import TranscriptEvent
    from threadnotes.core.services.thread_service import ThreadService
    from threadnotes.core.services.transcription_service import TranscriptionService

logger = get_logger(__name__)

router = APIRouter()

STOP_MESSAGE = "stop"


async def save_transcript(service: ThreadService, transcript: str, thread_id: str | None) -> RecordingRead:
    """Store a transcript as an audio note, starting a new thread when none is given."""
    draft = NoteDraft(content=transcript, note_type=NoteType.AUDIO)
    if thread_id:
        note_id = await service.add_note_to_thread(thread_id, draft)
    else:
        thread_id = await service.create_thread(draft)
        notes = await service.list_thread_notes(thread_id, include_prompts=False)
        note_id = notes[0].id
    return RecordingRead(transcript=transcript, thread_id=thread_id, note_id=note_id)


async def _transcribe_payload(audio_data: str, transcription: TranscriptionService) -> str:
    try:
        audio, mime_type = decode_audio_payload(audio_data)
        return await transcription.transcribe(audio, content_type=mime_type)
    except ValueError as err:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(err)) from err
    except TranscriptionError as err:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Transcription failed. Please try again.",
        ) from err


@router.post("/transcribe", response_model=TranscriptionRead)
async def transcribe(
    payload: TranscriptionRequest,
    transcription: TranscriptionService = Depends(get_transcription_service),
):
    """Transcribe a finished recording without storing anything."""
    transcript = await _transcribe_payload(payload.audio_data, transcription)
    return TranscriptionRead(transcript=transcript)


@router.post("/", response_model=RecordingRead, status_code=status.HTTP_201_CREATED)
async def create_recording(
    payload: RecordingCreate,
    service: ThreadService = Depends(get_thread_service),
    transcription: TranscriptionService = Depends(get_transcription_service),
):
    """Transcribe a finished recording and store it as an audio note."""
    if payload.thread_id:
        try:
            await service.get_thread(payload.thread_id)
        except NotFoundError as err:
            raise HTTPException(status_code=404, detail="Thread not found") from err

    transcript = await _transcribe_payload(payload.audio_data, transcription)
    if not transcript:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="No speech detected in the recording",
        )
    try:
        return await save_transcript(service, transcript, payload.thread_id)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Thread not found") from err


async def _receive_audio(websocket: WebSocket) -> AsyncIterator[bytes]:
    """Yield binary frames until the client sends a stop message."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000))
        chunk = message.get("bytes")
        if chunk:
            yield chunk
            continue
        text = message.get("text")
        if text is None:
            continue
        try:
            control = json.loads(text)
        except json.JSONDecodeError:
            control = {"type": text.strip()}
        if isinstance(control, dict) and control.get("type") == STOP_MESSAGE:
            return


@router.websocket("/stream")
async def stream_recording(
    websocket: WebSocket,
    thread_id: str | None = None,
    content_type: str = DEFAULT_AUDIO_MIME_TYPE,
    service: ThreadService = Depends(get_thread_service),
    transcription: TranscriptionService = Depends(get_transcription_service),
):
    """Live recording session.

    The client sends audio as binary frames and ``{"type": "stop"}`` when the
    user stops recording. The server answers with ``transcript`` events, then
    ``saved`` (with thread and note ids) or ``error``.
    """
    await websocket.accept()

    async def send_error(message: str, retryable: bool) -> None:
        await websocket.send_json({"type": "error", "message": message, "retryable": retryable})
        await websocket.close()

    if thread_id:
        try:
            await service.get_thread(thread_id)
        except NotFoundError:
            await send_error("Thread not found", retryable=False)
            return

    events: list[TranscriptEvent] = []
    try:
        async for event in transcription.stream(_receive_audio(websocket), content_type=content_type):
            events.append(event)
            await websocket.send_json({"type": "transcript", **event.model_dump()})
    except WebSocketDisconnect:
        logger.info("Recording client disconnected before stopping")
        return
    except ValueError as err:
        await send_error(str(err), retryable=True)
        return
    except TranscriptionError:
        await send_error("Transcription failed. Please try again.", retryable=True)
        return

    transcript = final_transcript(events)
    if not transcript:
        await send_error("No speech detected in the recording", retryable=True)
        return

    try:
        saved = await save_transcript(service, transcript, thread_id)
    except NotFoundError:
        await send_error("Thread not found", retryable=False)
        return

    await websocket.send_json({"type": "saved", **saved.model_dump()})
    await websocket.close()
