from __future__ import annotations

from pydantic import Field

from threadnotes.core.models.base import AppBaseModel


class TranscriptionRequest(AppBaseModel):
    audio_data: str = Field(
        ...,
        min_length=1,
        description="Recording as a base64 data URL (data:audio/webm;base64,...) or bare base64",
    )


class TranscriptionRead(AppBaseModel):
    transcript: str


class RecordingCreate(TranscriptionRequest):
    """Transcribe a recording and store it as an audio note."""

    thread_id: str | None = Field(
        default=None,
        description="Thread to append to. Omit to start a new thread.",
    )


class RecordingRead(AppBaseModel):
    transcript: str
    thread_id: str
    note_id: str
