from __future__ import annotations

from datetime import datetime  # noqa: TCH003

from threadnotes.core.models.base import AppBaseModel
from threadnotes.core.models.note import NoteType  # noqa: TCH001
from threadnotes.core.schemas.note import NoteDraft


class NoteCreate(NoteDraft):
    """Written or transcribed note submitted by the client."""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"content": "Buy milk", "note_type": "text"},
            ]
        }
    }


class NoteRead(AppBaseModel):
    id: str
    thread_id: str
    content: str
    note_type: NoteType
    is_prompt: bool
    created_at: datetime
    updated_at: datetime
