from __future__ import annotations

from pydantic import Field, field_validator

from threadnotes.core.models.base import AppBaseModel
from threadnotes.core.models.note import NoteType


class NoteDraft(AppBaseModel):
    """User content for a new note, before it is attached to a thread."""

    content: str = Field(..., min_length=1, max_length=10000)
    note_type: NoteType = Field(default=NoteType.TEXT)

    @field_validator("content")
    @classmethod
    def ensure_content(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Note content must be non-empty")
        return stripped
