from __future__ import annotations

from enum import Enum
from uuid import uuid4

from pydantic import Field, field_validator

from .base import TimestampedModel


class NoteType(str, Enum):
    """How the note content was captured."""

    TEXT = "text"
    AUDIO = "audio"


class Note(TimestampedModel):
    """Note domain model.

    A note belongs to exactly one thread. Prompt notes (``is_prompt``) are
    written by the enrichment job and carry follow-up questions; they never
    count towards the thread's ``note_count``.
    """

    id: str = Field(default_factory=lambda: str(uuid4()), description="Unique note identifier")
    thread_id: str = Field(..., min_length=1, description="Owning thread")

    content: str = Field(..., min_length=1, max_length=10000, description="Note content")
    note_type: NoteType = Field(default=NoteType.TEXT, description="How the note was captured")
    is_prompt: bool = Field(default=False, description="System-generated follow-up questions")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Note content must be non-empty")
        return stripped

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "id": str(uuid4()),
                    "thread_id": str(uuid4()),
                    "content": "Remember to call the plumber about the kitchen sink.",
                    "note_type": "audio",
                    "is_prompt": False,
                }
            ]
        }
    }
