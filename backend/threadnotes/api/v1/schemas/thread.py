from __future__ import annotations

from datetime import datetime  # noqa: TCH003

from pydantic import Field

from threadnotes.core.models.base import AppBaseModel

from .note import NoteCreate  # noqa: TCH001


class ThreadCreate(AppBaseModel):
    """Create a thread, optionally seeded with its first note."""

    initial_note: NoteCreate | None = Field(
        default=None,
        description="First note of the thread. Omit to create an empty thread.",
    )


class ThreadRead(AppBaseModel):
    id: str
    title: str
    description: str
    tags: list[str]
    leading_questions: list[str]
    note_count: int
    created_at: datetime
    updated_at: datetime
