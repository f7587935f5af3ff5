from __future__ import annotations

from pydantic import Field

from threadnotes.core.models.base import AppBaseModel


class TranscriptEvent(AppBaseModel):
    """One update from a streaming transcription.

    Interim events may still be revised; a final event is authoritative.
    """

    text: str = Field(default="", description="Transcript text so far")
    is_final: bool = Field(default=False, description="Whether the text is settled")
