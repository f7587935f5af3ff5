from __future__ import annotations

from uuid import uuid4

from pydantic import Field, field_validator

from .base import TimestampedModel

DEFAULT_THREAD_TITLE = "New Thread"
DEFAULT_THREAD_DESCRIPTION = "Processing..."


class Thread(TimestampedModel):
    """Thread domain model.

    Title, description, tags and leading questions hold placeholders until the
    enrichment job overwrites them.
    """

    id: str = Field(default_factory=lambda: str(uuid4()), description="Unique thread identifier")

    title: str = Field(default=DEFAULT_THREAD_TITLE, description="Generated thread title")
    description: str = Field(default=DEFAULT_THREAD_DESCRIPTION, description="Generated summary")
    tags: list[str] = Field(default_factory=list, description="Tags, most relevant first")
    leading_questions: list[str] = Field(
        default_factory=list,
        description="Follow-up questions about the most recent note",
    )

    note_count: int = Field(default=0, ge=0, description="Number of non-prompt notes")

    @field_validator("tags", "leading_questions", mode="before")
    @classmethod
    def none_as_empty(cls, v: list[str] | None) -> list[str]:
        return v or []

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "id": str(uuid4()),
                    "title": "Grocery run",
                    "description": "Shopping list for the weekend.",
                    "tags": ["shopping", "groceries", "errands"],
                    "leading_questions": [
                        "Which store are you going to?",
                        "Do you need anything for breakfast?",
                        "Is there a budget for this trip?",
                    ],
                    "note_count": 2,
                }
            ]
        }
    }
