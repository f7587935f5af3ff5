from __future__ import annotations

from pydantic import ConfigDict, Field, field_validator

from threadnotes.core.models.base import AppBaseModel

MAX_TITLE_LENGTH = 50
MAX_DESCRIPTION_LENGTH = 150
MIN_TAGS = 3
MAX_TAGS = 5
MAX_TAG_LENGTH = 50
QUESTION_COUNT = 3


class ThreadEnrichmentResult(AppBaseModel):
    """Validated enrichment output for a thread.

    Over-long strings are truncated and surplus tags/questions dropped; too few
    tags or questions fail validation so a thread is never half-enriched.
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {
                    "title": "Weekend groceries",
                    "description": "Shopping list for milk and eggs.",
                    "tags": ["shopping", "groceries", "errands"],
                    "questions": [
                        "Which store will you visit?",
                        "Do you need anything else for breakfast?",
                        "When are you planning to go?",
                    ],
                }
            ]
        },
    )

    title: str = Field(description=f"Thread title, max {MAX_TITLE_LENGTH} characters")
    description: str = Field(description=f"Thread summary, max {MAX_DESCRIPTION_LENGTH} characters")
    tags: list[str] = Field(description=f"{MIN_TAGS}-{MAX_TAGS} contextual tags")
    questions: list[str] = Field(description=f"{QUESTION_COUNT} follow-up questions")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _bounded(v, MAX_TITLE_LENGTH, "title")

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        return _bounded(v, MAX_DESCRIPTION_LENGTH, "description")

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        normalized: list[str] = []
        for tag in v:
            if isinstance(tag, str) and tag.strip():
                tt = tag.strip().lower()[:MAX_TAG_LENGTH]
                if tt not in normalized:
                    normalized.append(tt)
        if len(normalized) < MIN_TAGS:
            raise ValueError(f"Expected at least {MIN_TAGS} tags, got {len(normalized)}")
        return normalized[:MAX_TAGS]

    @field_validator("questions")
    @classmethod
    def validate_questions(cls, v: list[str]) -> list[str]:
        questions = [q.strip() for q in v if isinstance(q, str) and q.strip()]
        if len(questions) < QUESTION_COUNT:
            raise ValueError(f"Expected {QUESTION_COUNT} questions, got {len(questions)}")
        return questions[:QUESTION_COUNT]


def _bounded(value: str, limit: int, name: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{name} must be non-empty")
    if len(stripped) > limit:
        stripped = stripped[:limit].rstrip()
    return stripped
