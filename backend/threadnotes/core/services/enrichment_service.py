from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING

from pydantic import ValidationError

from threadnotes.core.schemas.enrichment import (
    MAX_DESCRIPTION_LENGTH,
    MAX_TAGS,
    MAX_TITLE_LENGTH,
    MIN_TAGS,
    QUESTION_COUNT,
    ThreadEnrichmentResult,
)
from threadnotes.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from openai import AsyncOpenAI

logger = get_logger(__name__)

_FENCE_RE = re.compile(r"```(?:[a-zA-Z0-9_-]+)?\s*(.*?)\s*```", re.DOTALL)

INSTRUCTIONS = (
    "You are an AI assistant helping users organize their thoughts in a note-taking app. "
    "Return JSON only, with no additional text."
)


def build_thread_prompt(contents: Sequence[str]) -> str:
    """Compose the enrichment prompt from a thread's notes in chronological order."""
    numbered = "\n\n".join(f"{i}. {content}" for i, content in enumerate(contents, start=1))
    return (
        "Analyze the following notes in a thread and generate:\n\n"
        f"1. A concise thread title (max {MAX_TITLE_LENGTH} characters)\n"
        f"2. A brief description (1-2 lines, max {MAX_DESCRIPTION_LENGTH} characters)\n"
        f"3. {MIN_TAGS}-{MAX_TAGS} contextual tags\n"
        f"4. {QUESTION_COUNT} leading exploratory questions based on the most recent note\n\n"
        "Return the response in this exact JSON format:\n\n"
        '{"title": "Thread Title", "description": "Thread description", '
        '"tags": ["tag1", "tag2", "tag3"], '
        '"questions": ["Question 1?", "Question 2?", "Question 3?"]}\n\n'
        "Notes in chronological order:\n"
        f"{numbered}\n\n"
        "Generate the title, description, and tags based on all notes. "
        f"Generate the questions based on the most recent note (note {len(contents)})."
    )


def strip_code_fences(text: str) -> str:
    """Return the JSON body of a model reply, dropping Markdown fences or chatter."""
    stripped = (text or "").strip()
    match = _FENCE_RE.search(stripped)
    if match:
        return match.group(1).strip()
    start, end = stripped.find("{"), stripped.rfind("}")
    if start != -1 and end > start:
        return stripped[start:end + 1]
    return stripped


def parse_enrichment_response(text: str) -> ThreadEnrichmentResult:
    """Parse raw model output into a validated result.

    Raises:
        ValueError: If the text is not JSON or does not satisfy the result schema
    """
    body = strip_code_fences(text)
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as err:
        raise ValueError(f"Enrichment response is not valid JSON: {err}") from err
    if not isinstance(payload, dict):
        raise ValueError("Enrichment response must be a JSON object")
    try:
        return ThreadEnrichmentResult.model_validate(payload)
    except ValidationError as err:
        raise ValueError(f"Enrichment response failed validation: {err}") from err


class EnrichmentService:
    """Generates thread metadata with the OpenAI Responses API."""

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: str,
        reasoning_effort: str | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._reasoning_effort = reasoning_effort

    async def generate_thread_metadata(self, contents: Sequence[str]) -> ThreadEnrichmentResult | None:
        """Ask the model for title, description, tags and questions.

        Returns None (after logging) when the call fails or the reply cannot be
        parsed; callers must then leave the thread untouched.
        """
        if not contents:
            logger.warning("No note content available for enrichment")
            return None

        prompt = build_thread_prompt(contents)
        logger.debug("Enrichment prompt built for %d notes (%d chars)", len(contents), len(prompt))

        request: dict = {
            "model": self._model,
            "input": [
                {"role": "system", "content": INSTRUCTIONS},
                {"role": "user", "content": prompt},
            ],
        }
        if self._reasoning_effort:
            request["reasoning"] = {"effort": self._reasoning_effort}

        try:
            logger.info("Making OpenAI API call for thread enrichment")
            response = await self._client.responses.create(**request)
        except Exception as err:
            logger.error("Enrichment request failed: %s", err)
            logger.error("Error type: %s", type(err).__name__)
            return None

        text = getattr(response, "output_text", None) or ""
        try:
            result = parse_enrichment_response(text)
        except ValueError as err:
            logger.error("Failed to parse enrichment response: %s", err)
            logger.debug("Raw enrichment response: %s", text[:500])
            return None

        logger.info("Enrichment successful - title: %s, tags: %s", result.title, result.tags)
        return result
