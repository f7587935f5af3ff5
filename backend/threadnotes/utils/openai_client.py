from __future__ import annotations

from typing import TYPE_CHECKING

from openai import AsyncOpenAI

from threadnotes.utils.logging import get_logger

if TYPE_CHECKING:
    from threadnotes.config import Settings

logger = get_logger(__name__)


def create_openai_client(settings: Settings) -> AsyncOpenAI:
    """Build the OpenAI client shared by enrichment and transcription.

    Uses the environment's OPENAI_API_KEY unless `APP_OPENAI_API_KEY` is set
    in the application's settings. The caller owns the client and must close it.
    """
    if settings.openai_api_key:
        logger.debug("Initializing OpenAI client with APP_OPENAI_API_KEY")
        return AsyncOpenAI(api_key=settings.openai_api_key)
    logger.debug("Initializing OpenAI client with default OPENAI_API_KEY from environment")
    return AsyncOpenAI()
