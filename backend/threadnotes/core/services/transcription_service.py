from __future__ import annotations

from typing import TYPE_CHECKING, Any

from threadnotes.core.errors import TranscriptionError
from threadnotes.core.schemas.transcription import TranscriptEvent
from threadnotes.utils.audio import DEFAULT_AUDIO_MIME_TYPE, audio_filename
from threadnotes.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, AsyncIterator, Iterable

    from openai import AsyncOpenAI

logger = get_logger(__name__)


def final_transcript(events: Iterable[TranscriptEvent]) -> str:
    """Return the last final transcript in ``events``, or "" if none settled."""
    text = ""
    for event in events:
        if event.is_final:
            text = event.text
    return text.strip()


class TranscriptionService:
    """Speech-to-text over the OpenAI audio transcription endpoint.

    Batch mode uploads a finished recording and returns the transcript.
    Streaming mode accepts the recording as chunks while it is captured and
    yields interim events during capture, then the final transcript.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: str,
        language: str | None = None,
        max_audio_bytes: int | None = None,
        interim_every: int = 3,
    ) -> None:
        self._client = client
        self._model = model
        self._language = language
        self._max_audio_bytes = max_audio_bytes
        self._interim_every = interim_every

    @property
    def supports_streaming(self) -> bool:
        # whisper-1 rejects stream=True
        return not self._model.startswith("whisper")

    async def transcribe(
        self,
        audio: bytes,
        *,
        content_type: str = DEFAULT_AUDIO_MIME_TYPE,
    ) -> str:
        """Transcribe a complete recording.

        Raises:
            ValueError: If the audio is empty or too large
            TranscriptionError: If the transcription service fails
        """
        self._check_audio(audio)
        try:
            resp = await self._client.audio.transcriptions.create(
                model=self._model,
                file=(audio_filename(content_type), audio, content_type),
                **self._options(),
            )
        except Exception as err:
            logger.error("Transcription request failed: %s", err)
            raise TranscriptionError("Transcription failed") from err

        text = resp if isinstance(resp, str) else getattr(resp, "text", "")
        logger.info("Transcribed %d bytes of audio into %d characters", len(audio), len(text or ""))
        return (text or "").strip()

    async def stream(
        self,
        chunks: AsyncIterable[bytes],
        *,
        content_type: str = DEFAULT_AUDIO_MIME_TYPE,
    ) -> AsyncIterator[TranscriptEvent]:
        """Transcribe audio arriving as chunks, yielding transcript events.

        While audio is still arriving, the recording so far is re-transcribed
        every ``interim_every`` chunks and reported as an interim event. Once
        the chunks run out the whole recording is transcribed (streamed when
        the model supports it) and the last event is final.
        """
        buffer = bytearray()
        received = 0
        interim_text = ""
        async for chunk in chunks:
            buffer.extend(chunk)
            received += 1
            if self._max_audio_bytes is not None and len(buffer) > self._max_audio_bytes:
                raise ValueError("Audio exceeds the maximum upload size")
            if self._interim_every and received % self._interim_every == 0:
                text = await self._interim(bytes(buffer), content_type)
                if text and text != interim_text:
                    interim_text = text
                    yield TranscriptEvent(text=text, is_final=False)
        audio = bytes(buffer)
        self._check_audio(audio)

        if not self.supports_streaming:
            text = await self.transcribe(audio, content_type=content_type)
            yield TranscriptEvent(text=text, is_final=True)
            return

        try:
            stream = await self._client.audio.transcriptions.create(
                model=self._model,
                file=(audio_filename(content_type), audio, content_type),
                stream=True,
                **self._options(),
            )
        except Exception as err:
            logger.error("Streaming transcription request failed: %s", err)
            raise TranscriptionError("Transcription failed") from err

        text = ""
        try:
            async for event in stream:
                event_type = getattr(event, "type", "")
                if event_type == "transcript.text.delta":
                    text += getattr(event, "delta", "") or ""
                    yield TranscriptEvent(text=text, is_final=False)
                elif event_type == "transcript.text.done":
                    text = getattr(event, "text", text) or text
                    yield TranscriptEvent(text=text.strip(), is_final=True)
        except TranscriptionError:
            raise
        except Exception as err:
            logger.error("Streaming transcription failed mid-stream: %s", err)
            raise TranscriptionError("Transcription failed") from err

    async def _interim(self, audio: bytes, content_type: str) -> str:
        # Provisional only; the final pass decides the transcript.
        try:
            return await self.transcribe(audio, content_type=content_type)
        except TranscriptionError:
            logger.warning("Interim transcription of %d bytes failed, waiting for more audio", len(audio))
            return ""

    def _options(self) -> dict[str, Any]:
        options: dict[str, Any] = {}
        if self._language:
            options["language"] = self._language
        return options

    def _check_audio(self, audio: bytes) -> None:
        if not audio:
            raise ValueError("No audio data provided")
        if self._max_audio_bytes is not None and len(audio) > self._max_audio_bytes:
            raise ValueError("Audio exceeds the maximum upload size")
