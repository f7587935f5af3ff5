from __future__ import annotations

import base64
import binascii

DEFAULT_AUDIO_MIME_TYPE = "audio/webm"

_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/mpeg": "mp3",
    "audio/mp4": "m4a",
    "audio/x-m4a": "m4a",
    "audio/flac": "flac",
}


def decode_audio_payload(audio_data: str) -> tuple[bytes, str]:
    """Decode a browser recording into raw bytes and its MIME type.

    Accepts either a data URL (``data:audio/webm;codecs=opus;base64,...``) as
    produced by ``FileReader.readAsDataURL`` or a bare base64 string.
    """
    payload = (audio_data or "").strip()
    if not payload:
        raise ValueError("No audio data provided")

    mime_type = DEFAULT_AUDIO_MIME_TYPE
    if payload.startswith("data:"):
        header, sep, payload = payload.partition(",")
        if not sep or ";base64" not in header:
            raise ValueError("Audio data URL must be base64 encoded")
        declared = header[len("data:"):].split(";", 1)[0].strip()
        if declared:
            mime_type = declared.lower()

    try:
        audio = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as err:
        raise ValueError("Audio data is not valid base64") from err

    if not audio:
        raise ValueError("No audio data provided")
    return audio, mime_type


def audio_filename(mime_type: str, stem: str = "recording") -> str:
    """Return an upload filename whose extension matches the MIME type."""
    base_type = mime_type.split(";", 1)[0].strip().lower()
    extension = _EXTENSIONS.get(base_type, "webm")
    return f"{stem}.{extension}"
