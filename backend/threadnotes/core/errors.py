from __future__ import annotations


class NotFoundError(LookupError):
    """Raised when a referenced thread or note does not exist."""

    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class TranscriptionError(RuntimeError):
    """Speech-to-text failed; the caller may retry with the same audio."""

    retryable = True
