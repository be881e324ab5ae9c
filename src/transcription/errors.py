"""Error taxonomy for the transcription pipeline.

Component errors propagate as typed exceptions; only the meeting processor
turns them into a persisted failure reason.
"""

from __future__ import annotations

from src.pipeline_config import FailureKind


class TranscriptionError(Exception):
    """Base class for every pipeline failure."""


class AudioProcessingError(TranscriptionError):
    """The transcoder/splitter failed (probe, conversion or extraction)."""


class SpeechToTextError(TranscriptionError):
    """A single speech-to-text request failed."""

    kind: FailureKind = FailureKind.UNKNOWN

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_transient(self) -> bool:
        return self.kind.is_transient

    @property
    def is_fatal(self) -> bool:
        return self.kind.is_fatal


class PayloadTooLargeError(SpeechToTextError):
    kind = FailureKind.PAYLOAD_TOO_LARGE


class RateLimitedError(SpeechToTextError):
    kind = FailureKind.RATE_LIMITED


class UnauthorizedError(SpeechToTextError):
    kind = FailureKind.UNAUTHORIZED


class QuotaExceededError(SpeechToTextError):
    kind = FailureKind.QUOTA_EXCEEDED


class UnknownSpeechToTextError(SpeechToTextError):
    kind = FailureKind.UNKNOWN


ERROR_CLASSES: dict[FailureKind, type[SpeechToTextError]] = {
    FailureKind.PAYLOAD_TOO_LARGE: PayloadTooLargeError,
    FailureKind.RATE_LIMITED: RateLimitedError,
    FailureKind.UNAUTHORIZED: UnauthorizedError,
    FailureKind.QUOTA_EXCEEDED: QuotaExceededError,
    FailureKind.UNKNOWN: UnknownSpeechToTextError,
}


class NeedsRechunkError(TranscriptionError):
    """A chunk was rejected as too large; the plan must be rebuilt smaller."""

    def __init__(self, chunk_index: int) -> None:
        super().__init__(f"Chunk {chunk_index} exceeds the service payload limit")
        self.chunk_index = chunk_index


class ChunkRetriesExhaustedError(TranscriptionError):
    """Transient failures on one chunk outlasted the retry budget."""

    def __init__(
        self,
        chunk_index: int,
        attempts: int,
        last_error: BaseException | None = None,
    ) -> None:
        super().__init__(
            f"Failed to transcribe chunk {chunk_index} after {attempts} retries. "
            "This may be due to network instability or speech-to-text service issues. "
            "Try again later."
        )
        self.chunk_index = chunk_index
        self.attempts = attempts
        self.last_error = last_error


class MeetingNotFoundError(LookupError):
    """No meeting record exists for the given ID."""


class MissingRecordingError(ValueError):
    """The meeting has no stored recording to process."""


class MeetingBusyError(RuntimeError):
    """The meeting is already being processed."""


class DeadlineExceededError(TranscriptionError):
    """The whole pipeline ran past its adaptive deadline."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"Processing timed out after {timeout_seconds:g}s")
        self.timeout_seconds = timeout_seconds
