"""Speech-to-text client for the OpenAI audio transcription API.

One call to :meth:`WhisperClient.transcribe` is exactly one HTTP request: the
SDK's own retries are disabled so the chunk driver owns the retry policy.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Protocol

import openai
from openai import OpenAI

from src.pipeline_config import FailureKind
from src.transcription.errors import ERROR_CLASSES, SpeechToTextError, UnauthorizedError
from src.transcription.models import SpeechToTextResult, TranscriptSegment

logger = logging.getLogger(__name__)

# Lower-cased substrings that identify a size rejection or a billing problem
# in the service's error message.
_SIZE_LIMIT_MARKERS = ("413", "too large", "maximum content size", "size limit")
_QUOTA_MARKERS = ("quota", "billing", "credit")

_MESSAGES: dict[FailureKind, str] = {
    FailureKind.PAYLOAD_TOO_LARGE: "Audio payload exceeds the speech-to-text size limit",
    FailureKind.RATE_LIMITED: (
        "Speech-to-text rate limit exceeded. Please wait a few minutes and reprocess the meeting"
    ),
    FailureKind.UNAUTHORIZED: (
        "OpenAI API key is invalid or expired. Please check OPENAI_API_KEY in your .env file"
    ),
    FailureKind.QUOTA_EXCEEDED: (
        "OpenAI account has insufficient credits or quota. "
        "Please check platform.openai.com/account/billing"
    ),
}


class SpeechToTextClient(Protocol):
    """Interface the chunk driver needs from a speech-to-text backend."""

    async def transcribe(self, audio_path: str) -> SpeechToTextResult: ...


def classify_failure(
    status_code: int | None,
    message: str | None = None,
    code: str | None = None,
) -> FailureKind:
    """Map an error response onto the five-way failure taxonomy.

    Pure function of its arguments. Status codes mostly take precedence, with
    one deliberate exception: the service reports exhausted credit as a 429
    with code ``insufficient_quota``, and that code is checked before the 429
    rule so it classifies as fatal ``quota_exceeded`` rather than a retryable
    rate limit. Keyword matching comes after the status rules because
    ordinary rate-limit messages link to the billing page.
    """
    text = (message or "").lower()
    if status_code == 413 or any(marker in text for marker in _SIZE_LIMIT_MARKERS):
        return FailureKind.PAYLOAD_TOO_LARGE
    if status_code == 401:
        return FailureKind.UNAUTHORIZED
    if status_code == 402 or code == "insufficient_quota":
        return FailureKind.QUOTA_EXCEEDED
    if status_code == 429:
        return FailureKind.RATE_LIMITED
    if any(marker in text for marker in _QUOTA_MARKERS):
        return FailureKind.QUOTA_EXCEEDED
    return FailureKind.UNKNOWN


def to_speech_to_text_error(exc: Exception) -> SpeechToTextError:
    """Wrap an arbitrary exception from the SDK in the matching typed error."""
    if isinstance(exc, SpeechToTextError):
        return exc
    status_code = getattr(exc, "status_code", None)
    code = getattr(exc, "code", None)
    message = getattr(exc, "message", None) or str(exc)
    kind = classify_failure(status_code, message, code if isinstance(code, str) else None)
    text = _MESSAGES.get(kind, f"Failed to transcribe audio: {message}")
    return ERROR_CLASSES[kind](text, status_code=status_code)


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read *name* from an SDK model or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def parse_verbose_response(response: Any) -> SpeechToTextResult:
    """Convert a ``verbose_json`` transcription response to a result."""
    segments = [
        TranscriptSegment(
            start=float(_field(seg, "start", 0.0)),
            end=float(_field(seg, "end", 0.0)),
            text=str(_field(seg, "text", "")).strip(),
        )
        for seg in (_field(response, "segments") or [])
    ]
    duration = _field(response, "duration")
    return SpeechToTextResult(
        text=str(_field(response, "text", "") or ""),
        language=_field(response, "language"),
        duration=float(duration) if duration is not None else None,
        segments=segments,
    )


class WhisperClient:
    """OpenAI transcription client with failure classification."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "whisper-1",
        language: str | None = "en",
        client: OpenAI | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.language = language
        self._client = client

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self.api_key:
                raise UnauthorizedError("OpenAI API key not configured")
            self._client = OpenAI(api_key=self.api_key, max_retries=0)
        return self._client

    def _transcribe_sync(self, audio_path: str) -> SpeechToTextResult:
        client = self._get_client()
        size_mb = os.path.getsize(audio_path) / (1024 * 1024)
        logger.info("Transcribing %s (%.2fMB)", audio_path, size_mb)

        kwargs: dict[str, Any] = {
            "model": self.model,
            "response_format": "verbose_json",
        }
        if self.language:
            kwargs["language"] = self.language

        try:
            with open(audio_path, "rb") as audio_file:
                response = client.audio.transcriptions.create(file=audio_file, **kwargs)
        except openai.OpenAIError as exc:
            error = to_speech_to_text_error(exc)
            logger.warning("Transcription of %s failed (%s): %s", audio_path, error.kind, exc)
            raise error from exc

        result = parse_verbose_response(response)
        logger.info("Transcription completed: %d characters", len(result.text))
        return result

    async def transcribe(self, audio_path: str) -> SpeechToTextResult:
        """Transcribe one audio file with a single request.

        The blocking SDK call runs in a worker thread; if the caller's
        deadline expires the thread's late result is simply discarded.

        Raises:
            SpeechToTextError: A typed subclass describing the failure.
        """
        return await asyncio.to_thread(self._transcribe_sync, audio_path)
