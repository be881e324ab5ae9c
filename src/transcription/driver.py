"""Sequential chunk transcription with bounded retry and backoff."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from enum import StrEnum

from src.transcription.errors import (
    ChunkRetriesExhaustedError,
    NeedsRechunkError,
    PayloadTooLargeError,
    SpeechToTextError,
)
from src.transcription.models import (
    ChunkPlanEntry,
    ChunkTranscription,
    ProgressCallback,
    ProgressEvent,
)
from src.transcription.stt import SpeechToTextClient, to_speech_to_text_error

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[object]]


class ChunkState(StrEnum):
    """Lifecycle of a single chunk inside a drive."""

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def backoff_delay(attempt: int, base_seconds: float = 2.5) -> float:
    """Delay before retry *attempt* (1-based): 5s, 10s, 20s, 40s, 80s by default."""
    return (2**attempt) * base_seconds


class ChunkTranscriptionDriver:
    """Transcribes a chunk plan strictly in index order, one request at a time.

    Transient failures (rate limits, unknown errors) are retried up to
    ``max_retries`` times with exponential backoff. A payload-too-large
    rejection aborts the whole drive with NeedsRechunkError. Unauthorized and
    quota failures propagate immediately.
    """

    def __init__(
        self,
        client: SpeechToTextClient,
        max_retries: int = 5,
        backoff_base_seconds: float = 2.5,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.client = client
        self.max_retries = max_retries
        self.backoff_base_seconds = backoff_base_seconds
        self.sleep = sleep
        self.states: dict[int, ChunkState] = {}

    async def _attempt(self, chunk: ChunkPlanEntry) -> ChunkTranscription:
        self.states[chunk.index] = ChunkState.IN_FLIGHT
        try:
            result = await self.client.transcribe(chunk.path)
        except SpeechToTextError:
            raise
        except Exception as exc:
            raise to_speech_to_text_error(exc) from exc
        return ChunkTranscription(
            chunk=chunk,
            text=result.text,
            language=result.language,
            segments=list(result.segments),
        )

    async def transcribe_chunk(self, chunk: ChunkPlanEntry) -> ChunkTranscription:
        """Transcribe one chunk, retrying transient failures."""
        last_error: SpeechToTextError | None = None
        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                delay = backoff_delay(attempt, self.backoff_base_seconds)
                self.states[chunk.index] = ChunkState.RETRYING
                logger.info(
                    "Retrying chunk %d in %gs (attempt %d/%d)",
                    chunk.index,
                    delay,
                    attempt,
                    self.max_retries,
                )
                await self.sleep(delay)
            try:
                transcription = await self._attempt(chunk)
            except PayloadTooLargeError as exc:
                self.states[chunk.index] = ChunkState.FAILED
                logger.warning("Chunk %d too large - plan must be rebuilt", chunk.index)
                raise NeedsRechunkError(chunk.index) from exc
            except SpeechToTextError as exc:
                if not exc.is_transient:
                    self.states[chunk.index] = ChunkState.FAILED
                    logger.error("Chunk %d failed fatally: %s", chunk.index, exc)
                    raise
                last_error = exc
                logger.warning("Chunk %d attempt %d failed: %s", chunk.index, attempt + 1, exc)
                continue

            self.states[chunk.index] = ChunkState.SUCCEEDED
            if attempt:
                logger.info("Chunk %d transcribed on retry %d", chunk.index, attempt)
            return transcription

        self.states[chunk.index] = ChunkState.FAILED
        raise ChunkRetriesExhaustedError(chunk.index, self.max_retries, last_error) from last_error

    async def drive_all(
        self,
        chunks: Sequence[ChunkPlanEntry],
        on_progress: ProgressCallback | None = None,
    ) -> list[ChunkTranscription]:
        """Transcribe every chunk in index order.

        A ``transcribing`` progress event follows each chunk that succeeds, so
        ``current`` counts finished chunks.

        Raises:
            NeedsRechunkError: A chunk was rejected as too large.
            ChunkRetriesExhaustedError: A chunk kept failing transiently.
            SpeechToTextError: An unauthorized or quota failure.
        """
        ordered = sorted(chunks, key=lambda c: c.index)
        self.states = {c.index: ChunkState.PENDING for c in ordered}
        results: list[ChunkTranscription] = []
        total = len(ordered)

        for position, chunk in enumerate(ordered, start=1):
            logger.info(
                "Transcribing chunk %d/%d (%.1fs-%.1fs, %.2fMB)",
                position,
                total,
                chunk.start_time,
                chunk.end_time,
                chunk.size_mb,
            )
            results.append(await self.transcribe_chunk(chunk))
            if on_progress is not None:
                on_progress(
                    ProgressEvent(
                        status="transcribing",
                        current=position,
                        total=total,
                        chunk_index=chunk.index,
                    )
                )
        return results
