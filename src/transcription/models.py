"""Data models for the audio transcription pipeline."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from src.pipeline_config import ProcessingStatus


@dataclass
class AudioProbe:
    """Metadata reported by the transcoder for a file."""

    size_bytes: int
    duration_seconds: float | None = None


@dataclass
class ChunkPlanEntry:
    """One materialised chunk of a recording.

    ``start_time``/``end_time`` are the chunk's contribution to the global
    timeline and never overlap across a plan. ``source_start`` is where the
    materialised file actually begins, which is up to the overlap earlier than
    ``start_time`` for every chunk but the first.
    """

    index: int
    path: str
    start_time: float
    end_time: float
    duration: float
    size_bytes: int = 0
    source_start: float = 0.0

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)


@dataclass
class TranscriptSegment:
    """A timed span of recognised text."""

    start: float
    end: float
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"start": self.start, "end": self.end, "text": self.text}


@dataclass
class SpeechToTextResult:
    """Text, language and segments recognised in a single audio file."""

    text: str
    language: str | None = None
    duration: float | None = None
    segments: list[TranscriptSegment] = field(default_factory=list)


@dataclass
class ChunkTranscription:
    """STT result for a single chunk; segment times are chunk-local."""

    chunk: ChunkPlanEntry
    text: str
    language: str | None = None
    segments: list[TranscriptSegment] = field(default_factory=list)


@dataclass
class MergedTranscript:
    """Continuous transcript with segment times on the recording's timeline."""

    text: str
    language: str
    duration: float
    segments: list[TranscriptSegment] = field(default_factory=list)


@dataclass
class ProgressEvent:
    """Progress notification emitted at chunk boundaries and phase changes."""

    status: str
    current: int | None = None
    total: int | None = None
    chunk_index: int | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "current": self.current,
            "total": self.total,
            "chunk_index": self.chunk_index,
            "message": self.message,
        }


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class ProcessingOutcome:
    """Terminal result of processing one meeting."""

    meeting_id: str
    status: ProcessingStatus
    transcript: MergedTranscript | None = None
    error_reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is ProcessingStatus.SUCCEEDED
