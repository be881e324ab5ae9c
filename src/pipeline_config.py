"""Pipeline configuration: status/failure enums and the PipelineConfig dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.config import Settings

MB = 1024 * 1024


class ProcessingStatus(StrEnum):
    """Processing state stored on a meeting record."""

    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureKind(StrEnum):
    """Classification of a failed speech-to-text request."""

    PAYLOAD_TOO_LARGE = "payload_too_large"
    RATE_LIMITED = "rate_limited"
    UNAUTHORIZED = "unauthorized"
    QUOTA_EXCEEDED = "quota_exceeded"
    UNKNOWN = "unknown"

    @property
    def is_transient(self) -> bool:
        return self in (FailureKind.RATE_LIMITED, FailureKind.UNKNOWN)

    @property
    def is_fatal(self) -> bool:
        return self in (FailureKind.UNAUTHORIZED, FailureKind.QUOTA_EXCEEDED)


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable configuration for the transcription pipeline.

    Defaults mirror the production behaviour: 10-minute chunks with 2 seconds
    of overlap, a 24 MB direct-transcription threshold (the service rejects
    anything over 25 MB), five retries with exponential backoff and a single
    re-chunk down to 5-minute chunks.
    """

    chunk_duration_seconds: float = 600.0
    reduced_chunk_duration_seconds: float = 300.0
    large_file_chunk_duration_seconds: float = 300.0
    chunk_overlap_seconds: float = 2.0
    chunking_threshold_bytes: int = 24 * MB
    large_file_threshold_bytes: int = 50 * MB
    max_chunk_retries: int = 5
    retry_backoff_base_seconds: float = 2.5
    sample_rate: int = 16000
    work_dir: str = "storage/chunks"

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineConfig:
        """Build a config from application settings."""
        return cls(
            chunk_duration_seconds=settings.chunk_duration_seconds,
            reduced_chunk_duration_seconds=settings.reduced_chunk_duration_seconds,
            large_file_chunk_duration_seconds=settings.large_file_chunk_duration_seconds,
            chunk_overlap_seconds=settings.chunk_overlap_seconds,
            chunking_threshold_bytes=int(settings.chunking_threshold_mb * MB),
            large_file_threshold_bytes=int(settings.large_file_threshold_mb * MB),
            max_chunk_retries=settings.max_chunk_retries,
            retry_backoff_base_seconds=settings.retry_backoff_base_seconds,
            sample_rate=settings.sample_rate,
            work_dir=settings.work_dir,
        )
