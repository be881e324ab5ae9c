"""Pydantic request/response schemas for the meeting transcription API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from src.pipeline_config import ProcessingStatus


class TranscriptSegmentModel(BaseModel):
    """One timestamped span of the merged transcript."""

    start: float
    end: float
    text: str


class MeetingSummary(BaseModel):
    """Summary representation of a meeting for list views."""

    id: str
    title: str
    date: str | None = None
    processing_status: ProcessingStatus = ProcessingStatus.IN_PROGRESS
    error_reason: str | None = None
    duration_seconds: int | None = None
    created_at: str | None = None


class MeetingDetail(MeetingSummary):
    """Full meeting detail including the transcript once processing succeeded."""

    audio_path: str | None = None
    raw_transcript: str | None = None
    transcript_segments: list[TranscriptSegmentModel] = []
    language: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> MeetingDetail:
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "Untitled Meeting",
            date=row.get("date"),
            processing_status=row.get("processing_status") or ProcessingStatus.IN_PROGRESS,
            error_reason=row.get("error_reason"),
            duration_seconds=row.get("duration_seconds"),
            created_at=row.get("created_at"),
            audio_path=row.get("audio_path"),
            raw_transcript=row.get("raw_transcript"),
            transcript_segments=row.get("transcript_segments") or [],
            language=row.get("language"),
            updated_at=row.get("updated_at"),
        )


class MeetingCreatedResponse(BaseModel):
    """Response body for POST /api/meetings; processing continues in the background."""

    meeting_id: str
    title: str
    processing_status: ProcessingStatus = ProcessingStatus.IN_PROGRESS


class ReprocessResponse(BaseModel):
    """Response body for POST /api/meetings/{id}/reprocess."""

    message: str
    meeting: MeetingDetail


class ProgressResponse(BaseModel):
    """Latest in-process progress for a meeting."""

    meeting_id: str
    status: str
    current: int | None = None
    total: int | None = None
    chunk_index: int | None = None
    message: str | None = None
