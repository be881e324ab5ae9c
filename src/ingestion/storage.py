"""Supabase storage for meeting records and their processing outcome."""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

from supabase import Client, create_client

from src.pipeline_config import ProcessingStatus

if TYPE_CHECKING:
    from src.transcription.models import MergedTranscript

MEETINGS_TABLE = "meetings"


def get_supabase_client() -> Client:
    """Create and return a Supabase client from environment variables."""
    return create_client(
        os.getenv("SUPABASE_URL", ""),
        os.getenv("SUPABASE_KEY", ""),
    )


def _now() -> str:
    return datetime.now(UTC).isoformat()


class MeetingStore:
    """Reads and writes rows of the ``meetings`` table.

    Each write is an independent checkpoint; nothing spans the whole
    pipeline. A success write only lands while the row is still
    ``in_progress``, so a failure that was recorded first always wins, and
    the same holds for a failure arriving after a success.
    """

    def __init__(self, client: Client | None = None) -> None:
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    def create_meeting(
        self,
        title: str,
        date: str | None = None,
        audio_path: str | None = None,
    ) -> str:
        """Insert a meeting in the ``in_progress`` state and return its ID."""
        result = (
            self.client.table(MEETINGS_TABLE)
            .insert(
                {
                    "title": title,
                    "date": date,
                    "audio_path": audio_path,
                    "processing_status": ProcessingStatus.IN_PROGRESS.value,
                    "error_reason": None,
                    "duration_seconds": None,
                    "updated_at": _now(),
                }
            )
            .execute()
        )
        rows = cast(list[dict[str, Any]], result.data)
        return str(rows[0]["id"])

    def get_meeting(self, meeting_id: str) -> dict[str, Any] | None:
        result = self.client.table(MEETINGS_TABLE).select("*").eq("id", meeting_id).execute()
        rows = cast(list[dict[str, Any]], result.data)
        return rows[0] if rows else None

    def list_meetings(self) -> list[dict[str, Any]]:
        result = (
            self.client.table(MEETINGS_TABLE).select("*").order("created_at", desc=True).execute()
        )
        return cast(list[dict[str, Any]], result.data)

    def mark_in_progress(self, meeting_id: str) -> bool:
        """Clear a finished outcome so the meeting shows as processing.

        Returns False if the meeting is missing or already ``in_progress``.
        """
        result = (
            self.client.table(MEETINGS_TABLE)
            .update(
                {
                    "processing_status": ProcessingStatus.IN_PROGRESS.value,
                    "error_reason": None,
                    "raw_transcript": None,
                    "transcript_segments": None,
                    "language": None,
                    "duration_seconds": None,
                    "updated_at": _now(),
                }
            )
            .eq("id", meeting_id)
            .neq("processing_status", ProcessingStatus.IN_PROGRESS.value)
            .execute()
        )
        return bool(result.data)

    def record_success(self, meeting_id: str, transcript: MergedTranscript) -> bool:
        """Persist a transcript; returns False if the row is no longer in progress."""
        result = (
            self.client.table(MEETINGS_TABLE)
            .update(
                {
                    "processing_status": ProcessingStatus.SUCCEEDED.value,
                    "error_reason": None,
                    "raw_transcript": transcript.text,
                    "transcript_segments": [s.to_dict() for s in transcript.segments],
                    "language": transcript.language,
                    "duration_seconds": int(transcript.duration),
                    "updated_at": _now(),
                }
            )
            .eq("id", meeting_id)
            .eq("processing_status", ProcessingStatus.IN_PROGRESS.value)
            .execute()
        )
        return bool(result.data)

    def record_failure(self, meeting_id: str, reason: str) -> bool:
        """Mark an ``in_progress`` meeting as failed with a human-readable reason.

        Returns False if the row had already reached an outcome.
        """
        result = (
            self.client.table(MEETINGS_TABLE)
            .update(
                {
                    "processing_status": ProcessingStatus.FAILED.value,
                    "error_reason": reason,
                    "raw_transcript": None,
                    "transcript_segments": None,
                    "duration_seconds": 0,
                    "updated_at": _now(),
                }
            )
            .eq("id", meeting_id)
            .eq("processing_status", ProcessingStatus.IN_PROGRESS.value)
            .execute()
        )
        return bool(result.data)

    def delete_meeting(self, meeting_id: str) -> bool:
        """Delete a meeting; returns False if no row matched."""
        result = self.client.table(MEETINGS_TABLE).delete().eq("id", meeting_id).execute()
        return bool(result.data)

    def find_stuck_meetings(self, updated_before: datetime) -> list[dict[str, Any]]:
        """Meetings still ``in_progress`` whose last update predates *updated_before*."""
        result = (
            self.client.table(MEETINGS_TABLE)
            .select("id, title, audio_path, created_at, updated_at")
            .eq("processing_status", ProcessingStatus.IN_PROGRESS.value)
            .lt("updated_at", updated_before.isoformat())
            .order("created_at", desc=True)
            .execute()
        )
        return cast(list[dict[str, Any]], result.data)
