"""Tests for MeetingStore against a mocked Supabase client."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import MagicMock

from src.ingestion.storage import MEETINGS_TABLE, MeetingStore
from src.pipeline_config import ProcessingStatus
from src.transcription.models import MergedTranscript, TranscriptSegment


def _client(data: list | None = None) -> MagicMock:
    """Supabase mock whose every query chain returns the same builder."""
    client = MagicMock()
    builder = client.table.return_value
    for method in ("select", "insert", "update", "delete", "eq", "neq", "lt", "order"):
        getattr(builder, method).return_value = builder
    builder.execute.return_value = MagicMock(data=data if data is not None else [])
    return client


class TestCreateAndRead:
    def test_create_meeting_starts_in_progress(self) -> None:
        client = _client([{"id": 12}])
        store = MeetingStore(client)

        meeting_id = store.create_meeting("Standup", "2024-05-01", "storage/audio/a.webm")

        assert meeting_id == "12"
        client.table.assert_called_with(MEETINGS_TABLE)
        row = client.table.return_value.insert.call_args.args[0]
        assert row["processing_status"] == ProcessingStatus.IN_PROGRESS.value
        assert row["error_reason"] is None

    def test_get_meeting_missing(self) -> None:
        assert MeetingStore(_client([])).get_meeting("x") is None

    def test_list_meetings_newest_first(self) -> None:
        client = _client([{"id": "1"}])
        MeetingStore(client).list_meetings()
        client.table.return_value.order.assert_called_with("created_at", desc=True)


class TestOutcomeWrites:
    def test_record_success_is_conditional_on_in_progress(self) -> None:
        client = _client([{"id": "1"}])
        store = MeetingStore(client)
        transcript = MergedTranscript(
            text="hello",
            language="en",
            duration=61.7,
            segments=[TranscriptSegment(0.0, 1.0, "hello")],
        )

        assert store.record_success("1", transcript) is True

        builder = client.table.return_value
        payload = builder.update.call_args.args[0]
        assert payload["processing_status"] == ProcessingStatus.SUCCEEDED.value
        assert payload["raw_transcript"] == "hello"
        assert payload["duration_seconds"] == 61
        assert payload["transcript_segments"] == [{"start": 0.0, "end": 1.0, "text": "hello"}]
        builder.eq.assert_any_call("id", "1")
        builder.eq.assert_any_call("processing_status", ProcessingStatus.IN_PROGRESS.value)

    def test_record_success_reports_no_match(self) -> None:
        store = MeetingStore(_client([]))
        transcript = MergedTranscript(text="late", language="en", duration=10.0)
        assert store.record_success("1", transcript) is False

    def test_record_failure_zeroes_duration(self) -> None:
        client = _client([{"id": "1"}])
        MeetingStore(client).record_failure("1", "Processing timed out after 300s")

        payload = client.table.return_value.update.call_args.args[0]
        assert payload["processing_status"] == ProcessingStatus.FAILED.value
        assert payload["error_reason"] == "Processing timed out after 300s"
        assert payload["duration_seconds"] == 0
        assert payload["raw_transcript"] is None
        client.table.return_value.eq.assert_any_call(
            "processing_status", ProcessingStatus.IN_PROGRESS.value
        )

    def test_record_failure_skips_finished_meeting(self) -> None:
        store = MeetingStore(_client([]))
        assert store.record_failure("1", "Failed to transcribe chunk 0 after 5 retries") is False

    def test_mark_in_progress_clears_previous_outcome(self) -> None:
        client = _client([{"id": "1"}])
        assert MeetingStore(client).mark_in_progress("1") is True

        payload = client.table.return_value.update.call_args.args[0]
        assert payload["processing_status"] == ProcessingStatus.IN_PROGRESS.value
        assert payload["error_reason"] is None
        assert payload["raw_transcript"] is None
        client.table.return_value.neq.assert_called_with(
            "processing_status", ProcessingStatus.IN_PROGRESS.value
        )

    def test_mark_in_progress_refuses_running_meeting(self) -> None:
        assert MeetingStore(_client([])).mark_in_progress("1") is False


class TestHousekeeping:
    def test_delete_meeting(self) -> None:
        assert MeetingStore(_client([{"id": "1"}])).delete_meeting("1") is True
        assert MeetingStore(_client([])).delete_meeting("1") is False

    def test_find_stuck_meetings_filters_by_status_and_age(self) -> None:
        client = _client([{"id": "3", "audio_path": None}])
        cutoff = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

        rows = MeetingStore(client).find_stuck_meetings(cutoff)

        assert rows == [{"id": "3", "audio_path": None}]
        builder = client.table.return_value
        builder.eq.assert_called_with("processing_status", ProcessingStatus.IN_PROGRESS.value)
        builder.lt.assert_called_with("updated_at", cutoff.isoformat())
