"""Tests for the stuck-meeting cleanup script."""

from __future__ import annotations

from unittest.mock import MagicMock

from scripts.fix_stuck_meetings import fix_stuck_meetings, stuck_reason


class TestStuckReason:
    def test_no_audio(self) -> None:
        assert stuck_reason(None) == "No audio file associated with meeting"

    def test_missing_file(self, tmp_path) -> None:
        assert stuck_reason(str(tmp_path / "gone.webm")) == "Audio file not found"

    def test_empty_file(self, tmp_path) -> None:
        audio = tmp_path / "empty.webm"
        audio.write_bytes(b"")
        assert stuck_reason(str(audio)) == "Audio file is empty (0 bytes)"

    def test_intact_file(self, tmp_path) -> None:
        audio = tmp_path / "ok.webm"
        audio.write_bytes(b"\0" * 10)
        assert stuck_reason(str(audio)) == "Processing failed - try Reprocess Meeting"


class TestFixStuckMeetings:
    def test_marks_each_stuck_meeting_failed(self) -> None:
        store = MagicMock()
        store.find_stuck_meetings.return_value = [
            {"id": "1", "title": "A", "audio_path": None},
            {"id": "2", "title": "B", "audio_path": "/nonexistent/b.webm"},
        ]

        fixed = fix_stuck_meetings(store, older_than_minutes=30)

        assert len(fixed) == 2
        store.record_failure.assert_any_call("1", "No audio file associated with meeting")
        store.record_failure.assert_any_call("2", "Audio file not found")

    def test_dry_run_writes_nothing(self) -> None:
        store = MagicMock()
        store.find_stuck_meetings.return_value = [{"id": "1", "title": "A", "audio_path": None}]

        fix_stuck_meetings(store, dry_run=True)

        store.record_failure.assert_not_called()
