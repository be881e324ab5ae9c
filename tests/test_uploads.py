"""Tests for upload validation and storage."""

from __future__ import annotations

import os

import pytest

from src.ingestion.uploads import UploadValidationError, save_audio_file, validate_audio_upload
from src.pipeline_config import MB


class TestValidateAudioUpload:
    @pytest.mark.parametrize(
        "content_type", ["audio/webm", "audio/webm;codecs=opus", "audio/mpeg", "audio/x-m4a"]
    )
    def test_accepts_audio(self, content_type: str) -> None:
        validate_audio_upload(content_type, 1024, 100 * MB)

    @pytest.mark.parametrize("content_type", ["text/plain", "video/mp4", None])
    def test_rejects_other_types(self, content_type: str | None) -> None:
        with pytest.raises(UploadValidationError) as exc_info:
            validate_audio_upload(content_type, 1024, 100 * MB)
        assert exc_info.value.status_code == 400

    def test_rejects_empty(self) -> None:
        with pytest.raises(UploadValidationError, match="empty"):
            validate_audio_upload("audio/wav", 0, 100 * MB)

    def test_rejects_oversized_with_413(self) -> None:
        with pytest.raises(UploadValidationError) as exc_info:
            validate_audio_upload("audio/wav", 100 * MB + 1, 100 * MB)
        assert exc_info.value.status_code == 413
        assert "100MB" in str(exc_info.value)


class TestSaveAudioFile:
    def test_unique_names_keep_extension(self, tmp_path) -> None:
        a = save_audio_file(b"abc", "call.mp3", str(tmp_path))
        b = save_audio_file(b"abc", "call.mp3", str(tmp_path))
        assert a != b
        assert a.endswith(".mp3")
        with open(a, "rb") as f:
            assert f.read() == b"abc"

    def test_unknown_extension_defaults_to_webm(self, tmp_path) -> None:
        path = save_audio_file(b"abc", "recording", str(tmp_path / "audio"))
        assert path.endswith(".webm")
        assert os.path.isdir(tmp_path / "audio")
