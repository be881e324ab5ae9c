"""Tests for settings, PipelineConfig, status enums and logging setup."""

from __future__ import annotations

import logging

import pytest

from src.config import Settings
from src.logging_config import configure_logging
from src.pipeline_config import MB, FailureKind, PipelineConfig, ProcessingStatus

# ---------------------------------------------------------------------------
# Enum tests
# ---------------------------------------------------------------------------


class TestProcessingStatus:
    def test_values(self) -> None:
        assert ProcessingStatus.IN_PROGRESS.value == "in_progress"
        assert ProcessingStatus.SUCCEEDED.value == "succeeded"
        assert ProcessingStatus.FAILED.value == "failed"

    def test_from_string(self) -> None:
        assert ProcessingStatus("failed") is ProcessingStatus.FAILED

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            ProcessingStatus("pending")

    def test_is_str_subclass(self) -> None:
        """Enum values behave as plain strings for JSON serialization."""
        assert isinstance(ProcessingStatus.SUCCEEDED, str)


class TestFailureKind:
    def test_every_kind_has_one_policy(self) -> None:
        for kind in FailureKind:
            assert not (kind.is_transient and kind.is_fatal)


# ---------------------------------------------------------------------------
# PipelineConfig tests
# ---------------------------------------------------------------------------


class TestPipelineConfig:
    def test_defaults(self) -> None:
        cfg = PipelineConfig()
        assert cfg.chunk_duration_seconds == 600.0
        assert cfg.reduced_chunk_duration_seconds == 300.0
        assert cfg.chunk_overlap_seconds == 2.0
        assert cfg.chunking_threshold_bytes == 24 * MB
        assert cfg.max_chunk_retries == 5

    def test_immutable(self) -> None:
        cfg = PipelineConfig()
        with pytest.raises(AttributeError):
            cfg.max_chunk_retries = 1  # type: ignore[misc]

    def test_from_settings(self) -> None:
        s = Settings(
            _env_file=None,  # type: ignore[call-arg]
            chunk_duration_seconds=480.0,
            chunking_threshold_mb=10.0,
            max_chunk_retries=2,
            work_dir="/tmp/chunks",
        )
        cfg = PipelineConfig.from_settings(s)
        assert cfg.chunk_duration_seconds == 480.0
        assert cfg.chunking_threshold_bytes == 10 * MB
        assert cfg.max_chunk_retries == 2
        assert cfg.work_dir == "/tmp/chunks"


class TestSettings:
    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_UPLOAD_MB", "250")
        monkeypatch.setenv("WHISPER_MODEL", "gpt-4o-transcribe")
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.max_upload_mb == 250
        assert s.whisper_model == "gpt-4o-transcribe"


def test_configure_logging_sets_level() -> None:
    configure_logging("DEBUG")
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING
    configure_logging("INFO")
    assert logging.getLogger().level == logging.INFO
