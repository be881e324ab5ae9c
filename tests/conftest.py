"""Shared fixtures for pipeline tests."""

from __future__ import annotations

import os
from typing import Any

import pytest
from fakes import FakeMeetingStore, RecordingSleep, touch

from src.pipeline_config import PipelineConfig


@pytest.fixture
def fake_store() -> FakeMeetingStore:
    return FakeMeetingStore()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def pipeline_config(tmp_path: Any) -> PipelineConfig:
    return PipelineConfig(work_dir=os.path.join(str(tmp_path), "work"))


@pytest.fixture
def audio_file(tmp_path: Any) -> str:
    path = os.path.join(str(tmp_path), "recording.webm")
    touch(path, 2048)
    return path
