"""Live end-to-end transcription against real ffmpeg and the OpenAI API.

# MANUAL RUN REQUIRED: needs ffmpeg on PATH and OPENAI_API_KEY in the environment.
# Run manually with: pytest -m expensive tests/test_live_transcription.py -v
"""

from __future__ import annotations

import asyncio
import os
import shutil
import subprocess

import pytest

from src.pipeline_config import PipelineConfig
from src.transcription.audio import FFmpegTranscoder
from src.transcription.pipeline import MeetingProcessor
from src.transcription.stt import WhisperClient

pytestmark = [
    pytest.mark.expensive,
    pytest.mark.skipif(shutil.which("ffmpeg") is None, reason="ffmpeg not installed"),
    pytest.mark.skipif(not os.getenv("OPENAI_API_KEY"), reason="OPENAI_API_KEY not set"),
]


def test_tone_transcribes_without_error(tmp_path) -> None:
    audio = tmp_path / "tone.mp3"
    subprocess.run(
        ["ffmpeg", "-y", "-f", "lavfi", "-i", "sine=frequency=440:duration=3", str(audio)],
        check=True,
        capture_output=True,
    )
    processor = MeetingProcessor(
        store=None,  # type: ignore[arg-type]
        transcoder=FFmpegTranscoder(),
        stt_client=WhisperClient(api_key=os.environ["OPENAI_API_KEY"]),
        config=PipelineConfig(work_dir=str(tmp_path / "work")),
    )

    transcript = asyncio.run(processor.transcribe_recording(str(audio), "live"))

    assert transcript.duration == pytest.approx(3.0, abs=0.2)
    assert transcript.language
