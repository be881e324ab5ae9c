"""Tests for the ffmpeg/ffprobe wrapper (subprocesses are mocked)."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.transcription.audio import FFmpegTranscoder, parse_probe_output
from src.transcription.errors import AudioProcessingError


def _proc(returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"") -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    return proc


class TestParseProbeOutput:
    def test_duration(self) -> None:
        probe = parse_probe_output('{"format": {"duration": "1800.250000"}}', 1024)
        assert probe.duration_seconds == 1800.25
        assert probe.size_bytes == 1024

    @pytest.mark.parametrize("raw", ['{"format": {"duration": "N/A"}}', '{"format": {}}', "{}"])
    def test_missing_duration(self, raw: str) -> None:
        assert parse_probe_output(raw, 10).duration_seconds is None

    def test_zero_duration_is_unknown(self) -> None:
        assert parse_probe_output('{"format": {"duration": "0"}}', 10).duration_seconds is None

    def test_garbage(self) -> None:
        with pytest.raises(AudioProcessingError):
            parse_probe_output("not json", 10)


class TestFFmpegTranscoder:
    def test_probe_missing_file(self, tmp_path) -> None:
        with pytest.raises(AudioProcessingError, match="not found"):
            asyncio.run(FFmpegTranscoder().probe(str(tmp_path / "nope.webm")))

    def test_probe_runs_ffprobe(self, tmp_path) -> None:
        audio = tmp_path / "a.webm"
        audio.write_bytes(b"\0" * 10)
        proc = _proc(stdout=b'{"format": {"duration": "12.5"}}')

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)) as run:
            probe = asyncio.run(FFmpegTranscoder(ffprobe_binary="ffprobe").probe(str(audio)))

        assert probe.duration_seconds == 12.5
        assert probe.size_bytes == 10
        assert run.call_args.args[0] == "ffprobe"

    def test_transcode_produces_canonical_waveform(self) -> None:
        proc = _proc()
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)) as run:
            asyncio.run(FFmpegTranscoder(sample_rate=16000).transcode("in.webm", "out.wav"))

        args = list(run.call_args.args)
        assert args[0] == "ffmpeg"
        assert args[args.index("-ac") + 1] == "1"
        assert args[args.index("-ar") + 1] == "16000"
        assert args[args.index("-acodec") + 1] == "pcm_s16le"
        assert args[-1] == "out.wav"

    def test_extract_range_seeks(self) -> None:
        proc = _proc()
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)) as run:
            asyncio.run(FFmpegTranscoder().extract_range("in.wav", "c.wav", 598.0, 602.0))

        args = list(run.call_args.args)
        assert args[args.index("-ss") + 1] == "598.000"
        assert args[args.index("-t") + 1] == "602.000"

    def test_nonzero_exit_raises_with_stderr_tail(self) -> None:
        proc = _proc(returncode=1, stderr=b"header\nInvalid data found when processing input\n")
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            with pytest.raises(AudioProcessingError, match="Invalid data found"):
                asyncio.run(FFmpegTranscoder().transcode("in.webm", "out.wav"))

    def test_missing_binary(self) -> None:
        with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError())):
            with pytest.raises(AudioProcessingError, match="not installed"):
                asyncio.run(FFmpegTranscoder(ffmpeg_binary="ffmpeg-missing").transcode("a", "b"))
