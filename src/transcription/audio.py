"""ffmpeg/ffprobe wrapper: probe, transcode to the canonical waveform, cut sub-clips.

Every call runs the binary as an asyncio subprocess so the pipeline can be
cancelled while ffmpeg is working; cancellation kills the child process.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Protocol

from src.transcription.errors import AudioProcessingError
from src.transcription.models import AudioProbe

logger = logging.getLogger(__name__)


class Transcoder(Protocol):
    """Interface the planner and processor need from an audio tool."""

    async def probe(self, path: str) -> AudioProbe: ...

    async def transcode(self, input_path: str, output_path: str) -> str: ...

    async def extract_range(
        self,
        input_path: str,
        output_path: str,
        start_seconds: float,
        duration_seconds: float,
    ) -> str: ...


def _canonical_args(sample_rate: int) -> list[str]:
    """Output options for mono 16-bit PCM WAV at *sample_rate*."""
    return ["-ac", "1", "-ar", str(sample_rate), "-acodec", "pcm_s16le", "-f", "wav"]


def parse_probe_output(stdout: str, size_bytes: int) -> AudioProbe:
    """Parse ``ffprobe -of json`` output into an AudioProbe.

    Duration is ``None`` when the container does not report one (common for
    browser-recorded webm before conversion).
    """
    try:
        data = json.loads(stdout or "{}")
    except json.JSONDecodeError as exc:
        raise AudioProcessingError(f"Unreadable ffprobe output: {exc}") from exc

    fmt = data.get("format", {})
    duration: float | None = None
    raw = fmt.get("duration")
    if raw not in (None, "", "N/A"):
        try:
            duration = float(raw)
        except (TypeError, ValueError):
            duration = None
    if duration is not None and duration <= 0:
        duration = None
    return AudioProbe(size_bytes=size_bytes, duration_seconds=duration)


class FFmpegTranscoder:
    """Transcoder backed by the ffmpeg and ffprobe command-line tools."""

    def __init__(
        self,
        ffmpeg_binary: str = "ffmpeg",
        ffprobe_binary: str = "ffprobe",
        sample_rate: int = 16000,
    ) -> None:
        self.ffmpeg_binary = ffmpeg_binary
        self.ffprobe_binary = ffprobe_binary
        self.sample_rate = sample_rate

    async def _run(self, cmd: list[str]) -> str:
        """Run *cmd* and return stdout; raise AudioProcessingError on failure."""
        logger.debug("Running: %s", " ".join(cmd))
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise AudioProcessingError(f"{cmd[0]} is not installed or not in PATH") from exc

        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise

        if proc.returncode != 0:
            detail = stderr.decode(errors="ignore").strip().splitlines()
            tail = detail[-1] if detail else f"exit code {proc.returncode}"
            raise AudioProcessingError(f"{os.path.basename(cmd[0])} failed: {tail}")
        return stdout.decode(errors="ignore")

    async def probe(self, path: str) -> AudioProbe:
        if not os.path.exists(path):
            raise AudioProcessingError(f"Audio file not found: {path}")
        stdout = await self._run(
            [
                self.ffprobe_binary,
                "-v",
                "error",
                "-show_entries",
                "format=duration",
                "-of",
                "json",
                path,
            ]
        )
        return parse_probe_output(stdout, os.path.getsize(path))

    async def transcode(self, input_path: str, output_path: str) -> str:
        await self._run(
            [
                self.ffmpeg_binary,
                "-nostdin",
                "-y",
                "-i",
                input_path,
                *_canonical_args(self.sample_rate),
                output_path,
            ]
        )
        logger.info("Converted %s -> %s", input_path, output_path)
        return output_path

    async def extract_range(
        self,
        input_path: str,
        output_path: str,
        start_seconds: float,
        duration_seconds: float,
    ) -> str:
        await self._run(
            [
                self.ffmpeg_binary,
                "-nostdin",
                "-y",
                "-ss",
                f"{start_seconds:.3f}",
                "-t",
                f"{duration_seconds:.3f}",
                "-i",
                input_path,
                *_canonical_args(self.sample_rate),
                output_path,
            ]
        )
        return output_path
