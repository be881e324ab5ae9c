"""Chunk planning: split a canonical waveform into overlapping chunk files."""

from __future__ import annotations

import logging
import math
import os
from collections.abc import Iterable

from src.transcription.audio import Transcoder
from src.transcription.errors import AudioProcessingError
from src.transcription.models import ChunkPlanEntry

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_DURATION_SECONDS = 600.0
DEFAULT_OVERLAP_SECONDS = 2.0


def compute_windows(
    total_duration: float,
    chunk_duration: float = DEFAULT_CHUNK_DURATION_SECONDS,
    overlap: float = DEFAULT_OVERLAP_SECONDS,
) -> list[tuple[float, float, float]]:
    """Compute ``(start, end, source_start)`` windows covering ``[0, total_duration)``.

    Windows are contiguous and non-overlapping on the logical timeline. For
    every window but the first, ``source_start`` reaches back *overlap*
    seconds (never below zero) so a word straddling the cut is not clipped.

    Args:
        total_duration: Length of the waveform in seconds.
        chunk_duration: Logical window length in seconds.
        overlap: Seconds of audio to prepend to windows after the first.

    Returns:
        ``ceil(total_duration / chunk_duration)`` windows in timeline order.

    Raises:
        ValueError: If a duration is not positive or overlap is negative.
    """
    if chunk_duration <= 0:
        raise ValueError("chunk_duration must be > 0")
    if total_duration <= 0:
        raise ValueError("total_duration must be > 0")
    if overlap < 0:
        raise ValueError("overlap must be >= 0")

    count = math.ceil(total_duration / chunk_duration)
    windows: list[tuple[float, float, float]] = []
    for index in range(count):
        # Multiply rather than accumulate so float drift cannot add a window.
        start = index * chunk_duration
        end = min(start + chunk_duration, total_duration)
        source_start = max(0.0, start - overlap) if index > 0 else start
        windows.append((start, end, source_start))
    return windows


def chunk_filename(meeting_id: str, index: int, chunk_duration: float) -> str:
    """File name for a chunk; embeds the meeting id so meetings never collide."""
    return f"meeting-{meeting_id}_{int(chunk_duration)}s_chunk{index:03d}.wav"


def cleanup_files(paths: Iterable[str]) -> int:
    """Delete files, logging (never raising) on failure.

    Returns:
        Number of files removed.
    """
    removed = 0
    for path in paths:
        try:
            os.remove(path)
            removed += 1
            logger.debug("Cleaned up %s", path)
        except FileNotFoundError:
            continue
        except OSError as exc:
            logger.warning("Failed to delete %s: %s", path, exc)
    return removed


class ChunkPlanner:
    """Materialises chunk files for a waveform through a Transcoder."""

    def __init__(
        self,
        transcoder: Transcoder,
        overlap_seconds: float = DEFAULT_OVERLAP_SECONDS,
    ) -> None:
        self.transcoder = transcoder
        self.overlap_seconds = overlap_seconds

    async def plan(
        self,
        waveform_path: str,
        total_duration: float,
        chunk_duration: float = DEFAULT_CHUNK_DURATION_SECONDS,
        *,
        meeting_id: str,
        output_dir: str,
    ) -> list[ChunkPlanEntry]:
        """Split *waveform_path* into chunk files under *output_dir*.

        Either every window is materialised or none is: if the transcoder
        fails part-way the files already written are deleted and
        AudioProcessingError propagates.
        """
        windows = compute_windows(total_duration, chunk_duration, self.overlap_seconds)
        os.makedirs(output_dir, exist_ok=True)
        logger.info(
            "Planning %d chunks of %gs for meeting %s (%.1fs total)",
            len(windows),
            chunk_duration,
            meeting_id,
            total_duration,
        )

        entries: list[ChunkPlanEntry] = []
        written: list[str] = []
        try:
            for index, (start, end, source_start) in enumerate(windows):
                path = os.path.join(output_dir, chunk_filename(meeting_id, index, chunk_duration))
                written.append(path)
                logger.debug("Creating chunk %d: %.1fs to %.1fs", index, source_start, end)
                await self.transcoder.extract_range(
                    waveform_path, path, source_start, end - source_start
                )
                entry = ChunkPlanEntry(
                    index=index,
                    path=path,
                    start_time=start,
                    end_time=end,
                    duration=end - start,
                    size_bytes=os.path.getsize(path) if os.path.exists(path) else 0,
                    source_start=source_start,
                )
                entries.append(entry)
                logger.info("Chunk %d created: %.2fMB", index, entry.size_mb)
        except AudioProcessingError:
            cleanup_files(written)
            raise
        except OSError as exc:
            cleanup_files(written)
            raise AudioProcessingError(f"Failed to split audio: {exc}") from exc
        return entries
