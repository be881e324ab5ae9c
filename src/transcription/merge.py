"""Merge per-chunk transcriptions into one transcript on the recording's timeline.

Timestamps are shifted by each chunk's *logical* start, not by where its
file begins, so the overlap prepended to a chunk does not move its words.
Words spoken inside an overlap can appear twice at a chunk boundary; that
duplication is a known limitation and is intentionally left in place.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from src.transcription.models import ChunkTranscription, MergedTranscript, TranscriptSegment

DEFAULT_LANGUAGE = "en"

_WHITESPACE_RE = re.compile(r"\s+")


def normalise_whitespace(text: str) -> str:
    """Collapse whitespace runs to single spaces and trim the ends."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def _shift(segments: Sequence[TranscriptSegment], offset: float) -> list[TranscriptSegment]:
    """Return **new** segments moved *offset* seconds later."""
    return [
        TranscriptSegment(start=s.start + offset, end=s.end + offset, text=s.text)
        for s in segments
    ]


def merge_transcripts(results: Sequence[ChunkTranscription]) -> MergedTranscript:
    """Concatenate chunk results (already in index order) into one transcript.

    Args:
        results: Chunk transcriptions ordered by chunk index.

    Returns:
        A MergedTranscript whose segments are in global time and whose
        duration is the latest chunk end time.
    """
    language = (results[0].language if results else None) or DEFAULT_LANGUAGE
    texts: list[str] = []
    segments: list[TranscriptSegment] = []
    duration = 0.0

    for result in results:
        texts.append(result.text)
        segments.extend(_shift(result.segments, result.chunk.start_time))
        duration = max(duration, result.chunk.end_time)

    return MergedTranscript(
        text=normalise_whitespace(" ".join(texts)),
        language=language,
        duration=duration,
        segments=segments,
    )


def combine_transcripts(parts: Sequence[MergedTranscript]) -> MergedTranscript:
    """Join consecutive merged transcripts whose segments are already global.

    ``combine_transcripts([merge_transcripts(a), merge_transcripts(b)])``
    equals ``merge_transcripts(a + b)``.
    """
    language = (parts[0].language if parts else None) or DEFAULT_LANGUAGE
    segments: list[TranscriptSegment] = []
    for part in parts:
        segments.extend(_shift(part.segments, 0.0))
    return MergedTranscript(
        text=normalise_whitespace(" ".join(p.text for p in parts)),
        language=language,
        duration=max((p.duration for p in parts), default=0.0),
        segments=segments,
    )
