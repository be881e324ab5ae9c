"""Render a merged transcript as Markdown with per-segment timestamps."""

from __future__ import annotations

from collections.abc import Sequence

from src.transcription.models import TranscriptSegment


def format_duration(seconds: float) -> str:
    """Format seconds as ``1h 2m 3s``, ``2m 3s`` or ``3s``."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_timestamp(seconds: float) -> str:
    """Format seconds as ``MM:SS`` (minutes are not wrapped at the hour)."""
    total = int(seconds)
    return f"{total // 60:02d}:{total % 60:02d}"


def render_markdown(
    text: str,
    segments: Sequence[TranscriptSegment] = (),
    *,
    title: str | None = None,
    date: str | None = None,
    duration: float | None = None,
) -> str:
    """Build a Markdown transcript document.

    Segments are listed with ``**[MM:SS]**`` prefixes; without segments the
    plain transcript text is used.
    """
    lines = [
        f"# {title or 'Meeting Transcript'}",
        "",
        f"**Date:** {date or 'N/A'}",
        f"**Duration:** {format_duration(duration) if duration else 'N/A'}",
        "",
        "---",
        "",
    ]
    if segments:
        lines += ["## Transcript with Timestamps", ""]
        for seg in segments:
            lines += [f"**[{format_timestamp(seg.start)}]** {seg.text}", ""]
    else:
        lines += ["## Transcript", "", text, ""]
    return "\n".join(lines)
