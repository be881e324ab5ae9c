"""Mark meetings left ``in_progress`` by a crashed or restarted server as failed."""

import argparse
import os
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.ingestion.storage import MeetingStore
from src.logging_config import configure_logging


def stuck_reason(audio_path: str | None) -> str:
    """Human-readable failure reason based on the state of the stored recording."""
    if not audio_path:
        return "No audio file associated with meeting"
    try:
        size = os.path.getsize(audio_path)
    except OSError:
        return "Audio file not found"
    if size == 0:
        return "Audio file is empty (0 bytes)"
    return "Processing failed - try Reprocess Meeting"


def fix_stuck_meetings(
    store: MeetingStore,
    older_than_minutes: int = 60,
    dry_run: bool = False,
) -> list[dict[str, Any]]:
    """Fail every meeting still in progress after *older_than_minutes*.

    Returns the meetings that were (or, with *dry_run*, would be) marked.
    """
    cutoff = datetime.now(UTC) - timedelta(minutes=older_than_minutes)
    stuck = store.find_stuck_meetings(cutoff)
    print(f"Found {len(stuck)} stuck meetings")

    for meeting in stuck:
        reason = stuck_reason(meeting.get("audio_path"))
        print(f"  {meeting['id']}: {meeting.get('title')!r} (created {meeting.get('created_at')})")
        if dry_run:
            print(f"    would mark as failed: {reason}")
            continue
        store.record_failure(str(meeting["id"]), reason)
        print(f"    marked as failed: {reason}")

    return stuck


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--older-than-minutes",
        type=int,
        default=60,
        help="Only touch meetings not updated for this many minutes",
    )
    parser.add_argument("--dry-run", action="store_true", help="Report without writing")
    args = parser.parse_args()

    configure_logging()
    fixed = fix_stuck_meetings(MeetingStore(), args.older_than_minutes, args.dry_run)
    if fixed and not args.dry_run:
        print("\nUse the reprocess endpoint to retry meetings whose recording is intact.")
