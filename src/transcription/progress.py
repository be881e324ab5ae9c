"""In-memory latest-progress registry, polled by the API."""

from __future__ import annotations

import threading

from src.transcription.models import ProgressCallback, ProgressEvent


class ProgressTracker:
    """Keeps the most recent ProgressEvent per meeting."""

    def __init__(self) -> None:
        self._events: dict[str, ProgressEvent] = {}
        self._lock = threading.Lock()

    def update(self, meeting_id: str, event: ProgressEvent) -> None:
        with self._lock:
            self._events[meeting_id] = event

    def get(self, meeting_id: str) -> ProgressEvent | None:
        with self._lock:
            return self._events.get(meeting_id)

    def clear(self, meeting_id: str) -> None:
        with self._lock:
            self._events.pop(meeting_id, None)

    def callback_for(self, meeting_id: str) -> ProgressCallback:
        """Return a progress callback bound to *meeting_id*."""

        def _callback(event: ProgressEvent) -> None:
            self.update(meeting_id, event)

        return _callback


progress_tracker = ProgressTracker()
