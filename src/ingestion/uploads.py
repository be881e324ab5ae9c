"""Validation and on-disk storage of uploaded meeting recordings."""

from __future__ import annotations

import os
import time
import uuid

# Audio MIME types accepted for upload. Files above the 25 MB service limit
# are fine: the pipeline chunks them.
ALLOWED_AUDIO_TYPES = {
    "audio/webm",
    "audio/wav",
    "audio/x-wav",
    "audio/wave",
    "audio/mp3",
    "audio/mpeg",
    "audio/mp4",
    "audio/m4a",
    "audio/x-m4a",
    "audio/ogg",
}

AUDIO_EXTENSIONS = {"webm", "wav", "mp3", "mp4", "m4a", "ogg"}


class UploadValidationError(ValueError):
    """The uploaded file cannot be accepted."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


def validate_audio_upload(content_type: str | None, size: int, max_bytes: int) -> None:
    """Reject unsupported MIME types, empty files and oversized files.

    Raises:
        UploadValidationError: 400 for bad type/empty file, 413 for too large.
    """
    mime = (content_type or "").split(";", 1)[0].strip().lower()
    if mime not in ALLOWED_AUDIO_TYPES:
        raise UploadValidationError(
            "Invalid file type. Allowed: webm, wav, mp3, mp4, m4a, ogg"
        )
    if size == 0:
        raise UploadValidationError("Audio file is empty")
    if size > max_bytes:
        raise UploadValidationError(
            f"File too large. Maximum size: {max_bytes // (1024 * 1024)}MB",
            status_code=413,
        )


def save_audio_file(raw: bytes, filename: str | None, audio_dir: str) -> str:
    """Write an upload to *audio_dir* under a unique name and return its path."""
    os.makedirs(audio_dir, exist_ok=True)
    name = filename or ""
    ext = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    if ext not in AUDIO_EXTENSIONS:
        ext = "webm"
    safe_name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}.{ext}"
    path = os.path.join(audio_dir, safe_name)
    with open(path, "wb") as f:
        f.write(raw)
    return path
