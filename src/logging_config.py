"""Centralized logging configuration for the API server and scripts."""

from __future__ import annotations

import logging
import sys

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that flood DEBUG output with request internals.
_NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "python_multipart", "multipart")


def configure_logging(level: str | None = None, *, format_string: str | None = None) -> None:
    """Configure root logging once at process start.

    Args:
        level: Log level name (``"DEBUG"``, ``"INFO"`` ...). Defaults to
            ``settings.log_level``.
        format_string: Custom log format (uses ``DEFAULT_FORMAT`` if None).
    """
    if level is None:
        from src.config import settings

        level = settings.log_level

    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format=format_string or DEFAULT_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    logging.getLogger(__name__).debug(
        "Logging configured: level=%s", logging.getLevelName(log_level)
    )
