"""Run the meeting transcription API under uvicorn."""

import argparse
import sys
from pathlib import Path

import uvicorn

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import settings
from src.logging_config import configure_logging

APP = "src.api.main:app"


def serve(host: str | None = None, port: int | None = None, reload: bool = False) -> None:
    """Start the API server, defaulting to the configured host and port."""
    configure_logging()
    uvicorn.run(
        APP,
        host=host or settings.api_host,
        port=port or settings.api_port,
        log_level=settings.log_level.lower(),
        reload=reload,
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--host", help=f"Bind address (default: {settings.api_host})")
    parser.add_argument("--port", type=int, help=f"Bind port (default: {settings.api_port})")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes")
    args = parser.parse_args()

    serve(args.host, args.port, args.reload)
