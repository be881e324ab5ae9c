from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    openai_api_key: str = ""

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    # Speech-to-text
    whisper_model: str = "whisper-1"
    transcription_language: str = "en"

    # Transcoder binaries (resolved through PATH when not absolute)
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"
    sample_rate: int = 16000

    # Storage
    audio_dir: str = "storage/audio"
    work_dir: str = "storage/chunks"
    max_upload_mb: int = 100

    # Chunking / retry policy
    chunk_duration_seconds: float = 600.0
    reduced_chunk_duration_seconds: float = 300.0
    large_file_chunk_duration_seconds: float = 300.0
    chunk_overlap_seconds: float = 2.0
    chunking_threshold_mb: float = 24.0  # service ceiling is 25 MB
    large_file_threshold_mb: float = 50.0
    max_chunk_retries: int = 5
    retry_backoff_base_seconds: float = 2.5

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
