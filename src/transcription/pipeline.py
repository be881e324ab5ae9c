"""Meeting processing: transcode -> plan -> transcribe -> merge -> persist.

The whole unit of work for one meeting runs under a single adaptive
deadline. Every failure, the deadline included, ends with the meeting record
marked ``failed`` with a human-readable reason; nothing is retried
automatically.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from functools import lru_cache
from typing import Any

from src.config import settings
from src.ingestion.storage import MeetingStore
from src.pipeline_config import MB, PipelineConfig, ProcessingStatus
from src.transcription.audio import FFmpegTranscoder, Transcoder
from src.transcription.chunking import ChunkPlanner, cleanup_files
from src.transcription.driver import ChunkTranscriptionDriver, Sleep
from src.transcription.errors import (
    AudioProcessingError,
    DeadlineExceededError,
    MeetingBusyError,
    MeetingNotFoundError,
    MissingRecordingError,
    NeedsRechunkError,
)
from src.transcription.merge import merge_transcripts
from src.transcription.models import (
    ChunkPlanEntry,
    ChunkTranscription,
    MergedTranscript,
    ProcessingOutcome,
    ProgressCallback,
    ProgressEvent,
)
from src.transcription.stt import SpeechToTextClient, WhisperClient

logger = logging.getLogger(__name__)

DEFAULT_DEADLINE_SECONDS = 10 * 60

# (exclusive upper bound in MB, deadline in seconds), checked in order.
_DEADLINE_TIERS: tuple[tuple[float, float], ...] = (
    (10, 5 * 60),
    (30, 10 * 60),
    (50, 15 * 60),
    (80, 30 * 60),
)
_MAX_DEADLINE_SECONDS = 45 * 60


def processing_deadline_seconds(size_bytes: int | None) -> float:
    """Adaptive deadline from the original upload size.

    <10MB: 5 min, <30MB: 10 min, <50MB: 15 min, <80MB: 30 min, else 45 min.
    Unknown size falls back to 10 minutes.
    """
    if size_bytes is None:
        return DEFAULT_DEADLINE_SECONDS
    size_mb = size_bytes / MB
    for limit_mb, deadline in _DEADLINE_TIERS:
        if size_mb < limit_mb:
            return deadline
    return _MAX_DEADLINE_SECONDS


def initial_chunk_duration(size_bytes: int | None, config: PipelineConfig) -> float:
    """Very large originals start with the smaller chunk size."""
    if size_bytes is not None and size_bytes >= config.large_file_threshold_bytes:
        return config.large_file_chunk_duration_seconds
    return config.chunk_duration_seconds


def next_chunk_duration(current: float, config: PipelineConfig) -> float:
    """Chunk duration for the single re-chunk; always strictly smaller than *current*."""
    reduced = config.reduced_chunk_duration_seconds
    return reduced if reduced < current else current / 2


def _file_size(path: str) -> int | None:
    try:
        return os.path.getsize(path)
    except OSError as exc:
        logger.warning("Could not determine size of %s: %s", path, exc)
        return None


def _noop_progress(event: ProgressEvent) -> None:
    pass


class MeetingProcessor:
    """Runs the transcription pipeline for one meeting at a time per call.

    Collaborators are injected; concurrent calls for different meetings share
    nothing but the record store.
    """

    def __init__(
        self,
        store: MeetingStore,
        transcoder: Transcoder,
        stt_client: SpeechToTextClient,
        config: PipelineConfig | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.store = store
        self.transcoder = transcoder
        self.stt_client = stt_client
        self.config = config or PipelineConfig()
        self.sleep = sleep
        self.planner = ChunkPlanner(transcoder, overlap_seconds=self.config.chunk_overlap_seconds)

    def _driver(self) -> ChunkTranscriptionDriver:
        return ChunkTranscriptionDriver(
            self.stt_client,
            max_retries=self.config.max_chunk_retries,
            backoff_base_seconds=self.config.retry_backoff_base_seconds,
            sleep=self.sleep,
        )

    def workspace_for(self, meeting_id: str) -> str:
        return os.path.join(self.config.work_dir, f"meeting-{meeting_id}")

    async def _drive_plan(
        self,
        waveform_path: str,
        duration: float,
        chunk_duration: float,
        meeting_id: str,
        workspace: str,
        artifacts: list[str],
        emit: ProgressCallback,
    ) -> list[ChunkTranscription]:
        chunks = await self.planner.plan(
            waveform_path,
            duration,
            chunk_duration,
            meeting_id=meeting_id,
            output_dir=workspace,
        )
        artifacts.extend(c.path for c in chunks)
        logger.info("Transcribing %d chunks for meeting %s", len(chunks), meeting_id)
        try:
            return await self._driver().drive_all(chunks, emit)
        except NeedsRechunkError:
            cleanup_files(c.path for c in chunks)
            raise

    async def _drive_with_rechunk(
        self,
        waveform_path: str,
        duration: float,
        chunk_duration: float,
        meeting_id: str,
        workspace: str,
        artifacts: list[str],
        emit: ProgressCallback,
    ) -> list[ChunkTranscription]:
        """Drive a plan; on an oversize chunk, re-plan smaller exactly once."""
        try:
            return await self._drive_plan(
                waveform_path, duration, chunk_duration, meeting_id, workspace, artifacts, emit
            )
        except NeedsRechunkError:
            smaller = next_chunk_duration(chunk_duration, self.config)
            logger.warning(
                "Chunks too large for meeting %s - re-chunking with %gs segments",
                meeting_id,
                smaller,
            )
            emit(ProgressEvent(status="processing", message="Re-chunking with smaller segments..."))

        # A second oversize rejection is terminal.
        return await self._drive_plan(
            waveform_path, duration, smaller, meeting_id, workspace, artifacts, emit
        )

    async def transcribe_recording(
        self,
        audio_path: str,
        meeting_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> MergedTranscript:
        """Produce a merged transcript for *audio_path*.

        Intermediate files (the canonical waveform and every chunk) are
        removed before returning, on success and on failure.
        """
        emit = on_progress or _noop_progress
        workspace = self.workspace_for(meeting_id)
        os.makedirs(workspace, exist_ok=True)
        artifacts: list[str] = []

        try:
            source = await self.transcoder.probe(audio_path)
            logger.info(
                "Meeting %s: source %.2fMB, duration %s",
                meeting_id,
                source.size_bytes / MB,
                f"{source.duration_seconds:.2f}s" if source.duration_seconds else "unknown",
            )

            emit(ProgressEvent(status="transcoding", message="Converting audio..."))
            waveform = os.path.join(workspace, f"meeting-{meeting_id}-converted.wav")
            artifacts.append(waveform)
            await self.transcoder.transcode(audio_path, waveform)

            converted = await self.transcoder.probe(waveform)
            duration = source.duration_seconds or converted.duration_seconds
            if not duration:
                raise AudioProcessingError(
                    "Could not determine audio duration from either source or converted file"
                )
            logger.info("Converted waveform: %.2fMB", converted.size_bytes / MB)

            results: list[ChunkTranscription] | None = None
            if converted.size_bytes <= self.config.chunking_threshold_bytes:
                logger.info("Waveform under threshold - transcribing directly")
                whole = ChunkPlanEntry(
                    index=0,
                    path=waveform,
                    start_time=0.0,
                    end_time=duration,
                    duration=duration,
                    size_bytes=converted.size_bytes,
                )
                try:
                    results = await self._driver().drive_all([whole], emit)
                except NeedsRechunkError:
                    logger.warning("Direct transcription rejected as too large - chunking")

            if results is None:
                emit(ProgressEvent(status="processing", message="Splitting audio..."))
                results = await self._drive_with_rechunk(
                    waveform,
                    duration,
                    initial_chunk_duration(source.size_bytes, self.config),
                    meeting_id,
                    workspace,
                    artifacts,
                    emit,
                )

            emit(ProgressEvent(status="merging", message="Merging transcripts..."))
            merged = merge_transcripts(results)
            logger.info(
                "Merged transcript: %d characters, %d segments",
                len(merged.text),
                len(merged.segments),
            )
            return merged
        finally:
            cleanup_files(artifacts)

    async def _run(
        self,
        audio_path: str,
        meeting_id: str,
        emit: ProgressCallback,
    ) -> ProcessingOutcome:
        transcript = await self.transcribe_recording(audio_path, meeting_id, emit)
        persisted = await asyncio.to_thread(self.store.record_success, meeting_id, transcript)
        if not persisted:
            logger.warning(
                "Meeting %s was no longer in progress; transcript not stored", meeting_id
            )
            return ProcessingOutcome(
                meeting_id=meeting_id,
                status=ProcessingStatus.FAILED,
                transcript=transcript,
                error_reason="Meeting was no longer in progress when the transcript completed",
            )
        emit(ProgressEvent(status="completed", message="Transcription complete"))
        return ProcessingOutcome(
            meeting_id=meeting_id, status=ProcessingStatus.SUCCEEDED, transcript=transcript
        )

    async def _fail(
        self,
        meeting_id: str,
        exc: BaseException,
        emit: ProgressCallback,
    ) -> ProcessingOutcome:
        reason = str(exc) or exc.__class__.__name__
        logger.error("Failed to process meeting %s: %s", meeting_id, reason)
        try:
            recorded = await asyncio.to_thread(self.store.record_failure, meeting_id, reason)
        except Exception:
            logger.exception("Failed to mark meeting %s with error", meeting_id)
        else:
            if not recorded:
                logger.warning(
                    "Meeting %s was no longer in progress; failure not stored", meeting_id
                )
        emit(ProgressEvent(status="failed", message=reason))
        return ProcessingOutcome(
            meeting_id=meeting_id, status=ProcessingStatus.FAILED, error_reason=reason
        )

    def _remove_workspace(self, meeting_id: str) -> None:
        workspace = self.workspace_for(meeting_id)
        try:
            shutil.rmtree(workspace)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Failed to remove workspace %s: %s", workspace, exc)

    async def process(
        self,
        audio_path: str,
        meeting_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> ProcessingOutcome:
        """Transcribe a meeting recording and persist the outcome.

        Never raises for pipeline failures: they are recorded on the meeting
        and returned as a ``failed`` outcome.
        """
        emit = on_progress or _noop_progress
        timeout = processing_deadline_seconds(_file_size(audio_path))
        logger.info("Processing meeting %s (timeout: %gs)", meeting_id, timeout)

        try:
            return await asyncio.wait_for(self._run(audio_path, meeting_id, emit), timeout)
        except TimeoutError:
            return await self._fail(meeting_id, DeadlineExceededError(timeout), emit)
        except Exception as exc:
            return await self._fail(meeting_id, exc, emit)
        finally:
            self._remove_workspace(meeting_id)

    def reset_for_reprocess(self, meeting_id: str) -> dict[str, Any]:
        """Clear a meeting's previous outcome and return the refreshed record.

        Raises:
            MeetingNotFoundError: No such meeting.
            MissingRecordingError: The meeting has no stored recording.
            MeetingBusyError: A run for the meeting is still in progress.
        """
        meeting = self.store.get_meeting(meeting_id)
        if meeting is None:
            raise MeetingNotFoundError(meeting_id)
        if not meeting.get("audio_path"):
            raise MissingRecordingError("No audio file associated with this meeting")
        logger.info("Clearing previous status for meeting %s before reprocessing", meeting_id)
        if not self.store.mark_in_progress(meeting_id):
            raise MeetingBusyError(
                "Meeting is already being processed. If the server restarted mid-run, "
                "mark it failed with scripts/fix_stuck_meetings.py first"
            )
        return self.store.get_meeting(meeting_id) or meeting

    async def reprocess(
        self,
        meeting_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> ProcessingOutcome:
        """Restart processing of an existing meeting from the original recording."""
        meeting = await asyncio.to_thread(self.reset_for_reprocess, meeting_id)
        return await self.process(str(meeting["audio_path"]), meeting_id, on_progress)


@lru_cache(maxsize=1)
def get_processor() -> MeetingProcessor:
    """Return the processor wired to the configured ffmpeg, OpenAI and Supabase."""
    return MeetingProcessor(
        store=MeetingStore(),
        transcoder=FFmpegTranscoder(
            ffmpeg_binary=settings.ffmpeg_binary,
            ffprobe_binary=settings.ffprobe_binary,
            sample_rate=settings.sample_rate,
        ),
        stt_client=WhisperClient(
            api_key=settings.openai_api_key,
            model=settings.whisper_model,
            language=settings.transcription_language or None,
        ),
        config=PipelineConfig.from_settings(settings),
    )
