"""Meeting endpoints: upload, list, detail, reprocess, progress, export, delete."""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, File, Form, HTTPException, UploadFile
from fastapi.responses import PlainTextResponse, Response

from src.api.models import (
    MeetingCreatedResponse,
    MeetingDetail,
    MeetingSummary,
    ProgressResponse,
    ReprocessResponse,
)
from src.config import settings
from src.ingestion.storage import MeetingStore
from src.ingestion.uploads import UploadValidationError, save_audio_file, validate_audio_upload
from src.pipeline_config import MB, ProcessingStatus
from src.transcription.errors import (
    MeetingBusyError,
    MeetingNotFoundError,
    MissingRecordingError,
)
from src.transcription.formatting import render_markdown
from src.transcription.models import TranscriptSegment
from src.transcription.pipeline import get_processor
from src.transcription.progress import progress_tracker

logger = logging.getLogger(__name__)

router = APIRouter()


def get_meeting_store() -> MeetingStore:
    return get_processor().store


async def _run_processing(audio_path: str, meeting_id: str) -> None:
    """Background task; the last progress event stays readable after it ends."""
    progress_tracker.clear(meeting_id)
    callback = progress_tracker.callback_for(meeting_id)
    await get_processor().process(audio_path, meeting_id, on_progress=callback)


@router.get("/api/meetings", response_model=list[MeetingSummary])
async def list_meetings() -> list[MeetingDetail]:
    """List all meetings ordered by creation date (newest first)."""
    rows = await asyncio.to_thread(get_meeting_store().list_meetings)
    return [MeetingDetail.from_row(r) for r in rows]


@router.get("/api/meetings/{meeting_id}", response_model=MeetingDetail)
async def get_meeting(meeting_id: str) -> MeetingDetail:
    """Get a meeting with its processing status and, when done, its transcript."""
    row = await asyncio.to_thread(get_meeting_store().get_meeting, meeting_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Meeting not found")
    return MeetingDetail.from_row(row)


@router.post("/api/meetings", response_model=MeetingCreatedResponse, status_code=201)
async def create_meeting(
    background_tasks: BackgroundTasks,
    file: Annotated[UploadFile, File(...)],
    title: Annotated[str, Form()] = "Untitled Meeting",
    date: Annotated[str | None, Form()] = None,
) -> MeetingCreatedResponse:
    """Upload a meeting recording and start transcribing it in the background.

    Returns 201 as soon as the record exists; poll the detail or progress
    endpoint for the outcome.
    """
    raw = await file.read()
    try:
        validate_audio_upload(file.content_type, len(raw), settings.max_upload_mb * MB)
    except UploadValidationError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

    audio_path = await asyncio.to_thread(
        save_audio_file, raw, file.filename, settings.audio_dir
    )
    logger.info("Saved upload %s (%.2fMB) to %s", file.filename, len(raw) / MB, audio_path)

    meeting_id = await asyncio.to_thread(
        get_meeting_store().create_meeting, title, date, audio_path
    )
    background_tasks.add_task(_run_processing, audio_path, meeting_id)
    return MeetingCreatedResponse(meeting_id=meeting_id, title=title)


@router.post("/api/meetings/{meeting_id}/reprocess", response_model=ReprocessResponse)
async def reprocess_meeting(
    meeting_id: str, background_tasks: BackgroundTasks
) -> ReprocessResponse:
    """Clear the previous outcome and rerun the pipeline from the stored recording."""
    processor = get_processor()
    try:
        row = await asyncio.to_thread(processor.reset_for_reprocess, meeting_id)
    except MeetingNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Meeting not found") from exc
    except MissingRecordingError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except MeetingBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    background_tasks.add_task(_run_processing, str(row["audio_path"]), meeting_id)
    return ReprocessResponse(
        message="Reprocessing started",
        meeting=MeetingDetail.from_row(row),
    )


@router.get("/api/meetings/{meeting_id}/progress", response_model=ProgressResponse)
async def get_progress(meeting_id: str) -> ProgressResponse:
    """Latest progress event for a meeting being processed by this server."""
    event = progress_tracker.get(meeting_id)
    if event is None:
        raise HTTPException(status_code=404, detail="No processing in progress for this meeting")
    return ProgressResponse(meeting_id=meeting_id, **event.to_dict())


@router.get("/api/meetings/{meeting_id}/transcript.md", response_class=PlainTextResponse)
async def export_transcript(meeting_id: str) -> PlainTextResponse:
    """Download the transcript as Markdown with timestamped segments."""
    row = await asyncio.to_thread(get_meeting_store().get_meeting, meeting_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Meeting not found")
    if row.get("processing_status") != ProcessingStatus.SUCCEEDED:
        raise HTTPException(status_code=409, detail="Transcript not available")

    segments = [
        TranscriptSegment(start=s["start"], end=s["end"], text=s["text"])
        for s in row.get("transcript_segments") or []
    ]
    body = render_markdown(
        row.get("raw_transcript") or "",
        segments,
        title=row.get("title"),
        date=row.get("date"),
        duration=row.get("duration_seconds"),
    )
    return PlainTextResponse(
        body,
        media_type="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="meeting-{meeting_id}.md"'},
    )


@router.delete("/api/meetings/{meeting_id}", status_code=204)
async def delete_meeting(meeting_id: str) -> Response:
    deleted = await asyncio.to_thread(get_meeting_store().delete_meeting, meeting_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Meeting not found")
    progress_tracker.clear(meeting_id)
    return Response(status_code=204)
