"""Per-job-type handlers run by the video processing worker.

A handler receives the segment id, checks its preconditions before touching
any external service, performs the work and persists its effect on the
segment.  It returns a ``HandlerResult``; raising marks the job failed.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from video_pipeline.exceptions import (
    MediaOperationError,
    MissingTranscriptError,
    MissingVideoError,
    SegmentNotFoundError,
    UnsupportedStorageError,
    VideoNotInStorageError,
)
from video_pipeline.models.job import JobType
from video_pipeline.models.segment import Segment
from video_pipeline.services.llm import generate_summary_from_transcript
from video_pipeline.services.media import QUALITIES, extract_thumbnail, transcode_video
from video_pipeline.services.processing import queue_job
from video_pipeline.services.segments import edit_segment, get_segment
from video_pipeline.services.transcription import generate_transcript_from_video
from video_pipeline.services.vectorize import vectorize_segment
from video_pipeline.utils.storage import R2, get_storage, get_thumbnail_key, get_video_quality_key
from video_pipeline.utils.tempfiles import temp_files

logger = logging.getLogger(__name__)


@dataclass
class HandlerResult:
    details: dict = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


Handler = Callable[[int], Awaitable[HandlerResult]]


def _load_segment(segment_id: int) -> Segment:
    segment = get_segment(segment_id)
    if not segment:
        raise SegmentNotFoundError()
    return segment


async def handle_transcript_job(segment_id: int) -> HandlerResult:
    segment = _load_segment(segment_id)
    if not segment.video_key:
        raise MissingVideoError("This segment does not have a video attached")

    storage, _kind = get_storage()
    if not await storage.exists(segment.video_key):
        raise VideoNotInStorageError(segment.video_key)

    video_bytes = await storage.get_buffer(segment.video_key)
    transcript = await generate_transcript_from_video(video_bytes)
    edit_segment(segment_id, transcripts=transcript)

    result = HandlerResult(details={"transcript_length": len(transcript)})
    # The transcript is saved; a summary follow-up that cannot be queued is not a failure
    try:
        summary_job = queue_job(segment_id, JobType.SUMMARY)
        result.details["summary_job_id"] = summary_job.id if summary_job else None
    except Exception as e:
        logger.warning("Could not queue summary job for segment %s: %s", segment_id, e)
        result.warnings.append(f"Failed to queue summary job: {e}")
    return result


def _check_media_preconditions(segment_id: int, operation: str) -> Segment:
    # Backend first: on non-R2 storage these jobs fail whatever the segment
    _storage, kind = get_storage()
    if kind != R2:
        raise UnsupportedStorageError(f"{operation} is only supported with R2 storage")
    segment = _load_segment(segment_id)
    if not segment.video_key:
        raise MissingVideoError("Segment does not have a video attached")
    return segment


async def handle_transcode_job(segment_id: int) -> HandlerResult:
    segment = _check_media_preconditions(segment_id, "Video transcoding")
    storage, _kind = get_storage()

    try:
        if not await storage.exists(segment.video_key):
            raise VideoNotInStorageError(segment.video_key)

        video_bytes = await storage.get_buffer(segment.video_key)
        uploaded: dict[str, str] = {}
        with temp_files() as files:
            input_path = await asyncio.to_thread(files.new, "transcode_input", ".mp4", video_bytes)
            for quality in QUALITIES:
                output_path = files.new(f"transcode_{quality.value}", ".mp4")
                started = time.monotonic()
                await transcode_video(input_path, output_path, quality)
                data = await asyncio.to_thread(output_path.read_bytes)
                key = get_video_quality_key(segment.video_key, quality.value)
                await storage.upload(key, data, "video/mp4")
                uploaded[quality.value] = key
                logger.info(
                    "Segment %s: %s variant uploaded to %s in %.1fs",
                    segment_id, quality.value, key, time.monotonic() - started,
                )
    except Exception as e:
        raise MediaOperationError(f"Failed to transcode video: {e}") from e

    return HandlerResult(details={"uploaded": uploaded})


async def handle_thumbnail_job(segment_id: int) -> HandlerResult:
    segment = _check_media_preconditions(segment_id, "Thumbnail extraction")
    storage, _kind = get_storage()

    try:
        if not await storage.exists(segment.video_key):
            raise VideoNotInStorageError(segment.video_key)

        video_bytes = await storage.get_buffer(segment.video_key)
        with temp_files() as files:
            input_path = await asyncio.to_thread(files.new, "thumbnail_input", ".mp4", video_bytes)
            output_path = files.new("thumbnail", ".jpg")
            thumbnail = await extract_thumbnail(input_path, output_path, width=640, seek_time=1)

        key = get_thumbnail_key(segment.video_key)
        await storage.upload(key, thumbnail, "image/jpeg")
        edit_segment(segment_id, thumbnail_key=key)
    except Exception as e:
        raise MediaOperationError(f"Failed to extract thumbnail: {e}") from e

    return HandlerResult(details={"thumbnail_key": key, "size": len(thumbnail)})


async def handle_vectorize_job(segment_id: int) -> HandlerResult:
    _load_segment(segment_id)
    result = await vectorize_segment(segment_id)
    return HandlerResult(details={"chunks_created": result.chunks_created})


async def handle_summary_job(segment_id: int) -> HandlerResult:
    segment = _load_segment(segment_id)
    if not (segment.transcripts or "").strip():
        raise MissingTranscriptError(
            "Segment does not have a transcript - transcript required for summary generation"
        )
    summary = await generate_summary_from_transcript(segment.transcripts)
    edit_segment(segment_id, summary=summary)
    return HandlerResult(details={"summary_length": len(summary)})


HANDLERS: dict[JobType, Handler] = {
    JobType.TRANSCRIPT: handle_transcript_job,
    JobType.TRANSCODE: handle_transcode_job,
    JobType.THUMBNAIL: handle_thumbnail_job,
    JobType.VECTORIZE: handle_vectorize_job,
    JobType.SUMMARY: handle_summary_job,
}

_unhandled = set(JobType) - set(HANDLERS)
if _unhandled:
    raise RuntimeError(f"No handler registered for job type(s): {sorted(t.value for t in _unhandled)}")
