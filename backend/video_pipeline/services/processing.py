"""Use-cases that put work on the video processing queue.

Every helper skips a (segment, job type) pair that already has a pending or
processing job, so callers can invoke them repeatedly without piling up
duplicates.  Nothing here runs a job; the worker picks them up.
"""

from __future__ import annotations

import logging
from typing import Optional

from video_pipeline.exceptions import MissingTranscriptError, MissingVideoError, SegmentNotFoundError, VideoNotInStorageError
from video_pipeline.models.job import JobType, VideoProcessingJob
from video_pipeline.models.segment import Segment
from video_pipeline.services import jobs as job_store
from video_pipeline.services.media import QUALITIES
from video_pipeline.services.segments import get_segment, get_segments
from video_pipeline.utils.storage import R2, get_storage, get_video_quality_key

logger = logging.getLogger(__name__)


def _require_segment(segment_id: int) -> Segment:
    segment = get_segment(segment_id)
    if not segment:
        raise SegmentNotFoundError()
    return segment


def _has_transcript(segment: Segment) -> bool:
    return bool((segment.transcripts or "").strip())


def queue_job(segment_id: int, job_type: JobType | str) -> Optional[VideoProcessingJob]:
    """Create a pending job unless one of the same type is already active."""
    job_type = JobType.parse(job_type)
    if job_store.has_active_job(segment_id, job_type):
        logger.info("Skipping %s job for segment %s: already queued", job_type.value, segment_id)
        return None
    return job_store.create_job(segment_id, job_type)


def queue_transcript_job(segment_id: int) -> Optional[VideoProcessingJob]:
    return queue_job(segment_id, JobType.TRANSCRIPT)


def queue_transcode_job(segment_id: int) -> Optional[VideoProcessingJob]:
    return queue_job(segment_id, JobType.TRANSCODE)


def queue_thumbnail_job(segment_id: int) -> Optional[VideoProcessingJob]:
    return queue_job(segment_id, JobType.THUMBNAIL)


def queue_vectorize_job(segment_id: int) -> Optional[VideoProcessingJob]:
    return queue_job(segment_id, JobType.VECTORIZE)


def queue_summary_job(segment_id: int) -> Optional[VideoProcessingJob]:
    segment = _require_segment(segment_id)
    if not _has_transcript(segment):
        raise MissingTranscriptError("Segment does not have a transcript")
    return queue_job(segment_id, JobType.SUMMARY)


async def _missing_job_types(segment: Segment) -> list[JobType]:
    """Job types a segment (whose video is known to be in storage) still needs."""
    storage, kind = get_storage()
    needed: list[JobType] = []

    if not _has_transcript(segment):
        needed.append(JobType.TRANSCRIPT)

    # Transcode and thumbnail only run against R2
    if kind == R2:
        for quality in QUALITIES:
            if not await storage.exists(get_video_quality_key(segment.video_key, quality.value)):
                needed.append(JobType.TRANSCODE)
                break
        # A cleared thumbnail_key means the thumbnail should be regenerated
        has_thumbnail = bool(segment.thumbnail_key) and await storage.exists(segment.thumbnail_key)
        if not has_thumbnail:
            needed.append(JobType.THUMBNAIL)

    if _has_transcript(segment) and not segment.summary:
        needed.append(JobType.SUMMARY)

    return [t for t in needed if not job_store.has_active_job(segment.id, t)]


async def queue_all_jobs_for_segment(segment_id: int) -> list[VideoProcessingJob]:
    """Queue every stage the segment is missing. Returns the created jobs."""
    segment = _require_segment(segment_id)
    if not segment.video_key:
        raise MissingVideoError("Segment does not have a video attached")
    storage, _kind = get_storage()
    if not await storage.exists(segment.video_key):
        raise VideoNotInStorageError(segment.video_key)

    needed = await _missing_job_types(segment)
    if not needed:
        logger.info("Segment %s has nothing left to process", segment_id)
        return []
    return job_store.create_jobs((segment_id, t) for t in needed)


async def queue_missing_jobs_for_all_segments() -> dict:
    """Scan every segment with a stored video and queue whatever it is missing."""
    storage, _kind = get_storage()
    specs: list[tuple[int, JobType]] = []
    segments_processed = 0
    skipped: list[int] = []

    for segment in get_segments():
        if not segment.video_key:
            continue
        if not await storage.exists(segment.video_key):
            logger.warning("Segment %s video %s is not in storage, skipping", segment.id, segment.video_key)
            skipped.append(segment.id)
            continue
        segments_processed += 1
        specs.extend((segment.id, t) for t in await _missing_job_types(segment))

    created = job_store.create_jobs(specs)
    logger.info(
        "Queued %d jobs across %d segments (%d skipped)", len(created), segments_processed, len(skipped)
    )
    return {
        "jobs_created": len(created),
        "segments_processed": segments_processed,
        "skipped_segments": skipped,
        "jobs": created,
    }


def queue_missing_summary_jobs() -> list[VideoProcessingJob]:
    specs = [
        (segment.id, JobType.SUMMARY)
        for segment in get_segments()
        if _has_transcript(segment) and not segment.summary
        and not job_store.has_active_job(segment.id, JobType.SUMMARY)
    ]
    return job_store.create_jobs(specs)


def queue_vectorize_all_segments() -> list[VideoProcessingJob]:
    specs = [
        (segment.id, JobType.VECTORIZE)
        for segment in get_segments()
        if _has_transcript(segment) and not job_store.has_active_job(segment.id, JobType.VECTORIZE)
    ]
    return job_store.create_jobs(specs)


def cancel_vectorize_job(segment_id: int) -> dict:
    cancelled = job_store.cancel_active_jobs_by_type(segment_id, JobType.VECTORIZE)
    if cancelled:
        logger.info("Cancelled %d vectorize job(s) for segment %s", len(cancelled), segment_id)
    return {"cancelled_count": len(cancelled), "jobs": cancelled}
