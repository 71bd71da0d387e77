"""Data-access helpers for ``VideoProcessingJob`` rows (the job store).

Every helper opens its own short-lived session, so callers never hold a
session across slow media operations.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from video_pipeline.db.database import SessionLocal
from video_pipeline.exceptions import InvalidJobTransitionError
from video_pipeline.models.job import ALLOWED_TRANSITIONS, JobStatus, JobType, VideoProcessingJob

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (JobStatus.PENDING, JobStatus.PROCESSING)


def create_job(segment_id: int, job_type: JobType | str) -> VideoProcessingJob:
    job_type = JobType.parse(job_type)
    db = SessionLocal()
    try:
        job = VideoProcessingJob(segment_id=segment_id, job_type=job_type.value, status=JobStatus.PENDING)
        db.add(job)
        db.commit()
        db.refresh(job)
        logger.info("Queued %s job %s for segment %s", job.job_type, job.id, segment_id)
        return job
    finally:
        db.close()


def create_jobs(specs: Iterable[tuple[int, JobType | str]]) -> list[VideoProcessingJob]:
    """Insert several pending jobs in one transaction. ``specs`` is (segment_id, job_type) pairs."""
    jobs = [
        VideoProcessingJob(segment_id=segment_id, job_type=JobType.parse(job_type).value, status=JobStatus.PENDING)
        for segment_id, job_type in specs
    ]
    if not jobs:
        return []
    db = SessionLocal()
    try:
        db.add_all(jobs)
        db.commit()
        for job in jobs:
            db.refresh(job)
        logger.info("Queued %d jobs: %s", len(jobs), ", ".join(f"{j.job_type}#{j.id}" for j in jobs))
        return jobs
    finally:
        db.close()


def get_job(job_id: int) -> Optional[VideoProcessingJob]:
    db = SessionLocal()
    try:
        return db.query(VideoProcessingJob).filter(VideoProcessingJob.id == job_id).first()
    finally:
        db.close()


def get_jobs_by_status(status: JobStatus) -> list[VideoProcessingJob]:
    db = SessionLocal()
    try:
        return (
            db.query(VideoProcessingJob)
            .filter(VideoProcessingJob.status == status)
            .order_by(VideoProcessingJob.created_at, VideoProcessingJob.id)
            .all()
        )
    finally:
        db.close()


def get_pending_jobs() -> list[VideoProcessingJob]:
    return get_jobs_by_status(JobStatus.PENDING)


def get_all_jobs() -> list[VideoProcessingJob]:
    db = SessionLocal()
    try:
        return db.query(VideoProcessingJob).order_by(VideoProcessingJob.created_at, VideoProcessingJob.id).all()
    finally:
        db.close()


def get_jobs_by_segment(segment_id: int) -> list[VideoProcessingJob]:
    db = SessionLocal()
    try:
        return (
            db.query(VideoProcessingJob)
            .filter(VideoProcessingJob.segment_id == segment_id)
            .order_by(VideoProcessingJob.created_at, VideoProcessingJob.id)
            .all()
        )
    finally:
        db.close()


def has_active_job(segment_id: int, job_type: JobType | str) -> bool:
    """True when a pending or processing job of this type exists for the segment."""
    job_type = JobType.parse(job_type)
    db = SessionLocal()
    try:
        job = (
            db.query(VideoProcessingJob)
            .filter(
                VideoProcessingJob.segment_id == segment_id,
                VideoProcessingJob.job_type == job_type.value,
                VideoProcessingJob.status.in_(ACTIVE_STATUSES),
            )
            .first()
        )
        return job is not None
    finally:
        db.close()


def _transition(job_id: int, status: JobStatus, error_message: str | None = None) -> Optional[VideoProcessingJob]:
    # Read-modify-write in one session. This is not a conditional UPDATE, so
    # two processes can still both claim the same pending job.
    db = SessionLocal()
    try:
        job = db.query(VideoProcessingJob).filter(VideoProcessingJob.id == job_id).first()
        if not job:
            logger.warning("Job %s not found while marking it %s", job_id, status.value)
            return None
        current = JobStatus(job.status)
        if status not in ALLOWED_TRANSITIONS[current]:
            raise InvalidJobTransitionError(
                f"Job {job_id} cannot move from {current.value} to {status.value}"
            )
        now = datetime.utcnow()
        job.status = status
        job.updated_at = now
        if status.is_terminal:
            job.completed_at = now
        if status == JobStatus.FAILED:
            job.error_message = error_message
        db.commit()
        db.refresh(job)
        logger.debug("Job %s status updated to %s", job_id, status.value)
        return job
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def mark_job_processing(job_id: int) -> Optional[VideoProcessingJob]:
    return _transition(job_id, JobStatus.PROCESSING)


def mark_job_completed(job_id: int) -> Optional[VideoProcessingJob]:
    return _transition(job_id, JobStatus.COMPLETED)


def mark_job_failed(job_id: int, error_message: str) -> Optional[VideoProcessingJob]:
    return _transition(job_id, JobStatus.FAILED, error_message=error_message)


def cancel_active_jobs_by_type(segment_id: int, job_type: JobType | str) -> list[VideoProcessingJob]:
    """Delete pending/processing jobs of one type for a segment and return them."""
    job_type = JobType.parse(job_type)
    db = SessionLocal()
    try:
        jobs = (
            db.query(VideoProcessingJob)
            .filter(
                VideoProcessingJob.segment_id == segment_id,
                VideoProcessingJob.job_type == job_type.value,
                VideoProcessingJob.status.in_(ACTIVE_STATUSES),
            )
            .all()
        )
        for job in jobs:
            db.delete(job)
        db.commit()
        return jobs
    finally:
        db.close()
