from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel

from ..exceptions import SegmentNotFoundError
from ..models.job import JobStatus, JobType, VideoProcessingJob
from ..services import jobs as job_store
from ..services import processing
from ..services.segments import get_segment
from ..services.vectorize import get_vectorization_status
from ..workers.video_processing import get_video_processing_worker, start_video_processing_worker

router = APIRouter()
logger = logging.getLogger(__name__)


class JobInfo(BaseModel):
    id: int
    segment_id: int
    job_type: str
    status: str
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    completed_at: datetime | None = None


class QueueResult(BaseModel):
    queued: int
    jobs: List[JobInfo]


class WorkerState(BaseModel):
    active: bool


def _to_info(job: VideoProcessingJob) -> JobInfo:
    return JobInfo(
        id=job.id,
        segment_id=job.segment_id,
        job_type=job.job_type,
        status=job.status_str,
        error_message=job.error_message,
        created_at=job.created_at,
        updated_at=job.updated_at,
        completed_at=job.completed_at,
    )


def _queued(jobs: list[VideoProcessingJob]) -> QueueResult:
    return QueueResult(queued=len(jobs), jobs=[_to_info(j) for j in jobs])


def _kick_worker() -> None:
    """Make sure the worker is polling; never fails the request."""
    try:
        start_video_processing_worker()
    except Exception as exc:
        logger.error("Failed to start video processing worker: %s", exc, exc_info=True)


@router.get("", response_model=List[JobInfo])
async def list_jobs(status_filter: Optional[JobStatus] = Query(None, alias="status")) -> List[JobInfo]:
    """Return all processing jobs, optionally only those in one status."""
    jobs = job_store.get_jobs_by_status(status_filter) if status_filter else job_store.get_all_jobs()
    return [_to_info(j) for j in jobs]


@router.get("/worker", response_model=WorkerState)
async def worker_state() -> WorkerState:
    return WorkerState(active=get_video_processing_worker().is_active())


@router.post("/worker/start", response_model=WorkerState)
async def start_worker() -> WorkerState:
    _kick_worker()
    return WorkerState(active=get_video_processing_worker().is_active())


@router.post("/worker/stop", response_model=WorkerState)
async def stop_worker() -> WorkerState:
    worker = get_video_processing_worker()
    worker.stop()
    return WorkerState(active=worker.is_active())


@router.post("/queue-missing")
async def queue_missing_jobs() -> dict:
    result = await processing.queue_missing_jobs_for_all_segments()
    if result["jobs_created"]:
        _kick_worker()
    return {
        "jobs_created": result["jobs_created"],
        "segments_processed": result["segments_processed"],
        "skipped_segments": result["skipped_segments"],
        "jobs": [_to_info(j) for j in result["jobs"]],
    }


@router.post("/queue-missing-summaries", response_model=QueueResult)
async def queue_missing_summaries() -> QueueResult:
    jobs = processing.queue_missing_summary_jobs()
    if jobs:
        _kick_worker()
    return _queued(jobs)


@router.post("/vectorize-all", response_model=QueueResult)
async def vectorize_all_segments() -> QueueResult:
    jobs = processing.queue_vectorize_all_segments()
    if jobs:
        _kick_worker()
    return _queued(jobs)


@router.get("/vectorization-status")
async def vectorization_status() -> dict:
    return get_vectorization_status()


@router.get("/segment/{segment_id}", response_model=List[JobInfo])
async def list_segment_jobs(segment_id: int) -> List[JobInfo]:
    return [_to_info(j) for j in job_store.get_jobs_by_segment(segment_id)]


@router.post("/segment/{segment_id}/all", response_model=QueueResult)
async def queue_all_segment_jobs(segment_id: int) -> QueueResult:
    jobs = await processing.queue_all_jobs_for_segment(segment_id)
    if jobs:
        _kick_worker()
    return _queued(jobs)


@router.delete("/segment/{segment_id}/vectorize")
async def cancel_vectorize(segment_id: int) -> dict:
    result = processing.cancel_vectorize_job(segment_id)
    return {"cancelled_count": result["cancelled_count"], "jobs": [_to_info(j) for j in result["jobs"]]}


@router.post("/segment/{segment_id}/{job_type}", response_model=QueueResult)
async def queue_segment_job(segment_id: int, job_type: str) -> QueueResult:
    """Queue a single job; an already active job of the same type is reused."""
    parsed = JobType.parse(job_type)
    if parsed == JobType.SUMMARY:
        job = processing.queue_summary_job(segment_id)
    else:
        if not get_segment(segment_id):
            raise SegmentNotFoundError()
        job = processing.queue_job(segment_id, parsed)
    if job:
        _kick_worker()
    return _queued([job] if job else [])


@router.get("/{job_id}", response_model=JobInfo)
async def get_job(job_id: int) -> JobInfo:
    """Return a single processing job by ID."""
    job = job_store.get_job(job_id)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return _to_info(job)
