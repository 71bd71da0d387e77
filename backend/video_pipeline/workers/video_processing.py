"""In-process background worker for video processing jobs.

The worker is a single asyncio task that polls the job store, runs pending
jobs one after the other through ``HANDLERS`` and records the outcome of each
job on its row.  It shares the event loop with the API when started from
there, or runs on its own via ``python -m video_pipeline.workers``.

Job claiming is a plain read-modify-write (mark processing, then re-fetch the
row before dispatch).  Nothing stops two processes from picking the same
pending job, so only one worker may run against a database.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from video_pipeline.config import settings
from video_pipeline.exceptions import JobNotFoundError
from video_pipeline.models.job import JobType
from video_pipeline.services.jobs import get_job, get_pending_jobs, mark_job_completed, mark_job_failed, mark_job_processing
from video_pipeline.workers.handlers import HANDLERS, HandlerResult

logger = logging.getLogger(__name__)

STARTED = "started"
COMPLETED = "completed"
FAILED = "failed"
WARNING = "warning"

_EVENT_LEVELS = {
    STARTED: logging.INFO,
    COMPLETED: logging.INFO,
    FAILED: logging.ERROR,
    WARNING: logging.WARNING,
}


@dataclass(frozen=True)
class JobEvent:
    kind: str
    job_id: int
    job_type: Optional[str] = None
    segment_id: Optional[int] = None
    duration: Optional[float] = None  # seconds since the job was claimed
    error: Optional[str] = None
    message: Optional[str] = None


JobEventListener = Callable[[JobEvent], None]


class VideoProcessingWorker:
    def __init__(self, idle_interval: Optional[float] = None, error_interval: Optional[float] = None):
        self.idle_interval = settings.WORKER_IDLE_INTERVAL if idle_interval is None else idle_interval
        self.error_interval = settings.WORKER_ERROR_INTERVAL if error_interval is None else error_interval
        self._running = False
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None
        self._listeners: list[JobEventListener] = []

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    def is_active(self) -> bool:
        return self._running

    def start(self) -> Optional[asyncio.Task]:
        """Launch the polling loop on the running event loop.

        Calling this while the loop is already running only logs; the
        existing task keeps running and ``None`` is returned.
        """
        if self._running:
            logger.info("Video processing worker is already running")
            return None

        loop = asyncio.get_running_loop()
        self._running = True
        self._stop_event = asyncio.Event()
        self._task = loop.create_task(self._run(), name="video-processing-worker")
        self._task.add_done_callback(self._on_task_done)
        logger.info("Video processing worker started")
        return self._task

    def stop(self) -> None:
        """Ask the loop to exit. The job in flight, if any, still finishes."""
        if self._stop_event is not None:
            self._stop_event.set()
        logger.info("Video processing worker stop requested")

    async def wait_closed(self) -> None:
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    def add_listener(self, listener: JobEventListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: JobEventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def _stop_requested(self) -> bool:
        return self._stop_event is not None and self._stop_event.is_set()

    async def _sleep(self, seconds: float) -> None:
        # Returns early when stop() is called
        if self._stop_event is None:
            await asyncio.sleep(seconds)
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _run(self) -> None:
        try:
            while not self._stop_requested():
                try:
                    attempted = await self.run_once()
                except Exception:
                    logger.exception("Error in video processing worker loop")
                    await self._sleep(self.error_interval)
                    continue
                if attempted == 0:
                    await self._sleep(self.idle_interval)
        finally:
            self._running = False
            logger.info("Video processing worker stopped")

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._running = False
        if task.cancelled():
            logger.warning("Video processing worker task was cancelled")
        elif task.exception() is not None:
            logger.error("Video processing worker crashed: %s", task.exception(), exc_info=task.exception())

    async def run_once(self) -> int:
        """Process every currently pending job; return how many were attempted."""
        pending = get_pending_jobs()
        attempted = 0
        for job in pending:
            if self._stop_requested():
                logger.info("Stop requested, leaving %d pending job(s) for later", len(pending) - attempted)
                break
            attempted += 1
            try:
                await self.process_job(job.id)
            except Exception as e:
                # Already recorded on the job row by process_job
                logger.error("Error processing job %s: %s", job.id, e)
        return attempted

    # ------------------------------------------------------------------
    # Single job
    # ------------------------------------------------------------------

    async def process_job(self, job_id: int) -> HandlerResult:
        started = time.monotonic()
        job_type: Optional[str] = None
        segment_id: Optional[int] = None
        try:
            mark_job_processing(job_id)
            job = get_job(job_id)
            if not job:
                raise JobNotFoundError(job_id)
            job_type, segment_id = job.job_type, job.segment_id
            self._emit(JobEvent(STARTED, job_id, job_type, segment_id))

            handler = HANDLERS[JobType.parse(job.job_type)]
            result = await handler(job.segment_id)
            mark_job_completed(job_id)
        except Exception as e:
            error_message = str(e)
            try:
                mark_job_failed(job_id, error_message)
            except Exception as mark_error:
                logger.error("Could not record failure of job %s: %s", job_id, mark_error)
            self._emit(
                JobEvent(FAILED, job_id, job_type, segment_id, time.monotonic() - started, error=error_message)
            )
            raise

        for warning in result.warnings:
            self._emit(JobEvent(WARNING, job_id, job_type, segment_id, message=warning))
        self._emit(JobEvent(COMPLETED, job_id, job_type, segment_id, time.monotonic() - started))
        return result

    def _emit(self, event: JobEvent) -> None:
        text = f"Job {event.job_id} ({event.job_type or 'unknown'}) {event.kind}"
        if event.duration is not None:
            text += f" in {event.duration:.2f}s"
        if event.error or event.message:
            text += f": {event.error or event.message}"
        logger.log(_EVENT_LEVELS[event.kind], text, extra={"job_event": asdict(event)})

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Job event listener %r failed", listener)


# ----------------------------------------------------------------------
# Process-wide instance
# ----------------------------------------------------------------------

_worker: Optional[VideoProcessingWorker] = None


def get_video_processing_worker() -> VideoProcessingWorker:
    global _worker
    if _worker is None:
        _worker = VideoProcessingWorker()
    return _worker


def start_video_processing_worker() -> Optional[asyncio.Task]:
    """Start the shared worker unless it is already polling."""
    worker = get_video_processing_worker()
    if worker.is_active():
        return None
    return worker.start()


async def reset_video_processing_worker() -> None:
    """Stop the shared worker, wait for its loop to exit and drop it."""
    global _worker
    worker, _worker = _worker, None
    if worker is not None:
        worker.stop()
        await worker.wait_closed()
