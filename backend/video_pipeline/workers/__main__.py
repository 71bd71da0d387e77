"""Run the video processing worker as a standalone process.

    python -m video_pipeline.workers

SIGINT/SIGTERM request a graceful stop: the job in flight finishes first.
"""

from __future__ import annotations

import asyncio
import logging
import signal

from video_pipeline.db.database import init_db
from video_pipeline.logging_config import setup_logging
from video_pipeline.workers.video_processing import get_video_processing_worker

logger = logging.getLogger(__name__)


async def run_worker() -> None:
    worker = get_video_processing_worker()
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, worker.stop)
            installed.append(sig)
        except NotImplementedError:  # pragma: no cover - Windows event loops
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(worker.stop))

    try:
        worker.start()
        await worker.wait_closed()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def main() -> None:
    setup_logging()
    init_db()
    logger.info("Starting standalone video processing worker")
    asyncio.run(run_worker())
    logger.info("Worker exited")


if __name__ == "__main__":
    main()
