"""ASGI entry-point for the FastAPI application.

This module
1. instantiates the :class:`fastapi.FastAPI` application;
2. wires the job API router located in ``video_pipeline.api``;
3. registers global exception handlers and middleware; and
4. creates the schema on start-up and, when ``WORKER_AUTOSTART`` is set,
   starts the in-process video processing worker.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from video_pipeline.api import api_router
from video_pipeline.config import settings
from video_pipeline.db.database import init_db
from video_pipeline.exceptions import VideoProcessingError
from video_pipeline.logging_config import setup_logging
from video_pipeline.utils.storage import ensure_dir_exists
from video_pipeline.workers.video_processing import reset_video_processing_worker, start_video_processing_worker


# ---------------------------------------------------------------------------
# Logging must be configured as soon as possible so that any errors during
# import/start-up are captured.
# ---------------------------------------------------------------------------
setup_logging()
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:  # noqa: D401 – factory nomenclature is fine
    """Wire and return the FastAPI application instance."""

    app = FastAPI(
        title="Video Pipeline API",
        version="0.1.0",
        docs_url="/api/docs",
    )

    # ------------------------------------------------------------------
    # Start-up / shut-down
    # ------------------------------------------------------------------

    @app.on_event("startup")
    async def _startup() -> None:  # noqa: D401
        logger.info("Running start-up checks …")

        temp_dir = Path(settings.TEMP_DIR)
        ensure_dir_exists(temp_dir)
        writable = os.access(str(temp_dir), os.W_OK)
        logger.info("Temp directory %s is %swritable", temp_dir, "" if writable else "NOT ")

        init_db()

        if settings.WORKER_AUTOSTART:
            try:
                start_video_processing_worker()
            except Exception as exc:
                logger.error("Failed to start video processing worker: %s", exc, exc_info=True)

        logger.info("Start-up checks finished.")

    @app.on_event("shutdown")
    async def _shutdown() -> None:  # noqa: D401
        await reset_video_processing_worker()

    # ------------------------------------------------------------------
    # Exception handlers
    # ------------------------------------------------------------------

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(  # noqa: D401
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:  # type: ignore[valid-type]
        logger.error("Request validation error: %s", exc.errors())
        return JSONResponse(status_code=422, content={"detail": exc.errors()})

    @app.exception_handler(StarletteHTTPException)
    async def _http_error_handler(  # noqa: D401
        _request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:  # type: ignore[valid-type]
        logger.error("HTTP exception %s: %s", exc.status_code, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(VideoProcessingError)
    async def _pipeline_error_handler(  # noqa: D401
        _request: Request,
        exc: VideoProcessingError,
    ) -> JSONResponse:  # type: ignore[valid-type]
        if exc.status_code >= 500:
            logger.error("Pipeline error: %s", exc.detail, exc_info=True)
        else:
            logger.warning("Rejected request: %s", exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(Exception)
    async def _generic_error_handler(  # noqa: D401
        _request: Request,
        exc: Exception,
    ) -> JSONResponse:  # type: ignore[valid-type]
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    # ------------------------------------------------------------------
    # Middleware
    # ------------------------------------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api")

    @app.get("/api/health")
    async def _health() -> dict[str, str]:  # noqa: D401
        return {"status": "ok"}

    return app


# Instantiate at import time so `uvicorn video_pipeline.main:app` works.
app: FastAPI = create_app()
