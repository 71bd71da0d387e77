"""Temporary file helpers for the media handlers.

ffmpeg works on paths, not streams, so every handler that touches video
stages bytes on local disk.  ``temp_files()`` scopes those paths: whatever was
registered is removed when the ``with`` block exits, on success and failure.
"""

from __future__ import annotations

import logging
import secrets
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from video_pipeline.config import settings
from video_pipeline.utils.storage import ensure_dir_exists

logger = logging.getLogger(__name__)


def create_temp_path(prefix: str, suffix: str = ".mp4", directory: Optional[Path] = None) -> Path:
    """Unique path in the temp directory; nothing is created on disk."""
    base = ensure_dir_exists(Path(directory or settings.TEMP_DIR))
    return base / f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(4)}{suffix}"


def write_buffer_to_temp_file(data: bytes, prefix: str, suffix: str = ".mp4", directory: Optional[Path] = None) -> Path:
    path = create_temp_path(prefix, suffix, directory)
    path.write_bytes(data)
    return path


def cleanup_temp_files(*paths: Path | str) -> None:
    for path in paths:
        try:
            Path(path).unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.error("Failed to delete temp file %s: %s", path, exc)


class TempFileSet:
    """Paths created inside one ``temp_files()`` scope."""

    def __init__(self, directory: Optional[Path] = None):
        self.directory = directory
        self.paths: list[Path] = []

    def new(self, prefix: str, suffix: str = ".mp4", data: Optional[bytes] = None) -> Path:
        """Register a fresh temp path; write ``data`` to it when given."""
        path = create_temp_path(prefix, suffix, self.directory)
        self.paths.append(path)
        if data is not None:
            path.write_bytes(data)
        return path

    def cleanup(self) -> None:
        cleanup_temp_files(*self.paths)
        self.paths.clear()


@contextmanager
def temp_files(directory: Optional[Path] = None) -> Iterator[TempFileSet]:
    files = TempFileSet(directory)
    try:
        yield files
    finally:
        files.cleanup()
