"""FFmpeg-backed media operations: transcoding, thumbnails, audio extraction.

All public functions are coroutines; the blocking ffmpeg invocation runs in a
worker thread so the event loop keeps serving other tasks.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path

import ffmpeg
from PIL import Image

from video_pipeline.config import settings
from video_pipeline.exceptions import MediaOperationError
from video_pipeline.utils.tempfiles import cleanup_temp_files, create_temp_path

logger = logging.getLogger(__name__)

FFMPEG_PRESET = "medium"
FFMPEG_CRF = 23  # 18-28 is the usual range, lower is better quality
THUMBNAIL_JPEG_QUALITY = 85


class VideoQuality(str, Enum):
    HD = "720p"
    SD = "480p"

    @property
    def height(self) -> int:
        return int(self.value.rstrip("p"))


# Produced one after the other, highest first
QUALITIES = (VideoQuality.HD, VideoQuality.SD)


def _run_ffmpeg(stream, description: str) -> None:
    try:
        ffmpeg.run(
            stream,
            cmd=settings.FFMPEG_PATH,
            overwrite_output=True,
            capture_stdout=True,
            capture_stderr=True,
        )
    except ffmpeg.Error as exc:
        stderr = exc.stderr.decode("utf8", errors="replace").strip() if exc.stderr else str(exc)
        logger.error("FFmpeg error (%s): %s", description, stderr)
        raise MediaOperationError(f"{description}: {stderr[-500:]}") from exc


def _transcode(input_path: Path, output_path: Path, quality: VideoQuality) -> None:
    source = ffmpeg.input(str(input_path))
    stream = ffmpeg.output(
        source,
        str(output_path),
        vf=f"scale=-2:{quality.height}",
        vcodec="libx264",
        preset=FFMPEG_PRESET,
        crf=FFMPEG_CRF,
        acodec="aac",
    )
    _run_ffmpeg(stream, f"Failed to transcode video to {quality.value}")


async def transcode_video(input_path: Path, output_path: Path, quality: VideoQuality | str) -> Path:
    """Re-encode ``input_path`` to H.264/AAC at the height of ``quality``, keeping aspect ratio."""
    quality = VideoQuality(quality)
    if not Path(input_path).exists():
        raise FileNotFoundError(f"Video input not found: {input_path}")
    logger.info("Transcoding %s to %s", input_path, quality.value)
    await asyncio.to_thread(_transcode, Path(input_path), Path(output_path), quality)
    return Path(output_path)


def _extract_thumbnail(input_path: Path, output_path: Path, width: int, seek_time: float) -> bytes:
    frame_path = create_temp_path("temp_thumb", ".jpg")
    try:
        # Seeking past the first second avoids black intro frames
        source = ffmpeg.input(str(input_path), ss=seek_time)
        stream = ffmpeg.output(source, str(frame_path), vframes=1, vf=f"scale={width}:-1", **{"q:v": 2})
        _run_ffmpeg(stream, "Frame extraction failed")

        # Progressive JPEGs render a coarse preview while still downloading
        with Image.open(frame_path) as frame:
            frame.convert("RGB").save(
                output_path, "JPEG", quality=THUMBNAIL_JPEG_QUALITY, progressive=True, optimize=True
            )
        return Path(output_path).read_bytes()
    finally:
        cleanup_temp_files(frame_path)


async def extract_thumbnail(
    input_path: Path,
    output_path: Path,
    width: int = 640,
    seek_time: float = 1,
) -> bytes:
    """Grab one frame at ``seek_time`` seconds, scaled to ``width``; return the JPEG bytes."""
    if not Path(input_path).exists():
        raise FileNotFoundError(f"Video input not found: {input_path}")
    logger.info("Extracting thumbnail from %s at %ss (width %d)", input_path, seek_time, width)
    return await asyncio.to_thread(_extract_thumbnail, Path(input_path), Path(output_path), width, seek_time)


def _extract_audio(video_path: Path, audio_path: Path) -> None:
    source = ffmpeg.input(str(video_path))
    stream = ffmpeg.output(source, str(audio_path), vn=None, ac=1, ar=16000, acodec="pcm_s16le")
    _run_ffmpeg(stream, "Audio extraction failed")


async def extract_audio(video_path: Path, audio_path: Path) -> Path:
    """Mono 16 kHz WAV track of ``video_path``, the input format Whisper expects."""
    await asyncio.to_thread(_extract_audio, Path(video_path), Path(audio_path))
    return Path(audio_path)
