from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from faster_whisper import WhisperModel

from video_pipeline.config import settings
from video_pipeline.exceptions import MediaOperationError
from video_pipeline.services.llm import format_transcript_into_paragraphs
from video_pipeline.services.media import extract_audio
from video_pipeline.utils.tempfiles import temp_files

# Get a logger for this module
logger = logging.getLogger(__name__)

# --- Whisper Model Initialization ---
# Loaded lazily, once per process.  The worker is a single long-lived process
# so the model stays warm between transcript jobs.
_model_instance = None


def get_whisper_model():
    """Initializes and returns the Whisper model instance. Caches the instance."""
    global _model_instance
    if _model_instance is None:
        logger.info(
            "Initializing Whisper model: Size='%s', Device='%s', Compute='%s'",
            settings.WHISPER_MODEL_SIZE, settings.WHISPER_DEVICE, settings.WHISPER_COMPUTE_TYPE,
        )
        try:
            _model_instance = WhisperModel(
                settings.WHISPER_MODEL_SIZE,
                device=settings.WHISPER_DEVICE,
                compute_type=settings.WHISPER_COMPUTE_TYPE,
            )
        except Exception as e:
            logger.error("Failed to initialize Whisper model: %s", e, exc_info=True)
            raise RuntimeError(f"Whisper model failed to load: {e}") from e
        logger.info("Whisper model initialized successfully.")
    return _model_instance


def transcribe_audio(audio_input_path: Path) -> tuple[str, str]:
    """
    Transcribes an audio file using the cached Whisper model.

    Args:
        audio_input_path: Path to the input audio file.

    Returns:
        A tuple of (plain_text_transcript, language).

    Raises:
        FileNotFoundError: If the audio input file does not exist.
        RuntimeError: If the Whisper model failed to initialize or transcription fails.
    """
    if not audio_input_path.exists():
        logger.error("Audio input file for transcription not found: %s", audio_input_path)
        raise FileNotFoundError(f"Audio input file not found: {audio_input_path}")

    model = get_whisper_model()
    logger.info("Starting transcription for: %s", audio_input_path)

    plain_text_parts = []

    try:
        segments, info = model.transcribe(str(audio_input_path), beam_size=5)
        logger.info(
            "Transcription details - Detected language: '%s' (Prob: %.2f), Duration: %.2fs",
            info.language, info.language_probability, info.duration,
        )

        for segment in segments:
            text = segment.text.strip()
            if text:
                plain_text_parts.append(text)
    except Exception as e:
        # faster-whisper does not raise a dedicated error type
        logger.error("Error during Whisper transcription for %s: %s", audio_input_path, e, exc_info=True)
        raise RuntimeError(f"Transcription failed for {audio_input_path}: {e}") from e

    logger.info("Successfully transcribed %s. Total segments: %d", audio_input_path, len(plain_text_parts))
    return " ".join(plain_text_parts), info.language


async def generate_transcript_from_video(video_bytes: bytes) -> str:
    """
    Produce a readable transcript for an uploaded lesson video.

    1. Stage the video and extract a mono audio track with ffmpeg.
    2. Transcribe it with Whisper in a worker thread.
    3. Optionally let the LLM add paragraph breaks (raw text is kept if that fails).
    """
    logger.info("Generating transcript from %d bytes of video", len(video_bytes))
    with temp_files() as files:
        video_path = await asyncio.to_thread(files.new, "transcript_video", ".mp4", video_bytes)
        audio_path = files.new("transcript_audio", ".wav")
        await extract_audio(video_path, audio_path)
        raw_text, language = await asyncio.to_thread(transcribe_audio, audio_path)

    if not raw_text.strip():
        raise MediaOperationError("Transcription produced no text")
    logger.info("Raw transcript: %d characters (language %s)", len(raw_text), language)

    if not settings.FORMAT_TRANSCRIPTS:
        return raw_text
    try:
        return await format_transcript_into_paragraphs(raw_text)
    except Exception as e:
        logger.warning("Transcript formatting failed, keeping raw transcript: %s", e)
        return raw_text
