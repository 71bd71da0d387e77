"""Application-wide configuration loader.

Settings are parsed from environment variables once, at import time, and
exposed through the module-level ``settings`` singleton that other modules
import.  Tests that need different values set the environment and
``importlib.reload`` this module.
"""

import os
import tempfile


def _flag(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    """Settings helper that gracefully falls back to sane defaults.

    Rationale
    ---------
    When docker-compose injects an environment variable whose value is empty
    (e.g. ``R2_BUCKET=""``) ``os.getenv("R2_BUCKET", default)`` returns an
    empty string *not* ``None`` and the useful in-code default is lost.  Every
    setting therefore uses the idiom

        os.getenv(KEY) or DEFAULT

    so that *falsy* values ("", None) are replaced by the specified DEFAULT.
    """

    DATABASE_URL: str = os.getenv('DATABASE_URL') or 'postgresql://pipeline:pipeline@db:5432/pipeline'
    DB_ECHO: bool = _flag(os.getenv('DB_ECHO') or '0')

    LOG_DIR: str = os.getenv('LOG_DIR') or 'backend/logs'
    LOG_LEVEL: str = (os.getenv('LOG_LEVEL') or 'INFO').upper()

    # Object storage (Cloudflare R2 speaks the S3 API)
    R2_ENDPOINT: str = os.getenv('R2_ENDPOINT') or ''
    R2_ACCESS_KEY_ID: str = os.getenv('R2_ACCESS_KEY_ID') or ''
    R2_SECRET_ACCESS_KEY: str = os.getenv('R2_SECRET_ACCESS_KEY') or ''
    R2_BUCKET: str = os.getenv('R2_BUCKET') or ''
    STORAGE_BACKEND: str = (
        os.getenv('STORAGE_BACKEND')
        or ('r2' if os.getenv('R2_ENDPOINT') and os.getenv('R2_BUCKET') else 'mock')
    ).lower()

    # LLM (Ollama) used for summaries, transcript formatting and embeddings
    OLLAMA_URL: str = (os.getenv('OLLAMA_URL') or 'http://ollama:11434').rstrip('/')
    OLLAMA_DEFAULT_MODEL: str = os.getenv('OLLAMA_DEFAULT_MODEL') or 'llama3'
    OLLAMA_EMBED_MODEL: str = os.getenv('OLLAMA_EMBED_MODEL') or 'nomic-embed-text'
    LLM_TIMEOUT: float = float(os.getenv('LLM_TIMEOUT') or '120')

    # Speech-to-text
    WHISPER_MODEL_SIZE: str = os.getenv('WHISPER_MODEL_SIZE') or 'base.en'
    WHISPER_DEVICE: str = os.getenv('WHISPER_DEVICE') or 'cpu'
    WHISPER_COMPUTE_TYPE: str = os.getenv('WHISPER_COMPUTE_TYPE') or 'int8'
    FORMAT_TRANSCRIPTS: bool = _flag(os.getenv('FORMAT_TRANSCRIPTS') or '1')

    FFMPEG_PATH: str = os.getenv('FFMPEG_PATH') or 'ffmpeg'
    TEMP_DIR: str = os.getenv('TEMP_DIR') or tempfile.gettempdir()

    # Background worker
    WORKER_IDLE_INTERVAL: float = float(os.getenv('WORKER_IDLE_INTERVAL') or '5')
    WORKER_ERROR_INTERVAL: float = float(os.getenv('WORKER_ERROR_INTERVAL') or '10')
    WORKER_AUTOSTART: bool = _flag(os.getenv('WORKER_AUTOSTART') or '0')


settings = Settings()
