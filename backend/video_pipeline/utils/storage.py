"""Object storage adapters and derived-key helpers.

Two backends exist:

* ``R2Storage`` talks to Cloudflare R2 (or any S3-compatible endpoint)
  through boto3.  It is the only backend the transcode and thumbnail jobs run
  against.
* ``MockStorage`` keeps objects in memory.  Used for local development
  without credentials and in tests.

``get_storage()`` returns the process-wide adapter together with its kind,
chosen by ``settings.STORAGE_BACKEND``.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import NamedTuple, Optional

import boto3
from botocore.client import Config
from botocore.exceptions import ClientError

from video_pipeline.config import settings

logger = logging.getLogger(__name__)

R2 = "r2"
MOCK = "mock"


def ensure_dir_exists(path: Path) -> Path:
    """Ensure that the given directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


class StorageBackend(ABC):
    """Opaque key/value blob store."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    async def get_buffer(self, key: str) -> bytes:
        ...

    @abstractmethod
    async def upload(self, key: str, data: bytes, content_type: str = "video/mp4") -> None:
        ...


class R2Storage(StorageBackend):
    """S3 API client bound to a single R2 bucket."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        bucket: Optional[str] = None,
        client=None,
    ):
        endpoint = endpoint or settings.R2_ENDPOINT
        access_key_id = access_key_id or settings.R2_ACCESS_KEY_ID
        secret_access_key = secret_access_key or settings.R2_SECRET_ACCESS_KEY
        self.bucket = bucket or settings.R2_BUCKET

        if client is None:
            if not (endpoint and access_key_id and secret_access_key and self.bucket):
                raise ValueError(
                    "R2_ENDPOINT, R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY, and R2_BUCKET must be set"
                )
            client = boto3.client(
                "s3",
                endpoint_url=endpoint,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
                region_name="auto",
                config=Config(signature_version="s3v4"),
            )
        self.client = client

    async def exists(self, key: str) -> bool:
        try:
            await asyncio.to_thread(self.client.head_object, Bucket=self.bucket, Key=key)
            return True
        except ClientError as exc:
            error = exc.response.get("Error", {})
            status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            if error.get("Code") in ("404", "NotFound", "NoSuchKey") or status == 404:
                return False
            raise

    async def get_buffer(self, key: str) -> bytes:
        response = await asyncio.to_thread(self.client.get_object, Bucket=self.bucket, Key=key)
        body = response.get("Body")
        if body is None:
            raise ValueError(f"No body returned for key: {key}")
        try:
            return await asyncio.to_thread(body.read)
        finally:
            body.close()

    async def upload(self, key: str, data: bytes, content_type: str = "video/mp4") -> None:
        await asyncio.to_thread(
            self.client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        logger.debug("Uploaded %s (%d bytes, %s)", key, len(data), content_type)


class MockStorage(StorageBackend):
    """In-memory storage for development and tests (no network access)."""

    def __init__(self, files: Optional[dict[str, bytes]] = None):
        self.files: dict[str, tuple[bytes, str]] = {
            key: (data, "video/mp4") for key, data in (files or {}).items()
        }
        # Keys in the order they were uploaded
        self.uploads: list[str] = []

    async def exists(self, key: str) -> bool:
        return key in self.files

    async def get_buffer(self, key: str) -> bytes:
        if key not in self.files:
            logger.info("[MockStorage] Returning empty buffer for: %s", key)
            return b""
        return self.files[key][0]

    async def upload(self, key: str, data: bytes, content_type: str = "video/mp4") -> None:
        logger.info("[MockStorage] Simulated upload: %s (%d bytes)", key, len(data))
        self.files[key] = (bytes(data), content_type)
        self.uploads.append(key)

    def content_type(self, key: str) -> Optional[str]:
        item = self.files.get(key)
        return item[1] if item else None


class StorageHandle(NamedTuple):
    storage: StorageBackend
    kind: str


_storage: Optional[StorageHandle] = None


def get_storage() -> StorageHandle:
    """Return the process-wide storage adapter, creating it on first use."""
    global _storage
    if _storage is None:
        kind = settings.STORAGE_BACKEND
        if kind == R2:
            _storage = StorageHandle(R2Storage(), R2)
        elif kind == MOCK:
            _storage = StorageHandle(MockStorage(), MOCK)
        else:
            raise ValueError(f"Unsupported STORAGE_BACKEND: {kind!r} (expected 'r2' or 'mock')")
        logger.info("Storage backend initialised: %s", kind)
    return _storage


def reset_storage() -> None:
    global _storage
    _storage = None


def get_video_quality_key(base_key: str, quality: str) -> str:
    """``abc123.mp4`` -> ``abc123_720p.mp4``."""
    if base_key.endswith(".mp4"):
        return f"{base_key[:-len('.mp4')]}_{quality}.mp4"
    return f"{base_key}_{quality}"


def get_thumbnail_key(base_key: str) -> str:
    """``abc123.mp4`` -> ``abc123_thumb.jpg``."""
    if base_key.endswith(".mp4"):
        return f"{base_key[:-len('.mp4')]}_thumb.jpg"
    return f"{base_key}_thumb.jpg"
