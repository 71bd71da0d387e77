from __future__ import annotations

import os
import tempfile

# Must be set before anything imports video_pipeline.config
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DB_ECHO", "0")
os.environ.setdefault("STORAGE_BACKEND", "mock")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "video_pipeline_test_logs"))
os.environ.setdefault("FORMAT_TRANSCRIPTS", "0")

import pytest

from video_pipeline import models  # noqa: F401,E402  registers tables
from video_pipeline.config import settings  # noqa: E402
from video_pipeline.db.base import Base  # noqa: E402
from video_pipeline.db.database import engine  # noqa: E402
from video_pipeline.services.segments import create_segment  # noqa: E402
from video_pipeline.utils import storage as storage_module  # noqa: E402
from video_pipeline.utils.storage import MOCK, R2, MockStorage, StorageHandle  # noqa: E402


@pytest.fixture(autouse=True)
def db_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def temp_dir(tmp_path, monkeypatch):
    path = tmp_path / "staging"
    path.mkdir()
    monkeypatch.setattr(settings, "TEMP_DIR", str(path))
    return path


@pytest.fixture(autouse=True)
def fresh_storage():
    storage_module.reset_storage()
    yield
    storage_module.reset_storage()


@pytest.fixture
def mock_storage(monkeypatch) -> MockStorage:
    """In-memory storage registered as the ``mock`` backend."""
    storage = MockStorage()
    monkeypatch.setattr(storage_module, "_storage", StorageHandle(storage, MOCK))
    return storage


@pytest.fixture
def r2_storage(monkeypatch) -> MockStorage:
    """In-memory storage registered under the ``r2`` kind, so R2-only jobs run."""
    storage = MockStorage()
    monkeypatch.setattr(storage_module, "_storage", StorageHandle(storage, R2))
    return storage


@pytest.fixture
def make_segment():
    counter = {"n": 0}

    def _make(**fields):
        counter["n"] += 1
        fields.setdefault("slug", f"lesson-{counter['n']}")
        fields.setdefault("title", f"Lesson {counter['n']}")
        return create_segment(**fields)

    return _make
