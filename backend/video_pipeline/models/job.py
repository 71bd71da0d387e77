"""SQLAlchemy model & enums for video processing jobs."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime, Enum as SAEnum, ForeignKey, Integer, String, Text

from video_pipeline.db.base import Base
from video_pipeline.exceptions import UnknownJobTypeError


class JobStatus(str, Enum):
    """Enum representing the lifecycle of a background processing job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


# Status writes only ever move forward.  FAILED is also reachable from PENDING
# for a job whose claim step itself blew up.
ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PROCESSING, JobStatus.FAILED}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


class JobType(str, Enum):
    """The closed set of processing stages a job can request."""

    TRANSCRIPT = "transcript"
    TRANSCODE = "transcode"
    THUMBNAIL = "thumbnail"
    VECTORIZE = "vectorize"
    SUMMARY = "summary"

    @classmethod
    def parse(cls, value: str | JobType) -> JobType:
        try:
            return cls(value)
        except ValueError:
            raise UnknownJobTypeError(value) from None


class VideoProcessingJob(Base):
    """Persistent representation of a background processing job."""

    __tablename__ = "video_processing_jobs"

    id: int = Column(Integer, primary_key=True, autoincrement=True, index=True)
    segment_id: int = Column(Integer, ForeignKey("segments.id", ondelete="CASCADE"), nullable=False, index=True)
    job_type: str = Column(String(50), nullable=False)
    status: JobStatus = Column(
        SAEnum(JobStatus, values_callable=lambda e: [m.value for m in e], native_enum=False, length=20),
        nullable=False,
        default=JobStatus.PENDING,
        index=True,
    )
    error_message: Optional[str] = Column(Text, nullable=True)
    created_at: datetime = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow, index=True)
    updated_at: datetime = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at: Optional[datetime] = Column(DateTime(timezone=True), nullable=True)

    # Helper to convert enum to plain string for JSON responses
    @property
    def status_str(self) -> str:
        return self.status.value if isinstance(self.status, JobStatus) else str(self.status)

    @property
    def is_active(self) -> bool:
        return self.status in (JobStatus.PENDING, JobStatus.PROCESSING)

    def __repr__(self) -> str:
        return f"<VideoProcessingJob id={self.id} type={self.job_type} segment={self.segment_id} status={self.status_str}>"
