"""ORM model for course segments (the content a processing job works on)."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text
from video_pipeline.db.base import Base


class Segment(Base):
    """
    Represents a single lesson of a course module.

    The processing pipeline only reads ``video_key`` and writes the derived
    fields (``transcripts``, ``summary``, ``thumbnail_key``); segments are
    created and deleted by the content management side of the platform.
    """
    __tablename__ = "segments"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True, comment="Primary key for the segment record.")
    slug = Column(String(255), nullable=False, index=True, comment="URL slug of the lesson.")
    title = Column(String(255), nullable=False, comment="Display title of the lesson.")
    video_key = Column(String(1024), nullable=True, comment="Object storage key of the original uploaded video.")
    thumbnail_key = Column(String(1024), nullable=True, comment="Object storage key of the extracted thumbnail.")
    transcripts = Column(Text, nullable=True, comment="Generated transcript, formatted into paragraphs.")
    summary = Column(Text, nullable=True, comment="Markdown summary generated from the transcript.")
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Columns the processing side is allowed to edit
    EDITABLE_FIELDS = frozenset({"slug", "title", "video_key", "thumbnail_key", "transcripts", "summary"})
