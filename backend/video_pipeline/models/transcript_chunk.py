"""ORM model for embedded transcript chunks used by semantic search."""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Text
from video_pipeline.db.base import Base


class TranscriptChunk(Base):
    """
    A window of a segment transcript together with its embedding vector.

    Rows are replaced wholesale every time a segment is vectorized.
    """
    __tablename__ = "transcript_chunks"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    segment_id = Column(Integer, ForeignKey("segments.id", ondelete="CASCADE"), nullable=False, index=True, comment="Segment the transcript belongs to.")
    chunk_index = Column(Integer, nullable=False, comment="Position of the chunk inside the transcript.")
    chunk_text = Column(Text, nullable=False)
    token_count = Column(Integer, nullable=False)
    embedding = Column(JSON, nullable=False, comment="Embedding vector as a list of floats.")
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
