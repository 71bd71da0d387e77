"""Read/write helpers for ``Segment`` rows used by the processing pipeline."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from video_pipeline.db.database import SessionLocal
from video_pipeline.exceptions import SegmentNotFoundError
from video_pipeline.models.segment import Segment

logger = logging.getLogger(__name__)


def get_segment(segment_id: int) -> Optional[Segment]:
    db = SessionLocal()
    try:
        return db.query(Segment).filter(Segment.id == segment_id).first()
    finally:
        db.close()


def get_segments() -> list[Segment]:
    db = SessionLocal()
    try:
        return db.query(Segment).order_by(Segment.id).all()
    finally:
        db.close()


def _check_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - Segment.EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown segment field(s): {', '.join(sorted(unknown))}")


def create_segment(**fields: Any) -> Segment:
    _check_fields(fields)
    db = SessionLocal()
    try:
        segment = Segment(**fields)
        db.add(segment)
        db.commit()
        db.refresh(segment)
        return segment
    finally:
        db.close()


def edit_segment(segment_id: int, **fields: Any) -> Segment:
    """Update the given columns of a segment and return the fresh row."""
    _check_fields(fields)
    db = SessionLocal()
    try:
        segment = db.query(Segment).filter(Segment.id == segment_id).first()
        if not segment:
            raise SegmentNotFoundError()
        for name, value in fields.items():
            setattr(segment, name, value)
        segment.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(segment)
        logger.debug("Segment %s updated: %s", segment_id, ", ".join(sorted(fields)))
        return segment
    finally:
        db.close()
