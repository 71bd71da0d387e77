"""Embed segment transcripts into ``transcript_chunks`` for semantic search."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from sqlalchemy import func

from video_pipeline.db.database import SessionLocal
from video_pipeline.exceptions import MissingTranscriptError, SegmentNotFoundError
from video_pipeline.models.transcript_chunk import TranscriptChunk
from video_pipeline.services.chunking import chunk_transcript
from video_pipeline.services.llm import generate_embeddings
from video_pipeline.services.segments import get_segment, get_segments

logger = logging.getLogger(__name__)

EMBEDDING_BATCH_SIZE = 20


@dataclass(frozen=True)
class VectorizeResult:
    segment_id: int
    chunks_created: int


def replace_chunks(segment_id: int, rows: list[dict]) -> int:
    """
    Idempotent: delete existing chunks for the segment, insert new ones.
    """
    db = SessionLocal()
    try:
        db.query(TranscriptChunk).filter(TranscriptChunk.segment_id == segment_id).delete()
        for row in rows:
            db.add(TranscriptChunk(segment_id=segment_id, **row))
        db.commit()
        return len(rows)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


async def vectorize_segment(segment_id: int) -> VectorizeResult:
    t0 = time.time()
    segment = get_segment(segment_id)
    if not segment:
        raise SegmentNotFoundError()
    if not (segment.transcripts or "").strip():
        raise MissingTranscriptError("Segment has no transcript")

    chunks = chunk_transcript(segment.transcripts)
    rows: list[dict] = []
    # Embed in batches to keep request bodies small
    for i in range(0, len(chunks), EMBEDDING_BATCH_SIZE):
        batch = chunks[i:i + EMBEDDING_BATCH_SIZE]
        vectors = await generate_embeddings([c.text for c in batch])
        for chunk, vector in zip(batch, vectors):
            rows.append(
                {
                    "chunk_index": chunk.index,
                    "chunk_text": chunk.text,
                    "token_count": chunk.token_count,
                    "embedding": [float(v) for v in vector],
                }
            )

    created = replace_chunks(segment_id, rows)
    logger.info(
        "Vectorized segment %s: %d chunks in %dms", segment_id, created, int((time.time() - t0) * 1000)
    )
    return VectorizeResult(segment_id=segment_id, chunks_created=created)


def get_chunk_counts(segment_ids: list[int]) -> dict[int, int]:
    if not segment_ids:
        return {}
    db = SessionLocal()
    try:
        rows = (
            db.query(TranscriptChunk.segment_id, func.count(TranscriptChunk.id))
            .filter(TranscriptChunk.segment_id.in_(segment_ids))
            .group_by(TranscriptChunk.segment_id)
            .all()
        )
        return {segment_id: count for segment_id, count in rows}
    finally:
        db.close()


def get_vectorization_status() -> dict:
    """Per-segment chunk counts plus totals, for deciding what still needs embedding."""
    segments = get_segments()
    counts = get_chunk_counts([s.id for s in segments])

    rows = []
    for segment in segments:
        has_transcript = bool((segment.transcripts or "").strip())
        chunk_count = counts.get(segment.id, 0)
        rows.append(
            {
                "id": segment.id,
                "slug": segment.slug,
                "title": segment.title,
                "has_transcript": has_transcript,
                "chunk_count": chunk_count,
                "is_vectorized": chunk_count > 0,
                "needs_vectorization": has_transcript and chunk_count == 0,
            }
        )

    return {
        "segments": rows,
        "stats": {
            "total_segments": len(rows),
            "with_transcripts": sum(r["has_transcript"] for r in rows),
            "vectorized": sum(r["is_vectorized"] for r in rows),
            "needs_vectorization": sum(r["needs_vectorization"] for r in rows),
            "total_chunks": sum(counts.values()),
        },
    }
