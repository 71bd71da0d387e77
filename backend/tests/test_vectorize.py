import pytest
from unittest.mock import patch, AsyncMock

from video_pipeline.db.database import SessionLocal
from video_pipeline.exceptions import MissingTranscriptError, SegmentNotFoundError
from video_pipeline.models.transcript_chunk import TranscriptChunk
from video_pipeline.services.chunking import get_encoding
from video_pipeline.services.vectorize import get_chunk_counts, get_vectorization_status, replace_chunks, vectorize_segment


def _fake_embeddings():
    async def _embed(texts, model=None):
        return [[float(len(t)), 1.0] for t in texts]

    return AsyncMock(side_effect=_embed)


def _chunks_for(segment_id: int) -> list[TranscriptChunk]:
    db = SessionLocal()
    try:
        return (
            db.query(TranscriptChunk)
            .filter(TranscriptChunk.segment_id == segment_id)
            .order_by(TranscriptChunk.chunk_index)
            .all()
        )
    finally:
        db.close()


@pytest.mark.asyncio
async def test_vectorize_stores_chunks_in_batches(make_segment):
    transcript = " ".join(f"w{i}" for i in range(10_000))
    n_tokens = len(get_encoding().encode(transcript))
    # 500-token windows with a 450-token stride
    expected = 1 + -(-(n_tokens - 500) // 450)
    batches = [min(20, expected - i) for i in range(0, expected, 20)]
    segment = make_segment(transcripts=transcript)
    embed = _fake_embeddings()

    with patch("video_pipeline.services.vectorize.generate_embeddings", embed):
        result = await vectorize_segment(segment.id)

    assert result.segment_id == segment.id
    assert result.chunks_created == expected
    assert len(batches) > 1
    assert [len(call.args[0]) for call in embed.await_args_list] == batches
    stored = _chunks_for(segment.id)
    assert [c.chunk_index for c in stored] == list(range(expected))
    assert stored[0].token_count == 500
    assert stored[0].embedding == [float(len(stored[0].chunk_text)), 1.0]


@pytest.mark.asyncio
async def test_vectorize_replaces_previous_chunks(make_segment):
    segment = make_segment(transcripts="first version of the transcript")
    with patch("video_pipeline.services.vectorize.generate_embeddings", _fake_embeddings()):
        await vectorize_segment(segment.id)
        await vectorize_segment(segment.id)

    assert get_chunk_counts([segment.id]) == {segment.id: 1}


@pytest.mark.asyncio
async def test_vectorize_requires_transcript(make_segment):
    segment = make_segment(transcripts=None)
    with pytest.raises(MissingTranscriptError, match="Segment has no transcript"):
        await vectorize_segment(segment.id)


@pytest.mark.asyncio
async def test_vectorize_unknown_segment():
    with pytest.raises(SegmentNotFoundError):
        await vectorize_segment(12345)


def test_get_chunk_counts_empty():
    assert get_chunk_counts([]) == {}


def _chunk_row(index: int) -> dict:
    return {"chunk_index": index, "chunk_text": f"chunk {index}", "token_count": 2, "embedding": [0.0]}


def test_vectorization_status_counts_chunks_per_segment(make_segment):
    done = make_segment(transcripts="text")
    pending = make_segment(transcripts="more text")
    make_segment(transcripts="  ")
    replace_chunks(done.id, [_chunk_row(0), _chunk_row(1)])

    status = get_vectorization_status()

    by_id = {row["id"]: row for row in status["segments"]}
    assert by_id[done.id]["chunk_count"] == 2
    assert by_id[done.id]["is_vectorized"] is True
    assert by_id[done.id]["needs_vectorization"] is False
    assert by_id[pending.id]["needs_vectorization"] is True
    assert by_id[pending.id]["title"] == pending.title
    assert status["stats"] == {
        "total_segments": 3,
        "with_transcripts": 2,
        "vectorized": 1,
        "needs_vectorization": 1,
        "total_chunks": 2,
    }
