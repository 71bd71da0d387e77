import pytest

from video_pipeline.exceptions import SegmentNotFoundError
from video_pipeline.services.segments import edit_segment, get_segment, get_segments


def test_edit_segment_updates_only_given_fields(make_segment):
    segment = make_segment(video_key="vid1.mp4", summary="keep me")

    updated = edit_segment(segment.id, transcripts="hello")

    assert updated.transcripts == "hello"
    assert updated.summary == "keep me"
    assert get_segment(segment.id).transcripts == "hello"


def test_edit_segment_rejects_unknown_fields(make_segment):
    segment = make_segment()
    with pytest.raises(ValueError, match="Unknown segment field"):
        edit_segment(segment.id, video_url="x")


def test_edit_missing_segment():
    with pytest.raises(SegmentNotFoundError):
        edit_segment(1234, summary="x")


def test_get_segments_ordered(make_segment):
    first = make_segment()
    second = make_segment()
    assert [s.id for s in get_segments()] == [first.id, second.id]
    assert get_segment(9999) is None
