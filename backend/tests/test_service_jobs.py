import pytest

from video_pipeline.exceptions import InvalidJobTransitionError, UnknownJobTypeError
from video_pipeline.models.job import JobStatus, JobType
from video_pipeline.services import jobs as job_store


@pytest.fixture
def segment(make_segment):
    return make_segment(video_key="vid1.mp4")


def test_create_job_starts_pending(segment):
    job = job_store.create_job(segment.id, "transcript")

    assert job.id is not None
    assert job.status == JobStatus.PENDING
    assert job.job_type == JobType.TRANSCRIPT.value
    assert job.error_message is None
    assert job.completed_at is None


def test_create_job_rejects_unknown_type(segment):
    with pytest.raises(UnknownJobTypeError, match="Unknown job type: render"):
        job_store.create_job(segment.id, "render")


def test_pending_jobs_in_insertion_order(segment, make_segment):
    other = make_segment()
    first = job_store.create_job(segment.id, JobType.TRANSCRIPT)
    second = job_store.create_job(other.id, JobType.THUMBNAIL)
    third = job_store.create_job(segment.id, JobType.SUMMARY)
    job_store.mark_job_processing(second.id)

    assert [j.id for j in job_store.get_pending_jobs()] == [first.id, third.id]
    assert [j.id for j in job_store.get_jobs_by_status(JobStatus.PROCESSING)] == [second.id]
    assert [j.id for j in job_store.get_jobs_by_segment(segment.id)] == [first.id, third.id]


def test_create_jobs_inserts_all(segment):
    created = job_store.create_jobs([(segment.id, "transcode"), (segment.id, JobType.THUMBNAIL)])

    assert [j.job_type for j in created] == ["transcode", "thumbnail"]
    assert len(job_store.get_all_jobs()) == 2
    assert job_store.create_jobs([]) == []


def test_forward_lifecycle_to_completed(segment):
    job = job_store.create_job(segment.id, JobType.TRANSCRIPT)

    processing = job_store.mark_job_processing(job.id)
    assert processing.status == JobStatus.PROCESSING
    assert processing.completed_at is None

    done = job_store.mark_job_completed(job.id)
    assert done.status == JobStatus.COMPLETED
    assert done.completed_at is not None
    assert done.error_message is None


def test_mark_failed_records_message(segment):
    job = job_store.create_job(segment.id, JobType.SUMMARY)
    job_store.mark_job_processing(job.id)

    failed = job_store.mark_job_failed(job.id, "boom")

    assert failed.status == JobStatus.FAILED
    assert failed.error_message == "boom"
    assert failed.completed_at is not None


def test_mark_failed_allowed_from_pending(segment):
    job = job_store.create_job(segment.id, JobType.SUMMARY)
    assert job_store.mark_job_failed(job.id, "claim failed").status == JobStatus.FAILED


@pytest.mark.parametrize(
    "setup, write",
    [
        ([], job_store.mark_job_completed),
        ([job_store.mark_job_processing], job_store.mark_job_processing),
        ([job_store.mark_job_processing, job_store.mark_job_completed], job_store.mark_job_processing),
        ([job_store.mark_job_processing, job_store.mark_job_completed], job_store.mark_job_completed),
    ],
)
def test_backward_or_skipping_transitions_rejected(segment, setup, write):
    job = job_store.create_job(segment.id, JobType.TRANSCODE)
    for step in setup:
        step(job.id)
    before = job_store.get_job(job.id).status

    with pytest.raises(InvalidJobTransitionError):
        write(job.id)
    assert job_store.get_job(job.id).status == before


def test_terminal_failed_cannot_complete(segment):
    job = job_store.create_job(segment.id, JobType.TRANSCODE)
    job_store.mark_job_processing(job.id)
    job_store.mark_job_failed(job.id, "nope")

    with pytest.raises(InvalidJobTransitionError):
        job_store.mark_job_completed(job.id)


def test_mark_missing_job_returns_none():
    assert job_store.mark_job_processing(999) is None


def test_has_active_job_only_counts_pending_and_processing(segment):
    job = job_store.create_job(segment.id, JobType.VECTORIZE)
    assert job_store.has_active_job(segment.id, "vectorize")
    assert not job_store.has_active_job(segment.id, "summary")

    job_store.mark_job_processing(job.id)
    assert job_store.has_active_job(segment.id, JobType.VECTORIZE)

    job_store.mark_job_completed(job.id)
    assert not job_store.has_active_job(segment.id, JobType.VECTORIZE)


def test_cancel_active_jobs_by_type_leaves_history(segment):
    finished = job_store.create_job(segment.id, JobType.VECTORIZE)
    job_store.mark_job_processing(finished.id)
    job_store.mark_job_completed(finished.id)
    active = job_store.create_job(segment.id, JobType.VECTORIZE)
    other = job_store.create_job(segment.id, JobType.SUMMARY)

    cancelled = job_store.cancel_active_jobs_by_type(segment.id, JobType.VECTORIZE)

    assert [j.id for j in cancelled] == [active.id]
    remaining = {j.id for j in job_store.get_all_jobs()}
    assert remaining == {finished.id, other.id}
