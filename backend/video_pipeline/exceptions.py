"""Domain exceptions raised by the processing pipeline.

The message of every exception is the human-readable text that ends up in
``VideoProcessingJob.error_message`` when a job fails, so keep them precise.
"""

from __future__ import annotations


class VideoProcessingError(Exception):
    """Base class for every error raised by the pipeline."""

    status_code = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class PreconditionError(VideoProcessingError):
    """A job cannot run in the current state; raised before any external call."""

    status_code = 400


class SegmentNotFoundError(PreconditionError):
    status_code = 404

    def __init__(self, detail: str = "Segment not found") -> None:
        super().__init__(detail)


class JobNotFoundError(PreconditionError):
    status_code = 404

    def __init__(self, job_id: int) -> None:
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class MissingVideoError(PreconditionError):
    pass


class VideoNotInStorageError(PreconditionError):
    def __init__(self, key: str) -> None:
        super().__init__(
            f"Video file not found in storage: {key}. "
            "The video may have been deleted or the key is incorrect."
        )
        self.key = key


class UnsupportedStorageError(PreconditionError):
    pass


class MissingTranscriptError(PreconditionError):
    pass


class UnknownJobTypeError(PreconditionError):
    def __init__(self, job_type: object) -> None:
        super().__init__(f"Unknown job type: {job_type}")
        self.job_type = job_type


class InvalidJobTransitionError(VideoProcessingError):
    status_code = 409


class MediaOperationError(VideoProcessingError):
    """ffmpeg, transcription or a wrapped handler failure."""


class LLMServiceError(VideoProcessingError):
    """The LLM server could not be reached or answered with an error."""

    status_code = 502
