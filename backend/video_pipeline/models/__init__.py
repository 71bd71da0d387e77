# Namespace for ORM models.
from .job import JobStatus, JobType, VideoProcessingJob
from .segment import Segment
from .transcript_chunk import TranscriptChunk

__all__ = ["JobStatus", "JobType", "VideoProcessingJob", "Segment", "TranscriptChunk"]
