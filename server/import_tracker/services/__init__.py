"""Services module for job status logic."""
from __future__ import annotations

from .job_recorder import ImportJobRecorder
from .job_store import (
    BatchJobStore,
    InvalidTransitionError,
    JobNotFoundError,
    JobStore,
    MalformedRecordError,
    RedisJobStore,
    StorageUnavailableError,
)
from .status_projector import project
from .status_service import JobStatusService

__all__ = [
    "BatchJobStore",
    "ImportJobRecorder",
    "InvalidTransitionError",
    "JobNotFoundError",
    "JobStatusService",
    "JobStore",
    "MalformedRecordError",
    "RedisJobStore",
    "StorageUnavailableError",
    "project",
]
