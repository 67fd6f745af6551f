"""Public schema exports."""

from .import_job import (
    ArtifactKind,
    ArtifactsResponse,
    ImportJobRecord,
    ImportOptions,
    ImportStatus,
    JobError,
    PerformanceInfo,
    ProgressInfo,
    StatusProjection,
    TERMINAL_STATUSES,
)

__all__ = [
    "ArtifactKind",
    "ArtifactsResponse",
    "ImportJobRecord",
    "ImportOptions",
    "ImportStatus",
    "JobError",
    "PerformanceInfo",
    "ProgressInfo",
    "StatusProjection",
    "TERMINAL_STATUSES",
]
