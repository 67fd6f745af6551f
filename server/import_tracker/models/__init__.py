"""ORM models exposed for external modules."""
from .base import Base
from .batch_job import BatchJob, BatchJobStatus

__all__ = [
    "Base",
    "BatchJob",
    "BatchJobStatus",
]
