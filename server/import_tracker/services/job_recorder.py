"""Write-side helper the import worker uses to advance job records."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable
from uuid import uuid4

from import_tracker.core.clock import utcnow
from import_tracker.schemas.import_job import (
    ArtifactKind,
    ImportJobRecord,
    ImportOptions,
    ImportStatus,
    JobError,
)
from import_tracker.services.job_store import (
    InvalidTransitionError,
    JobNotFoundError,
    RedisJobStore,
)

logger = logging.getLogger(__name__)

# Allowed source states for each requested status.
_TRANSITIONS: dict[ImportStatus, frozenset[str]] = {
    ImportStatus.PROCESSING: frozenset({ImportStatus.PENDING.value}),
    ImportStatus.COMPLETED: frozenset({ImportStatus.PROCESSING.value}),
    ImportStatus.FAILED: frozenset({ImportStatus.PROCESSING.value}),
    ImportStatus.CANCELED: frozenset({ImportStatus.PENDING.value, ImportStatus.PROCESSING.value}),
}


class ImportJobRecorder:
    """Applies lifecycle transitions and counter updates to stored job records.

    Counters only ever move forward, so readers polling the same store never
    observe progress going backwards.
    """

    def __init__(self, store: RedisJobStore, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._store = store
        self._clock = clock

    async def _require(self, job_id: str) -> ImportJobRecord:
        job = await self._store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def _save(self, job: ImportJobRecord, **changes: Any) -> ImportJobRecord:
        updated = job.model_copy(update={**changes, "updated_at": self._clock()})
        await self._store.put(updated)
        return updated

    async def _transition(self, job_id: str, target: ImportStatus, **changes: Any) -> ImportJobRecord:
        job = await self._require(job_id)
        if job.status not in _TRANSITIONS[target]:
            raise InvalidTransitionError(job_id, job.status, target.value)

        updated = await self._save(job, status=target.value, **changes)
        logger.info(f"Import job {job_id} moved from {job.status} to {target.value}")
        return updated

    async def create(
        self,
        job_id: str | None = None,
        *,
        trace_id: str | None = None,
        idempotency_key: str | None = None,
        options: ImportOptions | None = None,
        total_rows: int = 0,
    ) -> ImportJobRecord:
        """Store a new ``pending`` job record.

        Args:
            job_id: Identifier to use; a random UUID when omitted
            trace_id: Correlation id; defaults to the job id
            idempotency_key: Client-supplied duplicate-detection token (stored only)
            options: Submission options; safe defaults when omitted
            total_rows: Row count hint if already known

        Returns:
            The stored record
        """
        job_id = job_id or str(uuid4())
        now = self._clock()
        job = ImportJobRecord(
            id=job_id,
            trace_id=trace_id or job_id,
            idempotency_key=idempotency_key,
            status=ImportStatus.PENDING.value,
            total_rows=max(0, total_rows),
            created_at=now,
            updated_at=now,
            options=options or ImportOptions(),
        )
        await self._store.put(job)
        logger.info(f"Import job {job_id} created (trace_id={job.trace_id})")
        return job

    async def start(self, job_id: str, *, total_rows: int | None = None) -> ImportJobRecord:
        """Move a pending job into processing and stamp ``started_at``."""
        changes: dict[str, Any] = {"started_at": self._clock()}
        if total_rows is not None:
            changes["total_rows"] = max(0, total_rows)
        return await self._transition(job_id, ImportStatus.PROCESSING, **changes)

    async def record_progress(
        self,
        job_id: str,
        *,
        processed_rows: int,
        valid_rows: int | None = None,
        invalid_rows: int | None = None,
        skipped_rows: int | None = None,
        total_rows: int | None = None,
    ) -> ImportJobRecord:
        """Advance row counters of a processing job.

        A counter value lower than the stored one is ignored, so progress
        never regresses even when worker updates arrive out of order.

        Raises:
            JobNotFoundError: The job does not exist
            InvalidTransitionError: The job is not processing
        """
        job = await self._require(job_id)
        if job.status != ImportStatus.PROCESSING.value:
            raise InvalidTransitionError(job_id, job.status, "progress")

        reported = {
            "processed_rows": processed_rows,
            "valid_rows": valid_rows,
            "invalid_rows": invalid_rows,
            "skipped_rows": skipped_rows,
            "total_rows": total_rows,
        }
        changes = {
            field: max(getattr(job, field), value)
            for field, value in reported.items()
            if value is not None
        }
        updated = await self._save(job, **changes)
        logger.debug(
            f"Import job {job_id} progress: {updated.processed_rows}/{updated.total_rows or '?'} rows"
        )
        return updated

    async def attach_artifact(self, job_id: str, kind: ArtifactKind, reference: str) -> ImportJobRecord:
        """Record where an artifact produced by the worker can be retrieved."""
        job = await self._require(job_id)
        artifacts = {**job.artifacts, ArtifactKind(kind).value: reference}
        updated = await self._save(job, artifacts=artifacts)
        logger.info(f"Import job {job_id} artifact {ArtifactKind(kind).value} attached")
        return updated

    async def complete(self, job_id: str) -> ImportJobRecord:
        """Mark a processing job as completed."""
        return await self._transition(job_id, ImportStatus.COMPLETED, completed_at=self._clock())

    async def fail(
        self,
        job_id: str,
        *,
        code: str,
        message: str,
        details: Any | None = None,
    ) -> ImportJobRecord:
        """Mark a processing job as failed with a structured error."""
        error = JobError(code=code, message=message, details=details)
        updated = await self._transition(
            job_id, ImportStatus.FAILED, completed_at=self._clock(), error=error
        )
        logger.warning(f"Import job {job_id} failed: [{code}] {message}")
        return updated

    async def cancel(self, job_id: str) -> ImportJobRecord:
        """Cancel a job that has not reached a terminal state."""
        return await self._transition(job_id, ImportStatus.CANCELED, completed_at=self._clock())
