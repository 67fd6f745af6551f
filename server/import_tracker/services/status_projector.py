"""Builds the public status payload from a stored import job record."""
from __future__ import annotations

from datetime import datetime

from import_tracker.schemas.import_job import (
    ImportJobRecord,
    PerformanceInfo,
    ProgressInfo,
    StatusProjection,
)
from import_tracker.services.phase import derive_phase
from import_tracker.services.progress import (
    duration_ms,
    estimated_time_remaining,
    percentage,
    processing_rate,
)


def project(job: ImportJobRecord, now: datetime) -> StatusProjection:
    """Compute the status projection for ``job`` as seen at ``now``.

    The record is expected to carry a status already translated into the
    native vocabulary. The record is never modified.
    """
    percent = percentage(job)
    rate = processing_rate(job, now)

    return StatusProjection(
        id=job.id,
        trace_id=job.trace_id or job.id,
        idempotency_key=job.idempotency_key,
        status=job.status,
        phase=derive_phase(job.status, percent),
        progress=ProgressInfo(
            rows_total=max(0, job.total_rows),
            rows_processed=max(0, job.processed_rows),
            rows_valid=max(0, job.valid_rows),
            rows_invalid=max(0, job.invalid_rows),
            rows_skipped=max(0, job.skipped_rows),
            percentage=percent,
        ),
        performance=PerformanceInfo(
            processing_rate=rate,
            estimated_time_remaining=estimated_time_remaining(job, rate),
            started_at=job.started_at,
            updated_at=job.updated_at,
            completed_at=job.completed_at,
            duration_ms=duration_ms(job, now),
        ),
        artifacts=dict(job.artifacts),
        options=job.options,
        error=job.error,
    )
