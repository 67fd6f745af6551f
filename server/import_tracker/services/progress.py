"""Progress, throughput and ETA calculations for import jobs.

Every function here is pure and total: given a record (and a reference
time) it returns a defined number or ``None``; it never raises and never
yields NaN or infinity. Out-of-range counters written by the worker are
clamped to the nearest valid value.
"""
from __future__ import annotations

import math
import sys
from datetime import datetime

from import_tracker.schemas.import_job import ImportJobRecord

MAX_RATE = sys.float_info.max


def _round_half_up(value: float, digits: int = 0) -> float:
    factor = 10**digits
    scaled = value * factor + 0.5
    if not math.isfinite(scaled):
        return value
    return math.floor(scaled) / factor


def _frozen_end(job: ImportJobRecord) -> datetime | None:
    """End-of-job timestamp used once a job is terminal."""
    return job.completed_at or job.updated_at


def percentage(job: ImportJobRecord) -> int:
    """Whole-number percent complete, clamped to [0, 100]; 0 while the total is unknown."""
    if job.total_rows <= 0:
        return 0
    processed = max(0, min(job.processed_rows, job.total_rows))
    return int(_round_half_up(100 * processed / job.total_rows))


def processing_rate(job: ImportJobRecord, now: datetime) -> float:
    """Rows processed per second since processing started, to one decimal place.

    Terminal jobs are measured up to their end timestamp so the reported
    rate stops changing once the job finishes. Counters too large for a
    float report the largest finite rate.
    """
    if job.started_at is None or job.processed_rows <= 0:
        return 0.0

    reference = _frozen_end(job) if job.is_terminal else now
    if reference is None:
        return 0.0

    elapsed_seconds = (reference - job.started_at).total_seconds()
    if elapsed_seconds <= 0:
        return 0.0

    try:
        rate = job.processed_rows / elapsed_seconds
    except OverflowError:
        return MAX_RATE
    if not math.isfinite(rate):
        return MAX_RATE
    return _round_half_up(rate, 1)


def estimated_time_remaining(job: ImportJobRecord, rate: float) -> int | None:
    """Seconds until completion at ``rate``, or ``None`` when it cannot be estimated."""
    if job.is_terminal or rate <= 0:
        return None

    remaining_rows = job.total_rows - job.processed_rows
    if remaining_rows <= 0:
        return 0
    try:
        return math.ceil(remaining_rows / rate)
    except OverflowError:
        # Remaining work does not fit in a float.
        return None


def duration_ms(job: ImportJobRecord, now: datetime) -> int:
    """Milliseconds between the start of processing and completion (or ``now``)."""
    if job.started_at is None:
        return 0

    end = job.completed_at
    if end is None:
        end = job.updated_at if job.is_terminal else now
    if end is None:
        return 0

    elapsed = (end - job.started_at).total_seconds() * 1000
    return max(0, int(elapsed))
