"""Pydantic schemas describing import job records and their status projection."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from import_tracker.core.clock import ensure_utc


class ImportStatus(str, Enum):
    """Enumerates the lifecycle states an import job can be in."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"


TERMINAL_STATUSES = frozenset(
    {ImportStatus.COMPLETED.value, ImportStatus.FAILED.value, ImportStatus.CANCELED.value}
)


class ArtifactKind(str, Enum):
    """Named outputs the import worker can attach to a job."""

    VALIDATION_REPORT = "validation_report"
    ERROR_ROWS = "error_rows"
    RESULT_SUMMARY = "result_summary"
    ANNOTATED_INPUT = "annotated_input"
    CHECKPOINT = "checkpoint"
    DLQ_ENTRIES = "dlq_entries"


class ImportOptions(BaseModel):
    """Submission options captured when the job was created.

    Values are passed through as stored. The worker understands
    ``upsert_by`` in off/handle/sku/external_id, ``variant_strategy`` in
    explicit/default_type and ``image_strategy`` in replace/append/merge,
    but a newer worker may write values this service does not know about.
    """

    dry_run: bool = False
    upsert_by: str = "off"
    variant_strategy: str = "explicit"
    force_prune_missing_variants: bool = False
    image_strategy: str = "replace"
    mapping_profile_id: str | None = None

    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("upsert_by", "variant_strategy", "image_strategy", "mapping_profile_id", mode="before")
    @classmethod
    def scalar_as_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class JobError(BaseModel):
    """Structured failure descriptor recorded on failed jobs."""

    code: str = "UNKNOWN"
    message: str
    details: Any | None = None

    @field_validator("code", mode="before")
    @classmethod
    def code_as_text(cls, value: Any) -> Any:
        if value is None or value == "":
            return "UNKNOWN"
        return str(value)


class ImportJobRecord(BaseModel):
    """Stored state of a single import job.

    Counters are deliberately unconstrained: the record is written by a
    separate worker, and out-of-range values are clamped at calculation time
    instead of being rejected on load.
    """

    id: str
    trace_id: str | None = None
    idempotency_key: str | None = None
    status: str = ImportStatus.PENDING.value
    total_rows: int = 0
    processed_rows: int = 0
    valid_rows: int = 0
    invalid_rows: int = 0
    skipped_rows: int = 0
    created_at: datetime | None = None
    started_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    options: ImportOptions = Field(default_factory=ImportOptions)
    artifacts: dict[str, str] = Field(default_factory=dict)
    error: JobError | None = None

    @field_validator("status", mode="before")
    @classmethod
    def status_value(cls, value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        return value

    @field_validator("total_rows", "processed_rows", "valid_rows", "invalid_rows", "skipped_rows", mode="before")
    @classmethod
    def missing_counter_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("created_at", "started_at", "updated_at", "completed_at")
    @classmethod
    def normalize_timestamp(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class ProgressInfo(BaseModel):
    """Row counters plus the derived completion percentage."""

    rows_total: int
    rows_processed: int
    rows_valid: int
    rows_invalid: int
    rows_skipped: int
    percentage: int = Field(ge=0, le=100)


class PerformanceInfo(BaseModel):
    """Throughput, ETA and timing information for a job."""

    processing_rate: float = Field(ge=0, description="Rows per second, one decimal place")
    estimated_time_remaining: int | None = Field(
        default=None, ge=0, description="Seconds until completion, null when unknown or terminal"
    )
    started_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = Field(ge=0)


class StatusProjection(BaseModel):
    """Public status payload served to polling clients."""

    id: str
    trace_id: str
    idempotency_key: str | None = None
    status: str
    phase: str
    progress: ProgressInfo
    performance: PerformanceInfo
    artifacts: dict[str, str]
    options: ImportOptions
    error: JobError | None = None

    def to_response(self) -> dict[str, Any]:
        """Serialize for the wire, dropping ``error`` when the job has none."""
        payload = self.model_dump(mode="json")
        if self.error is None:
            payload.pop("error")
        return payload


class ArtifactsResponse(BaseModel):
    """Artifact references for a job, keyed by artifact kind."""

    id: str
    artifacts: dict[str, str]
