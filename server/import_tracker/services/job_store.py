"""Job record stores and the errors raised at the store lookup boundary."""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Mapping, Protocol

from pydantic import ValidationError
from redis.asyncio import Redis
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from import_tracker.models.batch_job import BatchJob
from import_tracker.schemas.import_job import ImportJobRecord, JobError
from import_tracker.services.phase import BATCH_JOB_VOCABULARY, translate_status

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "import_jobs"

LEGACY_ARTIFACT_KEYS = {
    "validation_report_url": "validation_report",
    "error_rows_url": "error_rows",
    "error_rows_csv_url": "error_rows",
    "result_summary_url": "result_summary",
    "result_summary_csv_url": "result_summary",
    "annotated_xlsx_url": "annotated_input",
    "checkpoint_url": "checkpoint",
    "dlq_url": "dlq_entries",
}


class JobNotFoundError(LookupError):
    """No job record exists for the requested identifier."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Import job not found: {job_id}")
        self.job_id = job_id


class StorageUnavailableError(RuntimeError):
    """The job record store could not be reached or did not answer in time."""


class MalformedRecordError(ValueError):
    """A stored record exists but cannot be decoded into a job record."""

    def __init__(self, job_id: str, problems: list[dict[str, Any]]) -> None:
        super().__init__(f"Stored record for job {job_id} is malformed")
        self.job_id = job_id
        self.problems = problems


class InvalidTransitionError(ValueError):
    """A status change would leave a terminal state or skip a required step."""

    def __init__(self, job_id: str, current: str, requested: str) -> None:
        super().__init__(f"Job {job_id} cannot move from {current} to {requested}")
        self.job_id = job_id
        self.current = current
        self.requested = requested


class JobStore(Protocol):
    """Read contract every job record store satisfies."""

    async def get(self, job_id: str) -> ImportJobRecord | None:
        ...


def _validation_problems(exc: ValidationError) -> list[dict[str, Any]]:
    return [
        {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]


class RedisJobStore:
    """Stores one import job record per Redis hash, each field JSON-encoded."""

    def __init__(
        self,
        redis: Redis,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        ttl_seconds: int | None = None,
    ) -> None:
        self._redis = redis
        self._namespace = namespace
        self._ttl_seconds = ttl_seconds

    def _hash_key(self, job_id: str) -> str:
        return f"{self._namespace}:job:{job_id}"

    async def get(self, job_id: str) -> ImportJobRecord | None:
        """Return the stored record for ``job_id``, or ``None`` when absent."""

        raw = await self._redis.hgetall(self._hash_key(job_id))
        if not raw:
            return None

        data = {self._decode_key(key): self._decode_value(value) for key, value in raw.items()}
        try:
            return ImportJobRecord.model_validate(data)
        except ValidationError as exc:
            raise MalformedRecordError(job_id, _validation_problems(exc)) from exc

    async def put(self, record: ImportJobRecord) -> None:
        """Write the whole record, replacing every stored field."""

        payload = record.model_dump(mode="json")
        serialized = {key: json.dumps(value) for key, value in payload.items()}

        key = self._hash_key(record.id)
        await self._redis.hset(key, mapping=serialized)
        if self._ttl_seconds:
            await self._redis.expire(key, self._ttl_seconds)

    def _decode_value(self, value: str | bytes) -> Any:
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("utf-8")
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    def _decode_key(self, key: str | bytes) -> str:
        if isinstance(key, (bytes, bytearray)):
            return key.decode("utf-8")
        return key


def _first_set(*values: Any, default: Any = 0) -> Any:
    """First value that is set; zero and empty values count as unset."""
    for value in values:
        if value:
            return value
    return default


def _legacy_error(reason: Any) -> JobError | None:
    if not reason:
        return None
    if isinstance(reason, Mapping):
        return JobError(
            code=str(reason.get("code") or "UNKNOWN"),
            message=str(reason.get("message") or reason),
            details=reason.get("details"),
        )
    return JobError(message=str(reason))


def _legacy_artifacts(raw: Mapping[str, Any]) -> dict[str, str]:
    artifacts: dict[str, str] = {}
    for name, reference in raw.items():
        if not reference:
            continue
        kind = LEGACY_ARTIFACT_KEYS.get(name) or name.removesuffix("_url")
        artifacts[kind] = str(reference)
    return artifacts


def _legacy_options(job: BatchJob, context: Mapping[str, Any]) -> dict[str, Any]:
    options = dict(context.get("options") or {})
    if "upsert_by" not in options and "upsert" in options:
        options["upsert_by"] = options["upsert"]
    options["dry_run"] = bool(job.dry_run or options.get("dry_run") or options.get("mode") == "dry_run")
    return options


def batch_job_to_record(job: BatchJob) -> ImportJobRecord:
    """Adapt a legacy batch job row into the native record shape."""

    result = job.result or {}
    progress = result.get("progress") or {}
    context = job.context or {}

    data = {
        "id": job.id,
        "trace_id": context.get("trace_id"),
        "idempotency_key": context.get("idempotency_key"),
        "status": translate_status(job.status, BATCH_JOB_VOCABULARY),
        "total_rows": _first_set(result.get("rows_total"), progress.get("totalRows")),
        "processed_rows": _first_set(result.get("rows_processed"), progress.get("processedRows")),
        "valid_rows": _first_set(result.get("rows_valid")),
        "invalid_rows": _first_set(result.get("rows_invalid")),
        "skipped_rows": _first_set(result.get("rows_skipped")),
        "created_at": job.created_at,
        "started_at": job.processing_at,
        "updated_at": job.updated_at,
        "completed_at": job.completed_at,
        "options": _legacy_options(job, context),
        "artifacts": _legacy_artifacts(result.get("artifacts") or {}),
    }
    try:
        data["error"] = _legacy_error(job.failed_reason)
        return ImportJobRecord.model_validate(data)
    except ValidationError as exc:
        raise MalformedRecordError(job.id, _validation_problems(exc)) from exc


class BatchJobStore:
    """Reads product-import batch jobs from the relational database."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        """Initialize store with a session factory.

        Each lookup opens and closes its own session on the thread that
        runs it.

        Args:
            session_factory: Returns a new SQLAlchemy session, e.g. ``SessionLocal``
        """
        self._session_factory = session_factory

    def _load(self, job_id: str) -> ImportJobRecord | None:
        with self._session_factory() as session:
            job = session.get(BatchJob, job_id)
            if job is None:
                return None
            return batch_job_to_record(job)

    async def get(self, job_id: str) -> ImportJobRecord | None:
        """Fetch and adapt the batch job, running the blocking query off the event loop."""

        return await run_in_threadpool(self._load, job_id)
