"""Tests for the import job and batch job status endpoints."""
from __future__ import annotations

import asyncio
from datetime import timedelta
from unittest.mock import patch

import pytest
from fastapi import status
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.orm import Session

from import_tracker.api import job_helpers
from import_tracker.api.dependencies import get_batch_job_store, get_clock, get_import_job_store
from import_tracker.main import app
from import_tracker.models.batch_job import BatchJob, BatchJobStatus
from import_tracker.schemas.import_job import JobError
from import_tracker.services.job_store import BatchJobStore, RedisJobStore


class BrokenStore:
    """Store whose lookups fail with a configured exception."""

    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    async def get(self, job_id: str):
        raise self._exc


class SlowStore:
    async def get(self, job_id: str):
        await asyncio.sleep(5)


@pytest.fixture
def redis_store(fake_redis) -> RedisJobStore:
    return RedisJobStore(fake_redis)


@pytest.fixture
def client(session_factory, redis_store: RedisJobStore, now):
    """Create a FastAPI test client with stores and clock overridden."""
    app.dependency_overrides[get_batch_job_store] = lambda: BatchJobStore(session_factory)
    app.dependency_overrides[get_import_job_store] = lambda: redis_store
    app.dependency_overrides[get_clock] = lambda: (lambda: now)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def _use_store(store) -> None:
    app.dependency_overrides[get_import_job_store] = lambda: store


def _put(store: RedisJobStore, record) -> None:
    asyncio.run(store.put(record))


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


def test_status_returns_projection(client: TestClient, redis_store: RedisJobStore, make_record) -> None:
    _put(
        redis_store,
        make_record(
            id="job-1",
            total_rows=1000,
            processed_rows=700,
            valid_rows=690,
            invalid_rows=10,
            artifacts={"checkpoint": "blob://ckpt/1"},
        ),
    )

    response = client.get("/api/import-jobs/job-1")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["id"] == "job-1"
    assert data["trace_id"] == "job-1"
    assert data["status"] == "processing"
    assert data["phase"] == "importing"
    assert data["progress"]["percentage"] == 70
    assert data["progress"]["rows_valid"] == 690
    assert data["performance"]["processing_rate"] == 11.7
    assert data["performance"]["estimated_time_remaining"] == 26
    assert data["performance"]["duration_ms"] == 60_000
    assert data["artifacts"] == {"checkpoint": "blob://ckpt/1"}
    assert data["options"]["upsert_by"] == "off"
    assert "error" not in data


def test_failed_job_includes_error(client: TestClient, redis_store: RedisJobStore, make_record, now) -> None:
    _put(
        redis_store,
        make_record(
            id="job-2",
            status="failed",
            processed_rows=10,
            completed_at=now - timedelta(seconds=30),
            error=JobError(code="VALIDATION_FAILED", message="Missing sku column"),
        ),
    )

    data = client.get("/api/import-jobs/job-2").json()

    assert data["phase"] == "failed"
    assert data["error"] == {"code": "VALIDATION_FAILED", "message": "Missing sku column", "details": None}
    assert data["performance"]["estimated_time_remaining"] is None


def test_unknown_job_is_404_without_projection(client: TestClient) -> None:
    with patch("import_tracker.services.status_service.project") as mock_project:
        response = client.get("/api/import-jobs/does-not-exist")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "Job not found"}
    mock_project.assert_not_called()


def test_store_outage_is_500(client: TestClient) -> None:
    _use_store(BrokenStore(RedisConnectionError("Connection refused")))

    response = client.get("/api/import-jobs/job-1")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {
        "error": "Failed to retrieve job status",
        "message": "Job store unavailable",
    }


def test_store_timeout_is_500(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(job_helpers.settings, "store_timeout_seconds", 0.05)
    _use_store(SlowStore())

    response = client.get("/api/import-jobs/job-1")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json()["message"] == "Job store unavailable"


def test_unexpected_error_is_500_with_message(client: TestClient) -> None:
    _use_store(BrokenStore(RuntimeError("kaboom")))

    response = client.get("/api/import-jobs/job-1")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "Failed to retrieve job status", "message": "kaboom"}


def test_malformed_record_is_500_with_details(client: TestClient, fake_redis) -> None:
    asyncio.run(fake_redis.hset("import_jobs:job:job-bad", mapping={"id": '"job-bad"', "total_rows": '"many"'}))

    response = client.get("/api/import-jobs/job-bad")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    body = response.json()
    assert body["error"] == "Failed to retrieve job status"
    assert body["details"][0]["field"] == "total_rows"


def test_artifacts_endpoint(client: TestClient, redis_store: RedisJobStore, make_record) -> None:
    artifacts = {
        "validation_report": "blob://job-3/report.json",
        "dlq_entries": "blob://job-3/dlq.jsonl",
    }
    _put(redis_store, make_record(id="job-3", artifacts=artifacts))

    response = client.get("/api/import-jobs/job-3/artifacts")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"id": "job-3", "artifacts": artifacts}


def test_artifacts_endpoint_unknown_job(client: TestClient) -> None:
    response = client.get("/api/import-jobs/missing/artifacts")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "Job not found"}


def test_batch_job_status(client: TestClient, db_session: Session, now) -> None:
    db_session.add(
        BatchJob(
            id="batch_01",
            status=BatchJobStatus.PRE_PROCESSED,
            dry_run=True,
            context={"trace_id": "trace_9", "idempotency_key": "idem-9"},
            result={"rows_total": 200, "rows_processed": 10, "rows_valid": 10},
            created_at=now - timedelta(minutes=5),
            processing_at=now - timedelta(seconds=20),
            updated_at=now - timedelta(seconds=1),
        )
    )
    db_session.flush()

    response = client.get("/api/batch-jobs/batch_01")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["id"] == "batch_01"
    assert data["trace_id"] == "trace_9"
    assert data["idempotency_key"] == "idem-9"
    assert data["status"] == "processing"
    assert data["phase"] == "parsing"
    assert data["progress"]["percentage"] == 5
    assert data["performance"]["processing_rate"] == 0.5
    assert data["performance"]["estimated_time_remaining"] == 380
    assert data["options"]["dry_run"] is True
    assert "error" not in data


def test_batch_job_not_found(client: TestClient) -> None:
    response = client.get("/api/batch-jobs/batch_missing")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "Job not found"}


def test_oversized_counter_still_projects(client: TestClient, redis_store: RedisJobStore, make_record) -> None:
    _put(redis_store, make_record(id="job-big", total_rows=1, processed_rows=10**400))

    response = client.get("/api/import-jobs/job-big")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["progress"]["percentage"] == 100
    assert data["phase"] == "finalizing"
    assert data["performance"]["estimated_time_remaining"] == 0
    assert data["performance"]["processing_rate"] > 0


def test_batch_job_with_unrecognised_values_still_projects(client: TestClient, db_session: Session, now) -> None:
    db_session.add(
        BatchJob(
            id="batch_02",
            status=BatchJobStatus.FAILED,
            dry_run=False,
            context={"options": {"upsert_by": "title", "image_strategy": "sideways"}},
            result={"rows_total": 40, "rows_processed": 12},
            failed_reason={"code": 500, "message": "Upstream rejected batch"},
            processing_at=now - timedelta(seconds=30),
            completed_at=now - timedelta(seconds=10),
        )
    )
    db_session.flush()

    response = client.get("/api/batch-jobs/batch_02")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "failed"
    assert data["options"]["upsert_by"] == "title"
    assert data["options"]["image_strategy"] == "sideways"
    assert data["error"] == {"code": "500", "message": "Upstream rejected batch", "details": None}
    assert data["performance"]["processing_rate"] == 0.6
