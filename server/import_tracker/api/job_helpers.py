"""Shared helpers for serving job status responses and errors."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Awaitable, Callable

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from import_tracker.core.config import get_settings
from import_tracker.services.job_store import (
    JobNotFoundError,
    JobStore,
    MalformedRecordError,
    StorageUnavailableError,
)
from import_tracker.services.status_service import JobStatusService

logger = logging.getLogger(__name__)
settings = get_settings()

STATUS_FAILURE = "Failed to retrieve job status"

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    404: {
        "description": "Import job not found",
        "content": {"application/json": {"example": {"error": "Job not found"}}},
    },
    500: {
        "description": "Job store unavailable or record unreadable",
        "content": {
            "application/json": {
                "example": {"error": STATUS_FAILURE, "message": "Job store unavailable"}
            }
        },
    },
}


def status_failure_response(message: str | None = None, details: Any | None = None) -> JSONResponse:
    """Build the 500 body shared by every status endpoint."""
    body: dict[str, Any] = {"error": STATUS_FAILURE}
    if message is not None:
        body["message"] = message
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


def build_status_service(store: JobStore, clock: Callable[[], datetime]) -> JobStatusService:
    return JobStatusService(store, timeout_seconds=settings.store_timeout_seconds, clock=clock)


async def serve(job_id: str, handler: Callable[[], Awaitable[Any]]) -> Any:
    """Run a status handler, turning unexpected failures into the 500 body.

    Boundary errors propagate to the exception handlers registered on the app.
    """
    try:
        return await handler()
    except (JobNotFoundError, StorageUnavailableError, MalformedRecordError):
        raise
    except Exception as exc:
        logger.exception(f"Unexpected error retrieving status for job {job_id}: {exc}")
        return status_failure_response(message=str(exc))


async def _job_not_found(request: Request, exc: JobNotFoundError) -> JSONResponse:
    logger.info(f"Import job {exc.job_id} not found")
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Job not found"})


async def _storage_unavailable(request: Request, exc: StorageUnavailableError) -> JSONResponse:
    return status_failure_response(message="Job store unavailable")


async def _malformed_record(request: Request, exc: MalformedRecordError) -> JSONResponse:
    logger.error(f"Malformed record for import job {exc.job_id}: {exc.problems}")
    return status_failure_response(message=str(exc), details=exc.problems)


def register_exception_handlers(app: FastAPI) -> None:
    """Map store boundary errors onto the status endpoint error bodies."""
    app.add_exception_handler(JobNotFoundError, _job_not_found)
    app.add_exception_handler(StorageUnavailableError, _storage_unavailable)
    app.add_exception_handler(MalformedRecordError, _malformed_record)
