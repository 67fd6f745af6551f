"""Polling endpoints for import job status and artifacts."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from import_tracker.api.dependencies import get_clock, get_import_job_store
from import_tracker.api.job_helpers import ERROR_RESPONSES, build_status_service, serve
from import_tracker.schemas.import_job import ArtifactsResponse, StatusProjection
from import_tracker.services.job_store import JobStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/import-jobs", tags=["import-jobs"])


@router.get(
    "/{job_id}",
    summary="Fetch import job status",
    description=(
        "Returns row counters, completion percentage, processing phase, throughput, "
        "estimated time remaining and artifact references for an import job. "
        "Clients poll this endpoint until the status is terminal."
    ),
    response_model=StatusProjection,
    responses=ERROR_RESPONSES,
)
async def get_import_job_status(
    job_id: str,
    store: JobStore = Depends(get_import_job_store),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> JSONResponse:
    """Project the current status of an import job."""
    service = build_status_service(store, clock)

    async def handler() -> JSONResponse:
        projection = await service.get_status(job_id)
        return JSONResponse(projection.to_response())

    return await serve(job_id, handler)


@router.get(
    "/{job_id}/artifacts",
    summary="List import job artifacts",
    response_model=ArtifactsResponse,
    responses=ERROR_RESPONSES,
)
async def get_import_job_artifacts(
    job_id: str,
    store: JobStore = Depends(get_import_job_store),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> JSONResponse:
    """Return references to every artifact the worker has produced so far."""
    service = build_status_service(store, clock)

    async def handler() -> JSONResponse:
        job = await service.load(job_id)
        return JSONResponse(ArtifactsResponse(id=job.id, artifacts=job.artifacts).model_dump(mode="json"))

    return await serve(job_id, handler)
