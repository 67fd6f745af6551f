"""Status endpoint for product imports tracked as legacy batch jobs."""
from __future__ import annotations

from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from import_tracker.api.dependencies import get_batch_job_store, get_clock
from import_tracker.api.job_helpers import ERROR_RESPONSES, build_status_service, serve
from import_tracker.schemas.import_job import StatusProjection
from import_tracker.services.job_store import JobStore

router = APIRouter(prefix="/batch-jobs", tags=["import-jobs"])


@router.get(
    "/{job_id}",
    summary="Fetch batch import job status",
    description=(
        "Same status payload as /import-jobs/{job_id}, for imports submitted through "
        "the batch job pipeline. Batch job statuses are translated before the phase "
        "is derived."
    ),
    response_model=StatusProjection,
    responses=ERROR_RESPONSES,
)
async def get_batch_job_status(
    job_id: str,
    store: JobStore = Depends(get_batch_job_store),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> JSONResponse:
    service = build_status_service(store, clock)

    async def handler() -> JSONResponse:
        projection = await service.get_status(job_id)
        return JSONResponse(projection.to_response())

    return await serve(job_id, handler)
