"""Shared read path for every import status endpoint."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from import_tracker.core.clock import utcnow
from import_tracker.schemas.import_job import ImportJobRecord, StatusProjection
from import_tracker.services.job_store import JobNotFoundError, JobStore, StorageUnavailableError
from import_tracker.services.status_projector import project

logger = logging.getLogger(__name__)


class JobStatusService:
    """Loads a job record through an injected store and projects its status."""

    def __init__(
        self,
        store: JobStore,
        *,
        timeout_seconds: float,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize service with a store and lookup deadline.

        Args:
            store: Any object satisfying the JobStore read contract
            timeout_seconds: Upper bound for a single store lookup
            clock: Returns the current time; overridable in tests
        """
        self._store = store
        self._timeout_seconds = timeout_seconds
        self._clock = clock

    async def load(self, job_id: str) -> ImportJobRecord:
        """Fetch a job record, translating store failures into boundary errors.

        Raises:
            JobNotFoundError: No record exists for ``job_id``
            StorageUnavailableError: The store failed or exceeded the deadline
            MalformedRecordError: The stored record could not be decoded
        """
        logger.debug(f"Loading import job {job_id}")
        try:
            job = await asyncio.wait_for(self._store.get(job_id), timeout=self._timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.error(f"Job store lookup timed out after {self._timeout_seconds}s for job {job_id}")
            raise StorageUnavailableError(f"Job store lookup timed out for {job_id}") from exc
        except (RedisError, SQLAlchemyError) as exc:
            logger.error(f"Job store unavailable while loading job {job_id}: {exc}")
            raise StorageUnavailableError(str(exc)) from exc

        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def get_status(self, job_id: str) -> StatusProjection:
        """Return the status projection for ``job_id`` at the current time."""
        job = await self.load(job_id)
        return project(job, self._clock())
