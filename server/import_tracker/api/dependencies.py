"""FastAPI dependencies that provide per-request job stores."""
from __future__ import annotations

from datetime import datetime
from typing import AsyncGenerator, Callable

from fastapi import Depends
from redis.asyncio import Redis

from import_tracker.core.clock import utcnow
from import_tracker.core.config import get_settings
from import_tracker.core.db import SessionLocal
from import_tracker.core.redis_manager import create_redis_client
from import_tracker.services.job_store import BatchJobStore, JobStore, RedisJobStore

settings = get_settings()


async def get_redis_client() -> AsyncGenerator[Redis, None]:
    """FastAPI dependency that provides a Redis client for one request."""
    redis = create_redis_client(settings.redis_url, decode_responses=True)
    try:
        yield redis
    finally:
        await redis.aclose()


def get_import_job_store(redis: Redis = Depends(get_redis_client)) -> JobStore:
    """Store for import jobs recorded in the native vocabulary."""
    return RedisJobStore(redis, namespace=settings.job_store_namespace)


def get_batch_job_store() -> JobStore:
    """Store for legacy product-import batch jobs."""
    return BatchJobStore(SessionLocal)


def get_clock() -> Callable[[], datetime]:
    """Time source used when projecting status."""
    return utcnow
