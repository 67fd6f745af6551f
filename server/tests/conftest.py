"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Generator

# Settings are read at import time by the application modules.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from import_tracker.models.base import Base
from import_tracker.schemas.import_job import ImportJobRecord

# SQLite in memory by default; point at PostgreSQL to match production.
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite://")

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def db_engine():
    """Create an engine with the schema in place for the test session."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_engine(
            TEST_DATABASE_URL,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(TEST_DATABASE_URL, future=True, pool_pre_ping=True)

    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing with automatic rollback."""
    connection = db_engine.connect()
    transaction = connection.begin()

    SessionLocal = sessionmaker(bind=connection, autoflush=False, autocommit=False)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture
def session_factory(db_session: Session) -> Callable[[], Session]:
    """Open new sessions on the test connection so they see rows flushed by db_session."""
    return sessionmaker(bind=db_session.get_bind(), autoflush=False, autocommit=False)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_record() -> Callable[..., ImportJobRecord]:
    """Factory for processing job records started one minute before NOW."""

    def factory(**overrides: Any) -> ImportJobRecord:
        data: dict[str, Any] = {
            "id": "job-1",
            "status": "processing",
            "total_rows": 1000,
            "processed_rows": 0,
            "created_at": NOW - timedelta(minutes=2),
            "started_at": NOW - timedelta(seconds=60),
            "updated_at": NOW - timedelta(seconds=1),
        }
        data.update(overrides)
        return ImportJobRecord(**data)

    return factory


@pytest.fixture
def fake_redis() -> "FakeRedis":
    return FakeRedis()


class FakeRedis:
    """Minimal async-friendly Redis stub for unit tests."""

    def __init__(self) -> None:
        self._hashes: dict[str, dict[str, str]] = {}
        self.expirations: dict[str, int] = {}
        self.closed = False

    async def hset(self, key: str, mapping: dict[str, str]) -> int:
        bucket = self._hashes.setdefault(key, {})
        bucket.update(mapping)
        return len(mapping)

    async def expire(self, key: str, ttl: int) -> bool:
        # TTL not simulated for tests, only recorded.
        self.expirations[key] = ttl
        return key in self._hashes

    async def hgetall(self, key: str) -> dict[str, str]:
        return dict(self._hashes.get(key, {}))

    async def aclose(self) -> None:
        self.closed = True
