"""Entrypoint for the FastAPI application."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from import_tracker.api import batch_jobs, health, import_jobs
from import_tracker.api.job_helpers import register_exception_handlers
from import_tracker.core.config import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
)

app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="Status tracking for bulk catalog import jobs",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Register API routers
app.include_router(health.router)  # Health checks at root level
app.include_router(import_jobs.router, prefix=settings.api_prefix)
app.include_router(batch_jobs.router, prefix=settings.api_prefix)
