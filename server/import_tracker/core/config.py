"""Application configuration loaded from environment variables."""
from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central place for strongly typed application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field(default="Import Job Status Service")
    environment: Literal["development", "staging", "production"] = Field(default="development")
    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    database_url: str = Field(validation_alias="DATABASE_URL")
    redis_url: str = Field(validation_alias="REDIS_URL")

    job_store_namespace: str = Field(default="import_jobs")
    store_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Upper bound for a single job record lookup",
    )

    @model_validator(mode="after")
    def convert_database_url(self) -> "Settings":
        """Convert postgresql+psycopg:// (psycopg3) to postgresql:// (psycopg2)."""
        if self.database_url.startswith("postgresql+psycopg://"):
            self.database_url = self.database_url.replace("postgresql+psycopg://", "postgresql://")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached Settings instance so downstream code can import directly."""

    return Settings()
