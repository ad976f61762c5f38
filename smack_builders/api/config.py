"""Settings for the API layer and the build queue."""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

from ..config import (
    DEFAULT_ARTIFACT_BASE_URL,
    DEFAULT_ARTIFACT_DIR,
    DEFAULT_COMMAND_TIMEOUT_SECONDS,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_JOB_DB_PATH,
    LOG_FORMAT,
    LOG_LEVEL,
)


class ApiSettings(BaseSettings):
    """Immutable settings loaded from environment / .env file."""

    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: str = "http://localhost:5173,http://localhost:8000"
    log_level: str = LOG_LEVEL
    log_format: str = LOG_FORMAT

    # Job store
    job_store: Literal["sqlite", "memory"] = "sqlite"
    job_db_path: str = DEFAULT_JOB_DB_PATH

    # Build queue
    max_concurrent: int = 2
    max_queued: int = 20
    job_timeout_seconds: Optional[float] = None
    max_retries: int = 0
    retry_backoff_seconds: float = 1.0

    # Builders
    artifact_dir: str = str(DEFAULT_ARTIFACT_DIR)
    artifact_base_url: str = DEFAULT_ARTIFACT_BASE_URL
    projects_root: str = "."
    gemini_model: str = DEFAULT_GEMINI_MODEL
    command_timeout_seconds: float = DEFAULT_COMMAND_TIMEOUT_SECONDS

    model_config = {"env_prefix": "SMACK_API_", "env_file": ".env", "extra": "ignore"}

    @field_validator("max_concurrent", "max_queued")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("max_retries")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("job_timeout_seconds")
    @classmethod
    def _timeout_positive(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("must be > 0 when set")
        return v
