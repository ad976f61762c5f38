"""Singleton dependency providers for FastAPI ``Depends()``."""
from __future__ import annotations

from ..config import ApiSettings

# Lazy singletons, initialised at first call rather than import time
# so the event loop is already running when async resources are needed.

_settings: ApiSettings | None = None
_job_store = None
_build_queue = None


def get_settings() -> ApiSettings:
    global _settings
    if _settings is None:
        _settings = ApiSettings()
    return _settings


def use_settings(settings: ApiSettings) -> None:
    """Install *settings* for the providers below (called by the app factory)."""
    global _settings
    _settings = settings


def get_job_store():
    """Return the singleton ``JobStore`` selected by ``settings.job_store``."""
    global _job_store
    if _job_store is None:
        settings = get_settings()
        if settings.job_store == "memory":
            from ..jobs.store import InMemoryJobStore

            _job_store = InMemoryJobStore()
        else:
            from ..jobs.store import SqliteJobStore

            _job_store = SqliteJobStore(settings.job_db_path)
    return _job_store


def get_build_queue():
    """Return the singleton ``BuildQueue`` wired to the default backends."""
    global _build_queue
    if _build_queue is None:
        from ...builders import default_backends
        from ..jobs.runner import BuildQueue, RetryPolicy

        settings = get_settings()
        _build_queue = BuildQueue(
            get_job_store(),
            default_backends(settings),
            max_concurrent=settings.max_concurrent,
            max_queued=settings.max_queued,
            retry_policy=RetryPolicy(
                max_retries=settings.max_retries,
                backoff_seconds=settings.retry_backoff_seconds,
            ),
            timeout_seconds=settings.job_timeout_seconds,
        )
    return _build_queue


def reset_providers() -> None:
    """Drop the cached singletons (tests and app re-creation)."""
    global _settings, _job_store, _build_queue
    _settings = None
    _job_store = None
    _build_queue = None
