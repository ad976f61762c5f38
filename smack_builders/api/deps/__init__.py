"""Dependency injection providers."""
from .auth import require_caller
from .providers import (
    get_build_queue,
    get_job_store,
    get_settings,
)

__all__ = [
    "get_build_queue",
    "get_job_store",
    "get_settings",
    "require_caller",
]
