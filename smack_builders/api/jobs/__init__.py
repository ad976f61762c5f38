"""Build job store and queue."""
from .errors import (
    BuilderError,
    BuildJobError,
    BuildTimeoutError,
    InvalidInputError,
    InvalidTransitionError,
    JobNotFoundError,
    JobQueueFullError,
)
from .models import BuildJob, BuildKind, BuildResult, ErrorKind, JobStatus
from .runner import BuildQueue, RetryPolicy
from .store import InMemoryJobStore, JobStore, SqliteJobStore

__all__ = [
    "BuildJob",
    "BuildJobError",
    "BuildKind",
    "BuildQueue",
    "BuildResult",
    "BuildTimeoutError",
    "BuilderError",
    "ErrorKind",
    "InMemoryJobStore",
    "InvalidInputError",
    "InvalidTransitionError",
    "JobNotFoundError",
    "JobQueueFullError",
    "JobStatus",
    "JobStore",
    "RetryPolicy",
    "SqliteJobStore",
]
