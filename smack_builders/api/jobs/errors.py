"""Exceptions raised by the job store, build queue and builder backends."""
from __future__ import annotations

from .models import ErrorKind


class BuildJobError(Exception):
    """Base class for build-job errors.  ``kind`` is recorded on failed jobs."""

    kind: ErrorKind = ErrorKind.backend_failure


class InvalidInputError(BuildJobError):
    """Request is missing a required field or carries a malformed one."""

    kind = ErrorKind.invalid_input


class JobNotFoundError(BuildJobError):
    """Requested job ID does not exist."""

    kind = ErrorKind.not_found


class InvalidTransitionError(BuildJobError):
    """Attempt to mutate a terminal or nonexistent job."""

    kind = ErrorKind.invalid_transition


class BuilderError(BuildJobError):
    """A builder backend could not produce a result."""

    kind = ErrorKind.backend_failure


class BuildTimeoutError(BuildJobError):
    """A backend invocation exceeded the configured timeout."""

    kind = ErrorKind.timeout


class JobQueueFullError(Exception):
    """Raised when the build queue is at capacity."""
