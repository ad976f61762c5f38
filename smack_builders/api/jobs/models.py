"""Build job data models."""
from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Optional

from pydantic import BaseModel, Field, field_validator


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class JobStatus(str, enum.Enum):
    pending = "pending"
    running = "running"
    succeeded = "succeeded"
    failed = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: FrozenSet[JobStatus] = frozenset({JobStatus.succeeded, JobStatus.failed})

# Forward-only lifecycle.  ``running`` may be skipped but never revisited.
ALLOWED_TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.pending: frozenset({JobStatus.running, JobStatus.succeeded, JobStatus.failed}),
    JobStatus.running: frozenset({JobStatus.succeeded, JobStatus.failed}),
    JobStatus.succeeded: frozenset(),
    JobStatus.failed: frozenset(),
}


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    """Return True if *current* → *target* is a legal forward transition."""
    return target in ALLOWED_TRANSITIONS[current]


class BuildKind(str, enum.Enum):
    """Closed set of supported build kinds; each maps to one backend."""

    build_artifact = "build-artifact"
    flutter_apk = "flutter-apk-build"
    desktop = "desktop-build"
    react_native_eas = "react-native-eas-build"
    game_scene = "game-scene"
    flutter_codegen = "flutter-codegen"


class ErrorKind(str, enum.Enum):
    invalid_input = "invalid_input"
    not_found = "not_found"
    invalid_transition = "invalid_transition"
    backend_failure = "backend_failure"
    timeout = "timeout"
    interrupted = "interrupted"


class BuildResult(BaseModel):
    """Output of a builder backend.  ``locator`` is opaque to the queue."""

    locator: str
    command: Optional[str] = None
    stdout: str = ""
    stderr: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("locator")
    @classmethod
    def _locator_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("locator must be a non-empty URI")
        return v


class BuildJob(BaseModel):
    """Persistent representation of a build job."""

    job_id: str
    project_ref: str
    kind: BuildKind
    status: JobStatus = JobStatus.pending
    owner: Optional[str] = None
    params: Dict[str, Any] = Field(default_factory=dict)
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    attempts: int = 0
    progress: float = 0.0
    progress_message: str = ""
    result: Optional[BuildResult] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal
