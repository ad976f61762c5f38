"""Builder backend interface and shared helpers."""
from __future__ import annotations

import abc
import json
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

from ..api.jobs.errors import InvalidInputError
from ..api.jobs.models import BuildJob, BuildKind, BuildResult

ProgressCallback = Callable[[float, str], Awaitable[None]]


class BuilderBackend(abc.ABC):
    """Performs the actual build or generation for one ``BuildKind``.

    ``execute`` resolves to a ``BuildResult`` or raises; the queue records
    any exception on the job, so implementations should raise
    ``BuilderError`` with a message a user can act on.
    """

    kind: BuildKind

    def validate(self, params: Dict[str, Any], project_ref: Optional[str] = None) -> None:
        """Reject backend-specific parameters before a job is created.

        Raises
        ------
        InvalidInputError
            If a required parameter is missing or malformed.
        """

    @abc.abstractmethod
    async def execute(self, job: BuildJob, progress: Optional[ProgressCallback] = None) -> BuildResult:
        """Build *job* and return the locator of what was produced."""


class PromptBackend(BuilderBackend):
    """Backend driven by a natural-language ``prompt`` parameter."""

    def validate(self, params: Dict[str, Any], project_ref: Optional[str] = None) -> None:
        prompt = params.get("prompt")
        if not isinstance(prompt, str) or not prompt.strip():
            raise InvalidInputError(f"prompt is required for {self.kind.value} jobs")


async def report(progress: Optional[ProgressCallback], pct: float, message: str) -> None:
    if progress is not None:
        await progress(pct, message)


def write_artifact(artifact_dir: Path, job: BuildJob, filename: str, document: Dict[str, Any]) -> str:
    """Write *document* as JSON under ``artifact_dir/<job_id>/`` and return its file URI."""
    target_dir = Path(artifact_dir).resolve() / job.job_id
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / filename
    path.write_text(json.dumps(document, indent=2), encoding="utf-8")
    return path.as_uri()
