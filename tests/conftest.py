"""Shared test fixtures for the smack_builders test suite."""
from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from smack_builders.api.jobs.errors import BuilderError
from smack_builders.api.jobs.models import BuildJob, BuildKind, BuildResult
from smack_builders.api.jobs.runner import BuildQueue, RetryPolicy
from smack_builders.api.jobs.store import InMemoryJobStore
from smack_builders.builders.base import BuilderBackend


class StubBackend(BuilderBackend):
    """Backend double: succeeds with a fixed locator, or fails on demand.

    ``fail_times`` fails that many leading attempts; ``error`` fails every
    attempt; ``gate`` holds execution until the event is set.
    """

    def __init__(
        self,
        kind: BuildKind = BuildKind.build_artifact,
        *,
        error: Optional[str] = None,
        fail_times: int = 0,
        delay: float = 0.0,
        gate: Optional[asyncio.Event] = None,
        locator: str = "https://artifacts.test/app-release.apk",
    ) -> None:
        self.kind = kind
        self.error = error
        self.fail_times = fail_times
        self.delay = delay
        self.gate = gate
        self.locator = locator
        self.calls = 0
        self.seen_jobs = []

    async def execute(self, job: BuildJob, progress=None) -> BuildResult:
        self.calls += 1
        self.seen_jobs.append(job.job_id)
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if progress is not None:
            await progress(0.5, "halfway")
        if self.error is not None:
            raise BuilderError(self.error)
        if self.calls <= self.fail_times:
            raise BuilderError(f"transient failure {self.calls}")
        return BuildResult(locator=f"{self.locator}?job={job.job_id}")


@pytest.fixture
def stub_backend():
    """The ``StubBackend`` class, for tests that build their own queue."""
    return StubBackend


@pytest.fixture
async def store():
    s = InMemoryJobStore()
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
async def make_queue(store):
    """Factory for queues with custom backends / limits, shut down after the test."""
    created = []

    def _make(backends=None, **kwargs):
        if backends is None:
            backends = {BuildKind.build_artifact: StubBackend()}
        kwargs.setdefault("retry_policy", RetryPolicy(max_retries=0, backoff_seconds=0.0))
        q = BuildQueue(store, backends, **kwargs)
        created.append(q)
        return q

    yield _make
    for q in created:
        await q.shutdown()


# ── API fixtures ─────────────────────────────────────────────────────


@pytest.fixture
async def app(tmp_path):
    """Create a test FastAPI app with a fresh per-test job store and queue."""
    import smack_builders.api.deps.auth as _auth
    import smack_builders.api.deps.providers as _prov
    from smack_builders.api.config import ApiSettings
    from smack_builders.api.main import create_app
    from smack_builders.builders.game import PhaserGameBackend
    from smack_builders.builders.gemini import GeminiClient

    # Disable auth for tests so authenticated endpoints are accessible
    _orig_auth_enabled = _auth.API_AUTH_ENABLED
    _auth.API_AUTH_ENABLED = False

    settings = ApiSettings(job_store="memory", artifact_dir=str(tmp_path / "artifacts"))
    application = create_app(settings)

    store = InMemoryJobStore()
    queue = BuildQueue(
        store,
        {
            BuildKind.build_artifact: StubBackend(),
            BuildKind.game_scene: PhaserGameBackend(GeminiClient(api_key=""), tmp_path / "artifacts"),
        },
    )

    # Inject into the provider module
    _prov._job_store = store
    _prov._build_queue = queue

    yield application

    # Cleanup
    await queue.shutdown()
    _auth.API_AUTH_ENABLED = _orig_auth_enabled
    _prov.reset_providers()


@pytest.fixture
async def client(app):
    """Async HTTP client bound to the test app."""
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as ac:
        yield ac
