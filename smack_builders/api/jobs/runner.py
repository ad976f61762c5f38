"""Async build queue with bounded concurrency, retry policy and SSE event streaming."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, AsyncGenerator, Dict, Mapping, Optional

from .errors import (
    BuildTimeoutError,
    InvalidInputError,
    InvalidTransitionError,
    JobNotFoundError,
    JobQueueFullError,
)
from .models import BuildJob, BuildKind, BuildResult, ErrorKind, JobStatus
from .store import JobStore

if TYPE_CHECKING:
    from ...builders.base import BuilderBackend

logger = logging.getLogger(__name__)

_TERMINAL_EVENTS = ("done",)


@dataclass
class RetryPolicy:
    """Backend retry settings.  The default makes a single attempt."""
    max_retries: int = 0
    backoff_seconds: float = 1.0

    def delay(self, attempt: int) -> float:
        """Seconds to wait after failed *attempt* (1-based)."""
        return self.backoff_seconds * (2 ** (attempt - 1))


class BuildQueue:
    """Runs builder backends for submitted jobs as background asyncio tasks."""

    def __init__(
        self,
        store: JobStore,
        backends: Mapping[BuildKind, "BuilderBackend"],
        *,
        max_concurrent: int = 2,
        max_queued: int = 20,
        retry_policy: Optional[RetryPolicy] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._store = store
        self._backends = dict(backends)
        self._sem = asyncio.Semaphore(max_concurrent)
        self._active_tasks: Dict[str, asyncio.Task] = {}
        self._event_subscribers: Dict[str, list] = {}
        self._max_queued = max_queued
        self._admitting = 0
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout_seconds = timeout_seconds

    # ── Submit & Run ─────────────────────────────────────────────────

    @property
    def pending_count(self) -> int:
        """Number of jobs queued or running."""
        return len(self._active_tasks)

    @property
    def kinds(self) -> list:
        return sorted(k.value for k in self._backends)

    def _validate(self, project_ref: Any, kind: Any, params: Dict[str, Any]) -> BuildKind:
        if not isinstance(project_ref, str) or not project_ref.strip():
            raise InvalidInputError("project_ref is required")
        if not kind:
            raise InvalidInputError("kind is required")
        try:
            build_kind = BuildKind(kind)
        except ValueError:
            raise InvalidInputError(
                f"Unsupported build kind {kind!r}. Valid kinds: {', '.join(self.kinds)}"
            ) from None
        backend = self._backends.get(build_kind)
        if backend is None:
            raise InvalidInputError(f"No builder is configured for {build_kind.value}")
        backend.validate(params, project_ref.strip())
        return build_kind

    async def submit(
        self,
        project_ref: str,
        kind: Any,
        params: Optional[Dict[str, Any]] = None,
        owner: Optional[str] = None,
    ) -> BuildJob:
        """Create a pending job and schedule its backend; return without waiting.

        Raises
        ------
        InvalidInputError
            If a required field is missing or malformed.  No job is created.
        JobQueueFullError
            If ``max_queued`` jobs are already in flight.  No job is created.
        """
        params = dict(params or {})
        build_kind = self._validate(project_ref, kind, params)
        if len(self._active_tasks) + self._admitting >= self._max_queued:
            raise JobQueueFullError(
                f"Build queue full. {self._max_queued} jobs pending. Try again later."
            )

        # Hold the slot while the record is written
        self._admitting += 1
        try:
            job = await self._store.create(project_ref.strip(), build_kind, params, owner=owner)
            task = asyncio.create_task(self._run(job.job_id))
            self._active_tasks[job.job_id] = task
        finally:
            self._admitting -= 1
        logger.info(
            "Job %s submitted (%s for %s)", job.job_id, build_kind.value, job.project_ref,
            extra={"job_id": job.job_id},
        )
        return job

    async def _run(self, job_id: str) -> None:
        try:
            async with self._sem:
                job = await self._store.update(job_id, JobStatus.running)
                logger.info("Job %s running (%s)", job_id, job.kind.value, extra={"job_id": job_id})
                await self._emit(job_id, {"event": "started", "job_id": job_id})
                await self._execute(job)
        except asyncio.CancelledError:
            try:
                await self._finish(
                    job_id, JobStatus.failed, error="Build cancelled", error_kind=ErrorKind.interrupted
                )
            except InvalidTransitionError:
                pass
            raise
        except Exception:  # noqa: BLE001
            logger.exception("Job %s: bookkeeping failed", job_id)
        finally:
            self._active_tasks.pop(job_id, None)
            await self._emit(job_id, {"event": "done", "job_id": job_id})

    async def _execute(self, job: BuildJob) -> None:
        backend = self._backends[job.kind]
        job_id = job.job_id

        async def progress(pct: float, msg: str = "") -> None:
            await self._store.update_progress(job_id, pct, msg)
            await self._emit(job_id, {"event": "progress", "job_id": job_id, "progress": pct, "message": msg})

        attempts = self.retry_policy.max_retries + 1
        for attempt in range(1, attempts + 1):
            await self._store.record_attempt(job_id, attempt)
            try:
                coro = backend.execute(job, progress)
                if self.timeout_seconds is not None:
                    try:
                        result = await asyncio.wait_for(coro, self.timeout_seconds)
                    except asyncio.TimeoutError:
                        raise BuildTimeoutError(
                            f"Build timed out after {self.timeout_seconds:g}s"
                        ) from None
                else:
                    result = await coro
                if not isinstance(result, BuildResult):
                    result = BuildResult.model_validate(result)
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                error_kind = getattr(exc, "kind", ErrorKind.backend_failure)
                if not isinstance(error_kind, ErrorKind):
                    error_kind = ErrorKind.backend_failure
                if attempt < attempts:
                    delay = self.retry_policy.delay(attempt)
                    logger.warning(
                        "Job %s attempt %d/%d failed: %s; retrying in %.1fs",
                        job_id, attempt, attempts, exc, delay,
                    )
                    await self._emit(job_id, {
                        "event": "retry", "job_id": job_id, "attempt": attempt, "error": str(exc),
                    })
                    await asyncio.sleep(delay)
                    continue
                logger.error(
                    "Job %s failed after %d attempt(s): %s", job_id, attempt, exc,
                    extra={"job_id": job_id},
                )
                await self._finish(job_id, JobStatus.failed, error=str(exc), error_kind=error_kind)
                return
            await self._finish(job_id, JobStatus.succeeded, result=result)
            return

    async def _finish(self, job_id: str, status: JobStatus, **fields: Any) -> None:
        await self._store.update(job_id, status, **fields)
        if status == JobStatus.succeeded:
            logger.info("Job %s succeeded", job_id, extra={"job_id": job_id})
            await self._emit(job_id, {"event": "completed", "job_id": job_id})
        else:
            await self._emit(job_id, {"event": "failed", "job_id": job_id, "error": fields.get("error")})

    async def wait(self, job_id: str) -> BuildJob:
        """Wait for an in-flight job to finish and return its final record."""
        task = self._active_tasks.get(job_id)
        if task is not None:
            await asyncio.wait({task})
        return await self._store.get(job_id)

    # ── Startup / Shutdown ───────────────────────────────────────────

    async def recover(self) -> int:
        """Fail jobs a previous process left pending or running."""
        recovered = 0
        for job in await self._store.list_unfinished():
            if job.job_id in self._active_tasks:
                continue
            await self._store.update(
                job.job_id,
                JobStatus.failed,
                error="Interrupted by server restart",
                error_kind=ErrorKind.interrupted,
            )
            recovered += 1
        if recovered:
            logger.warning("Marked %d interrupted job(s) as failed", recovered)
        return recovered

    async def shutdown(self) -> None:
        """Cancel in-flight jobs; each is recorded as failed."""
        tasks = list(self._active_tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        # Tasks cancelled before their first step never reach _run's handler
        for job_id in list(self._active_tasks):
            self._active_tasks.pop(job_id, None)
            try:
                await self._store.update(
                    job_id, JobStatus.failed, error="Build cancelled", error_kind=ErrorKind.interrupted
                )
            except InvalidTransitionError:
                pass

    # ── SSE Event Streaming ──────────────────────────────────────────

    async def subscribe_events(self, job_id: str) -> AsyncGenerator[Dict[str, Any], None]:
        """Yield events for a job until it is done."""
        queue: asyncio.Queue = asyncio.Queue()
        self._event_subscribers.setdefault(job_id, []).append(queue)
        try:
            # Send current state as first event
            try:
                rec = await self._store.get(job_id)
            except JobNotFoundError:
                return
            yield {"event": "status", "data": rec.model_dump(mode="json")}
            if rec.is_terminal and job_id not in self._active_tasks:
                return

            while True:
                event = await queue.get()
                yield event
                if event.get("event") in _TERMINAL_EVENTS:
                    break
        finally:
            subs = self._event_subscribers.get(job_id, [])
            if queue in subs:
                subs.remove(queue)
            if not subs:
                self._event_subscribers.pop(job_id, None)

    async def _emit(self, job_id: str, event: Dict[str, Any]) -> None:
        for q in self._event_subscribers.get(job_id, []):
            await q.put(event)
