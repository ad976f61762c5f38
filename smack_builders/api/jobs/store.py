"""Persistence for build job records.

``JobStore`` owns the lifecycle rules (id allocation, forward-only
transitions, per-job write serialization); subclasses only provide the
backing storage.  ``InMemoryJobStore`` is used in tests and single-process
development, ``SqliteJobStore`` survives restarts.
"""
from __future__ import annotations

import abc
import asyncio
import contextlib
import json
import logging
import sqlite3
import uuid
from typing import Any, AsyncIterator, Dict, List, Optional

import aiosqlite

from .errors import InvalidTransitionError, JobNotFoundError
from .models import (
    BuildJob,
    BuildKind,
    BuildResult,
    ErrorKind,
    JobStatus,
    can_transition,
    utc_now,
)

logger = logging.getLogger(__name__)

_MAX_ID_ATTEMPTS = 5


def new_job_id() -> str:
    return f"job_{uuid.uuid4().hex}"


class _KeyedLocks:
    """One ``asyncio.Lock`` per job id so writes to distinct jobs never contend.

    A lock lives only while some task holds or waits on it; the entry is
    dropped when the last user releases it.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @contextlib.asynccontextmanager
    async def __call__(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


class JobStore(abc.ABC):
    """Async store for build job lifecycle tracking."""

    def __init__(self) -> None:
        self._locks = _KeyedLocks()

    # ── Storage primitives ───────────────────────────────────────────

    async def initialize(self) -> None:
        """Prepare the backing storage."""

    async def close(self) -> None:
        """Release the backing storage."""

    @abc.abstractmethod
    async def _insert(self, job: BuildJob) -> bool:
        """Insert *job*; return False if its id is already taken."""

    @abc.abstractmethod
    async def _load(self, job_id: str) -> Optional[BuildJob]:
        """Return an independent copy of the stored record, or None."""

    @abc.abstractmethod
    async def _save(self, job: BuildJob) -> None:
        """Replace the stored record for ``job.job_id`` with *job*."""

    @abc.abstractmethod
    async def list_jobs(self, limit: int = 20, owner: Optional[str] = None) -> List[BuildJob]:
        """List jobs ordered by creation time (newest first)."""

    @abc.abstractmethod
    async def list_unfinished(self) -> List[BuildJob]:
        """Return every job still ``pending`` or ``running``."""

    @abc.abstractmethod
    async def count(self) -> int:
        """Number of job records held."""

    # ── Lifecycle ────────────────────────────────────────────────────

    async def create(
        self,
        project_ref: str,
        kind: BuildKind,
        params: Optional[Dict[str, Any]] = None,
        owner: Optional[str] = None,
    ) -> BuildJob:
        """Insert a new pending job and return its record."""
        for _ in range(_MAX_ID_ATTEMPTS):
            job = BuildJob(
                job_id=new_job_id(),
                project_ref=project_ref,
                kind=kind,
                owner=owner,
                params=params or {},
            )
            if await self._insert(job):
                return job.model_copy(deep=True)
            logger.warning("Job id collision on %s; regenerating", job.job_id)
        raise RuntimeError("Could not allocate a unique job id")

    async def get(self, job_id: str) -> BuildJob:
        """Fetch a snapshot of a single job.

        Raises
        ------
        JobNotFoundError
            If no job has this id.
        """
        job = await self._load(job_id)
        if job is None:
            raise JobNotFoundError(f"Job '{job_id}' not found")
        return job

    async def update(
        self,
        job_id: str,
        status: JobStatus,
        *,
        result: Optional[BuildResult] = None,
        error: Optional[str] = None,
        error_kind: Optional[ErrorKind] = None,
    ) -> BuildJob:
        """Transition a job to *status* and attach its result or error.

        Raises
        ------
        InvalidTransitionError
            If the job does not exist, is already terminal, or the move is
            not forward.
        """
        async with self._locks(job_id):
            job = await self._load(job_id)
            if job is None:
                raise InvalidTransitionError(f"Job '{job_id}' does not exist")
            if not can_transition(job.status, status):
                raise InvalidTransitionError(
                    f"Job '{job_id}' cannot move from {job.status.value} to {status.value}"
                )
            now = utc_now()
            job.status = status
            job.updated_at = now
            if status == JobStatus.running:
                job.started_at = now
            if status.is_terminal:
                job.completed_at = now
            if status == JobStatus.succeeded:
                job.progress = 1.0
            if result is not None:
                job.result = result
            if error is not None:
                job.error = error
            if error_kind is not None:
                job.error_kind = error_kind
            await self._save(job)
            return job.model_copy(deep=True)

    async def update_progress(self, job_id: str, progress: float, message: str = "") -> None:
        """Update job progress (0.0 – 1.0).  Ignored once the job is terminal."""
        async with self._locks(job_id):
            job = await self._load(job_id)
            if job is None:
                raise JobNotFoundError(f"Job '{job_id}' not found")
            if job.is_terminal:
                return
            job.progress = min(max(float(progress), 0.0), 1.0)
            job.progress_message = message
            job.updated_at = utc_now()
            await self._save(job)

    async def record_attempt(self, job_id: str, attempts: int) -> None:
        """Store how many times the backend has been invoked for this job."""
        async with self._locks(job_id):
            job = await self._load(job_id)
            if job is None:
                raise JobNotFoundError(f"Job '{job_id}' not found")
            if job.is_terminal:
                return
            job.attempts = attempts
            job.updated_at = utc_now()
            await self._save(job)


class InMemoryJobStore(JobStore):
    """Dict-backed store.  Records are copied on every read and write."""

    def __init__(self) -> None:
        super().__init__()
        self._jobs: Dict[str, BuildJob] = {}

    async def close(self) -> None:
        self._jobs.clear()

    async def _insert(self, job: BuildJob) -> bool:
        if job.job_id in self._jobs:
            return False
        self._jobs[job.job_id] = job.model_copy(deep=True)
        return True

    async def _load(self, job_id: str) -> Optional[BuildJob]:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job is not None else None

    async def _save(self, job: BuildJob) -> None:
        self._jobs[job.job_id] = job.model_copy(deep=True)

    async def list_jobs(self, limit: int = 20, owner: Optional[str] = None) -> List[BuildJob]:
        jobs = [j for j in self._jobs.values() if owner is None or j.owner == owner]
        jobs.sort(key=lambda j: j.created_at, reverse=True)
        return [j.model_copy(deep=True) for j in jobs[:limit]]

    async def list_unfinished(self) -> List[BuildJob]:
        return [j.model_copy(deep=True) for j in self._jobs.values() if not j.is_terminal]

    async def count(self) -> int:
        return len(self._jobs)


_COLUMNS = (
    "job_id", "project_ref", "kind", "status", "owner", "params",
    "created_at", "updated_at", "started_at", "completed_at",
    "attempts", "progress", "progress_message", "result", "error", "error_kind",
)


class SqliteJobStore(JobStore):
    """Async SQLite store; job records survive process restarts."""

    def __init__(self, db_path: str = "builder_jobs.db") -> None:
        super().__init__()
        self.db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None

    async def initialize(self) -> None:
        """Create the jobs table if it doesn't exist."""
        if self._db is not None:
            return
        self._db = await aiosqlite.connect(self.db_path)
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS build_jobs (
                job_id TEXT PRIMARY KEY,
                project_ref TEXT NOT NULL,
                kind TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                owner TEXT,
                params TEXT DEFAULT '{}',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                started_at TEXT,
                completed_at TEXT,
                attempts INTEGER DEFAULT 0,
                progress REAL DEFAULT 0.0,
                progress_message TEXT DEFAULT '',
                result TEXT,
                error TEXT,
                error_kind TEXT
            )
        """)
        await self._db.execute(
            "CREATE INDEX IF NOT EXISTS idx_build_jobs_created ON build_jobs (created_at)"
        )
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    async def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            await self.initialize()
        return self._db

    # ── Storage primitives ───────────────────────────────────────────

    async def _insert(self, job: BuildJob) -> bool:
        db = await self._conn()
        placeholders = ",".join("?" for _ in _COLUMNS)
        try:
            await db.execute(
                f"INSERT INTO build_jobs ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                self._record_to_row(job),
            )
        except sqlite3.IntegrityError:
            return False
        await db.commit()
        return True

    async def _load(self, job_id: str) -> Optional[BuildJob]:
        db = await self._conn()
        async with db.execute("SELECT * FROM build_jobs WHERE job_id = ?", (job_id,)) as cur:
            row = await cur.fetchone()
            desc = cur.description
        if row is None:
            return None
        return self._row_to_record(row, desc)

    async def _save(self, job: BuildJob) -> None:
        db = await self._conn()
        sets = ", ".join(f"{c} = ?" for c in _COLUMNS[1:])
        row = self._record_to_row(job)
        await db.execute(f"UPDATE build_jobs SET {sets} WHERE job_id = ?", (*row[1:], row[0]))
        await db.commit()

    async def list_jobs(self, limit: int = 20, owner: Optional[str] = None) -> List[BuildJob]:
        db = await self._conn()
        if owner is None:
            query, args = "SELECT * FROM build_jobs ORDER BY created_at DESC LIMIT ?", (limit,)
        else:
            query = "SELECT * FROM build_jobs WHERE owner = ? ORDER BY created_at DESC LIMIT ?"
            args = (owner, limit)
        async with db.execute(query, args) as cur:
            rows = await cur.fetchall()
            desc = cur.description
        return [self._row_to_record(r, desc) for r in rows]

    async def list_unfinished(self) -> List[BuildJob]:
        db = await self._conn()
        async with db.execute(
            "SELECT * FROM build_jobs WHERE status IN (?, ?) ORDER BY created_at",
            (JobStatus.pending.value, JobStatus.running.value),
        ) as cur:
            rows = await cur.fetchall()
            desc = cur.description
        return [self._row_to_record(r, desc) for r in rows]

    async def count(self) -> int:
        db = await self._conn()
        async with db.execute("SELECT COUNT(*) FROM build_jobs") as cur:
            row = await cur.fetchone()
        return int(row[0])

    # ── Helpers ───────────────────────────────────────────────────────

    @staticmethod
    def _record_to_row(job: BuildJob) -> tuple:
        return (
            job.job_id,
            job.project_ref,
            job.kind.value,
            job.status.value,
            job.owner,
            json.dumps(job.params),
            job.created_at,
            job.updated_at,
            job.started_at,
            job.completed_at,
            job.attempts,
            job.progress,
            job.progress_message,
            job.result.model_dump_json() if job.result is not None else None,
            job.error,
            job.error_kind.value if job.error_kind is not None else None,
        )

    @staticmethod
    def _row_to_record(row, description) -> BuildJob:
        cols = [d[0] for d in description]
        d = dict(zip(cols, row))
        d["params"] = json.loads(d.get("params") or "{}")
        d["result"] = BuildResult.model_validate_json(d["result"]) if d.get("result") else None
        return BuildJob(**d)
