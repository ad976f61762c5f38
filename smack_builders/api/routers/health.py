"""Service health endpoint."""
from __future__ import annotations

import time

from fastapi import APIRouter, Depends

from ..deps.providers import get_build_queue, get_job_store, get_settings
from ..jobs.runner import BuildQueue
from ..jobs.store import JobStore
from ..schemas.envelope import ApiResponse

router = APIRouter(tags=["health"])


@router.get("/api/health")
async def health(
    store: JobStore = Depends(get_job_store),
    queue: BuildQueue = Depends(get_build_queue),
) -> ApiResponse:
    t0 = time.monotonic()
    data = {
        "status": "ok",
        "job_store": get_settings().job_store,
        "jobs_total": await store.count(),
        "jobs_in_flight": queue.pending_count,
        "kinds": queue.kinds,
    }
    elapsed = (time.monotonic() - t0) * 1000
    return ApiResponse.success(data, elapsed_ms=elapsed)
