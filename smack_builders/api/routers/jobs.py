"""Job status endpoints."""
from __future__ import annotations

import json

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from ..deps.auth import require_caller
from ..deps.providers import get_build_queue, get_job_store
from ..jobs.runner import BuildQueue
from ..jobs.store import JobStore
from ..schemas.envelope import ApiResponse

router = APIRouter(prefix="/api/jobs", tags=["jobs"])

MAX_LIST_LIMIT = 100


@router.get("")
async def list_jobs(
    limit: int = 20,
    caller: str = Depends(require_caller),
    store: JobStore = Depends(get_job_store),
) -> ApiResponse:
    limit = max(1, min(MAX_LIST_LIMIT, limit))
    jobs = await store.list_jobs(limit=limit, owner=caller)
    return ApiResponse.success([j.model_dump(mode="json") for j in jobs])


@router.get("/{job_id}")
async def get_job(
    job_id: str,
    store: JobStore = Depends(get_job_store),
) -> ApiResponse:
    rec = await store.get(job_id)
    return ApiResponse.success(rec.model_dump(mode="json"))


@router.get("/{job_id}/events")
async def job_events(
    job_id: str,
    store: JobStore = Depends(get_job_store),
    queue: BuildQueue = Depends(get_build_queue),
):
    await store.get(job_id)

    async def _generate():
        async for event in queue.subscribe_events(job_id):
            yield {"event": event.get("event", "message"), "data": json.dumps(event)}

    return EventSourceResponse(_generate())
