"""Build submission endpoint."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..deps.auth import require_caller
from ..deps.providers import get_build_queue
from ..jobs.runner import BuildQueue
from ..schemas.builds import BuildRequest
from ..schemas.envelope import ApiResponse

router = APIRouter(prefix="/api/builds", tags=["builds"])


@router.post("")
async def submit_build(
    req: BuildRequest,
    caller: str = Depends(require_caller),
    queue: BuildQueue = Depends(get_build_queue),
) -> ApiResponse:
    """Create a build job; it starts ``pending`` and is polled via /api/jobs/{id}."""
    job = await queue.submit(req.project_ref, req.kind, req.build_params(), owner=caller)
    return ApiResponse.success(job.model_dump(mode="json"))


@router.get("/kinds")
async def build_kinds(queue: BuildQueue = Depends(get_build_queue)) -> ApiResponse:
    return ApiResponse.success(queue.kinds)
