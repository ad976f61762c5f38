"""Request schemas for build submission."""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class BuildRequest(BaseModel):
    """Request body for POST /api/builds.

    Fields are optional at the schema level so that missing values reach
    the queue's validation and are reported as 400, not 422.
    """

    project_ref: Optional[str] = None
    kind: Optional[str] = None
    params: Dict[str, Any] = Field(default_factory=dict)
    prompt: Optional[str] = None
    project_root: Optional[str] = None

    def build_params(self) -> Dict[str, Any]:
        """Merge the top-level shortcuts into ``params``."""
        params = dict(self.params)
        if self.prompt is not None:
            params.setdefault("prompt", self.prompt)
        if self.project_root is not None:
            params.setdefault("project_root", self.project_root)
        return params
