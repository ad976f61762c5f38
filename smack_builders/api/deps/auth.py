"""Caller-identity dependency for authenticated endpoints.

Identity verification (sessions, passkeys) happens upstream; this layer
only checks the shared service token and trusts the caller id the
upstream forwards in ``X-Caller-Id``.
"""
from __future__ import annotations

import logging
import os

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

# Auth configuration, read from environment
API_AUTH_ENABLED: bool = os.environ.get("SMACK_API_AUTH_ENABLED", "true").lower() in (
    "true", "1", "yes",
)
API_AUTH_TOKEN: str = os.environ.get("SMACK_API_TOKEN", "")

DEFAULT_CALLER_ID = "api"
ANONYMOUS_CALLER_ID = "anonymous"


def _caller_id(request: Request, default: str) -> str:
    return request.headers.get("X-Caller-Id", "").strip() or default


async def require_caller(request: Request) -> str:
    """FastAPI dependency that enforces bearer-token / API-key authentication.

    Reads the token from ``Authorization: Bearer <token>`` or the
    ``X-API-Key`` header and returns the caller identifier.  When auth is
    disabled (local dev mode) the caller id still comes from
    ``X-Caller-Id``, defaulting to ``"anonymous"``.

    Raises
    ------
    HTTPException(401)
        If the token is missing, empty, or does not match.
    """
    if not API_AUTH_ENABLED:
        return _caller_id(request, ANONYMOUS_CALLER_ID)

    if not API_AUTH_TOKEN:
        logger.warning(
            "SMACK_API_AUTH_ENABLED is true but SMACK_API_TOKEN is not set. "
            "All authenticated requests will be rejected."
        )
        raise HTTPException(status_code=401, detail="Server auth token not configured")

    # Try Authorization header first, then X-API-Key
    token: str | None = None

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()

    if not token:
        token = request.headers.get("X-API-Key", "").strip() or None

    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    if token != API_AUTH_TOKEN:
        raise HTTPException(status_code=401, detail="Unauthorized")

    return _caller_id(request, DEFAULT_CALLER_ID)
