"""
Gemini text-generation client used by the prompt-driven backends.

Generation is best-effort: with no API key, or when the request fails, the
client returns ``None`` and callers fall back to template output.
"""
from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Dict, Optional

import requests

from ..config import (
    DEFAULT_GEMINI_MODEL,
    GEMINI_API_BASE_URL,
    GEMINI_API_KEY_ENV,
    GEMINI_MAX_OUTPUT_TOKENS,
    GEMINI_TEMPERATURE,
    GEMINI_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

_JSON_BLOCK_RE = re.compile(r"\{[\s\S]*\}")


def build_request_body(
    system_prompt: str,
    user_prompt: str,
    temperature: Optional[float] = None,
) -> Dict[str, Any]:
    """Request payload for ``models/{model}:generateContent``."""
    return {
        "systemInstruction": {"parts": [{"text": system_prompt}]},
        "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
        "generationConfig": {
            "temperature": GEMINI_TEMPERATURE if temperature is None else float(temperature),
            "maxOutputTokens": GEMINI_MAX_OUTPUT_TOKENS,
        },
    }


def extract_candidate_text(payload: Dict[str, Any]) -> Optional[str]:
    """Concatenate the text parts of the first candidate, or None if empty."""
    candidates = payload.get("candidates") or []
    if not candidates:
        return None
    parts = (candidates[0].get("content") or {}).get("parts") or []
    combined = "".join(part.get("text") or "" for part in parts).strip()
    return combined or None


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Parse *text* as a JSON object, falling back to its first ``{...}`` block."""
    try:
        parsed = json.loads(text)
    except ValueError:
        match = _JSON_BLOCK_RE.search(text)
        if not match:
            return None
        try:
            parsed = json.loads(match.group(0))
        except ValueError:
            return None
    return parsed if isinstance(parsed, dict) else None


class GeminiClient:
    """Thin synchronous client; call from a worker thread."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_GEMINI_MODEL,
        session: Optional[requests.Session] = None,
        timeout_seconds: float = GEMINI_TIMEOUT_SECONDS,
    ) -> None:
        self.api_key = api_key if api_key is not None else os.environ.get(GEMINI_API_KEY_ENV, "")
        self.model = model
        self.session = session or requests.Session()
        self.timeout_seconds = timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def generate_text(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> Optional[str]:
        """Return generated text, or None when generation is unavailable."""
        if not self.enabled:
            return None

        url = f"{GEMINI_API_BASE_URL}/{model or self.model}:generateContent"
        body = build_request_body(system_prompt, user_prompt, temperature)
        try:
            resp = self.session.post(
                url,
                params={"key": self.api_key},
                json=body,
                timeout=self.timeout_seconds,
            )
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Gemini generation failed: %s", exc)
            return None

        return extract_candidate_text(payload)
