"""Flutter code generation: widget tree, Riverpod state and platform variants."""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

from ..api.jobs.models import BuildJob, BuildKind, BuildResult
from .base import ProgressCallback, PromptBackend, report, write_artifact
from .gemini import GeminiClient

WIDGET_SYSTEM_PROMPT = "Generate Flutter widget tree code with Material Design and imports."
STATE_SYSTEM_PROMPT = "Generate Riverpod state management code in Dart."


def to_cupertino(widget_code: str) -> str:
    return widget_code.replace("MaterialApp", "CupertinoApp").replace("Scaffold", "CupertinoPageScaffold")


class FlutterCodegenBackend(PromptBackend):
    kind = BuildKind.flutter_codegen

    def __init__(self, client: GeminiClient, artifact_dir: Path) -> None:
        self._client = client
        self._artifact_dir = Path(artifact_dir)

    def generate_widget_tree(self, description: str) -> str:
        generated = self._client.generate_text(WIDGET_SYSTEM_PROMPT, description)
        if generated:
            return generated.strip()
        return f"import 'package:flutter/material.dart';\n// {description}\n"

    def generate_state_management(self, screen: str) -> str:
        generated = self._client.generate_text(STATE_SYSTEM_PROMPT, f"Screen: {screen}")
        return generated or f"// Riverpod state for {screen}"

    def generate(self, description: str) -> Dict[str, Any]:
        widget_tree = self.generate_widget_tree(description)
        return {
            "widget_tree": widget_tree,
            "state": self.generate_state_management(description),
            "platform": {"material": widget_tree, "cupertino": to_cupertino(widget_tree)},
        }

    async def execute(self, job: BuildJob, progress: Optional[ProgressCallback] = None) -> BuildResult:
        description = job.params["prompt"].strip()
        await report(progress, 0.1, "Generating widget tree")
        code = await asyncio.to_thread(self.generate, description)
        await report(progress, 0.9, "Writing generated code")
        locator = await asyncio.to_thread(write_artifact, self._artifact_dir, job, "flutter.json", code)
        return BuildResult(locator=locator, metadata={"generated": self._client.enabled})
