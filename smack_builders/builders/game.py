"""Phaser game-scene generation from a natural-language prompt."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from ..api.jobs.models import BuildJob, BuildKind, BuildResult
from .base import ProgressCallback, PromptBackend, report, write_artifact
from .gemini import GeminiClient, extract_json_object

logger = logging.getLogger(__name__)

LOGIC_SYSTEM_PROMPT = "Generate Phaser TypeScript game logic with movement, collisions, scoring."
PHYSICS_SYSTEM_PROMPT = (
    "Return only a JSON object configuring Phaser 3 arcade physics "
    "(keys such as engine, gravity, debug) suited to the described game."
)

SCENES = ["BootScene", "MenuScene", "GameScene", "SummaryScene"]
SPRITE_ROLES = ["player", "enemy", "environment"]
DEFAULT_PHYSICS: Dict[str, Any] = {"engine": "arcade", "gravity": {"y": 500}}
DEFAULT_CONTROLS: Dict[str, str] = {
    "moveLeft": "ArrowLeft",
    "moveRight": "ArrowRight",
    "jump": "Space",
    "action": "Enter",
}


def sprite_locators(description: str) -> List[str]:
    encoded = quote(description, safe="")
    return [f"sprite://{role}?prompt={encoded}" for role in SPRITE_ROLES]


class PhaserGameBackend(PromptBackend):
    kind = BuildKind.game_scene

    def __init__(self, client: GeminiClient, artifact_dir: Path) -> None:
        self._client = client
        self._artifact_dir = Path(artifact_dir)

    def generate(self, description: str) -> Dict[str, Any]:
        """Build the game document.  Blocking; runs in a worker thread."""
        logic = self._client.generate_text(LOGIC_SYSTEM_PROMPT, description)
        physics: Optional[Dict[str, Any]] = None
        physics_text = self._client.generate_text(PHYSICS_SYSTEM_PROMPT, description)
        if physics_text:
            physics = extract_json_object(physics_text)
            if physics is None:
                logger.info("Physics config was not valid JSON; using defaults")
        return {
            "scenes": list(SCENES),
            "sprites": sprite_locators(description),
            "physics": physics or dict(DEFAULT_PHYSICS),
            "controls": dict(DEFAULT_CONTROLS),
            "logic": logic or f"// Phaser logic for {description}",
            "generated": logic is not None,
        }

    async def execute(self, job: BuildJob, progress: Optional[ProgressCallback] = None) -> BuildResult:
        description = job.params["prompt"].strip()
        await report(progress, 0.1, "Generating game logic")
        game = await asyncio.to_thread(self.generate, description)
        await report(progress, 0.9, "Writing game document")
        locator = await asyncio.to_thread(write_artifact, self._artifact_dir, job, "game.json", game)
        return BuildResult(
            locator=locator,
            metadata={"scenes": game["scenes"], "generated": game["generated"]},
        )
