"""Builder backends, one per ``BuildKind``."""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Dict

from ..api.jobs.models import BuildKind
from ..config import BUILD_COMMANDS
from .base import BuilderBackend, PromptBackend
from .cloud import CloudArtifactBackend
from .commands import CommandBuildBackend
from .flutter import FlutterCodegenBackend
from .game import PhaserGameBackend
from .gemini import GeminiClient

if TYPE_CHECKING:
    from ..api.config import ApiSettings

_COMMAND_KINDS = (BuildKind.flutter_apk, BuildKind.desktop, BuildKind.react_native_eas)


def default_backends(settings: "ApiSettings") -> Dict[BuildKind, BuilderBackend]:
    """Return the kind → backend table for a server process."""
    client = GeminiClient(model=settings.gemini_model)
    artifact_dir = Path(settings.artifact_dir)

    backends: Dict[BuildKind, BuilderBackend] = {
        BuildKind.build_artifact: CloudArtifactBackend(settings.artifact_base_url),
        BuildKind.game_scene: PhaserGameBackend(client, artifact_dir),
        BuildKind.flutter_codegen: FlutterCodegenBackend(client, artifact_dir),
    }
    for kind in _COMMAND_KINDS:
        executable, command, workdir, artifact_path = BUILD_COMMANDS[kind.value]
        backends[kind] = CommandBuildBackend(
            kind,
            executable,
            command,
            workdir=workdir,
            artifact_path=artifact_path,
            projects_root=Path(settings.projects_root),
            timeout_seconds=settings.command_timeout_seconds,
        )
    return backends


__all__ = [
    "BuilderBackend",
    "CloudArtifactBackend",
    "CommandBuildBackend",
    "FlutterCodegenBackend",
    "GeminiClient",
    "PhaserGameBackend",
    "PromptBackend",
    "default_backends",
]
