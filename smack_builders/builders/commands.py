"""Local toolchain builds (Flutter APK, Tauri desktop bundle, Expo EAS)."""
from __future__ import annotations

import asyncio
import logging
import os
import re
import shlex
import shutil
import signal
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..api.jobs.errors import BuilderError, InvalidInputError
from ..api.jobs.models import BuildJob, BuildKind, BuildResult
from ..config import COMMAND_OUTPUT_TAIL_CHARS, DEFAULT_COMMAND_TIMEOUT_SECONDS
from .base import BuilderBackend, ProgressCallback, report

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"https://[^\s\"'<>]+")


@dataclass
class CommandOutcome:
    """Result of one build command invocation."""
    success: bool
    command: str
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None


def command_exists(executable: str) -> bool:
    return shutil.which(executable) is not None


def _tail(text: str) -> str:
    return text[-COMMAND_OUTPUT_TAIL_CHARS:] if text else ""


async def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill *proc* and everything it spawned, then reap it."""
    if proc.returncode is None:
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
    # Drain the pipes so the transport closes and the child is reaped
    await proc.communicate()


async def run_command(command: str, cwd: Path, timeout_seconds: float) -> CommandOutcome:
    """Run *command* in *cwd*, capturing output.  Never raises for command failure.

    The command runs in its own process group, which is killed on timeout
    or when the awaiting task is cancelled.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *shlex.split(command),
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as exc:
        return CommandOutcome(False, command, error=str(exc))

    try:
        out, err = await asyncio.wait_for(proc.communicate(), timeout_seconds)
    except asyncio.TimeoutError:
        await _kill(proc)
        return CommandOutcome(False, command, error=f"{command} timed out after {timeout_seconds:.0f}s")
    except asyncio.CancelledError:
        await _kill(proc)
        raise

    stdout = _tail(out.decode("utf-8", errors="replace"))
    stderr = _tail(err.decode("utf-8", errors="replace"))
    if proc.returncode != 0:
        return CommandOutcome(
            False,
            command,
            stdout=stdout,
            stderr=stderr,
            error=f"{command} exited with status {proc.returncode}",
        )
    return CommandOutcome(True, command, stdout=stdout, stderr=stderr)


class CommandBuildBackend(BuilderBackend):
    """Runs a CLI build inside the project's working tree.

    The project root is ``params["project_root"]`` when given, otherwise
    ``projects_root / project_ref``.
    """

    def __init__(
        self,
        kind: BuildKind,
        executable: str,
        command: str,
        *,
        workdir: str = "",
        artifact_path: str = "",
        projects_root: Path = Path("."),
        timeout_seconds: float = DEFAULT_COMMAND_TIMEOUT_SECONDS,
    ) -> None:
        self.kind = kind
        self.executable = executable
        self.command = command
        self.workdir = workdir
        self.artifact_path = artifact_path
        self.projects_root = Path(projects_root)
        self.timeout_seconds = timeout_seconds

    def validate(self, params: Dict[str, Any], project_ref: Optional[str] = None) -> None:
        root = params.get("project_root")
        if root is not None and (not isinstance(root, str) or not root.strip()):
            raise InvalidInputError("project_root must be a non-empty string")
        if root is None and project_ref is not None:
            self._ref_root(project_ref)

    def _ref_root(self, project_ref: str) -> Path:
        """Resolve ``projects_root / project_ref``; it must stay below ``projects_root``."""
        base = self.projects_root.resolve()
        root = (base / project_ref).resolve()
        if base not in root.parents:
            raise InvalidInputError(f"project_ref {project_ref!r} is outside the projects directory")
        return root

    def project_root(self, job: BuildJob) -> Path:
        root = job.params.get("project_root")
        if root:
            return Path(root).resolve()
        return self._ref_root(job.project_ref)

    def locate_artifact(self, root: Path, outcome: CommandOutcome) -> str:
        # Remote builders (EAS) print the artifact URL; prefer the last one.
        urls = _URL_RE.findall(outcome.stdout)
        if urls:
            return urls[-1]
        if self.artifact_path:
            return (root / self.artifact_path).as_uri()
        return root.as_uri()

    async def execute(self, job: BuildJob, progress: Optional[ProgressCallback] = None) -> BuildResult:
        if not command_exists(self.executable):
            raise BuilderError(f"{self.executable} not available on runtime host")

        root = self.project_root(job)
        cwd = root / self.workdir if self.workdir else root
        if not cwd.is_dir():
            raise BuilderError(f"Project directory {cwd} does not exist")

        await report(progress, 0.1, f"Running {self.command}")
        logger.info("Job %s: running %r in %s", job.job_id, self.command, cwd)
        outcome = await run_command(self.command, cwd, self.timeout_seconds)
        if not outcome.success:
            raise BuilderError(outcome.error or f"{self.command} failed")

        return BuildResult(
            locator=self.locate_artifact(root, outcome),
            command=outcome.command,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
        )
