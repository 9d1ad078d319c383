"""Production build of the main website project."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from siteadmin.errors import UpstreamProcessError

log = logging.getLogger(__name__)

BUILD_FAILED = "Build failed"


@dataclass
class BuildResult:
    stdout: str
    stderr: str


class BuildRunner:
    """Runs the configured build command in the main project directory.

    No timeout: a hung build keeps the request open until it exits.
    """

    def __init__(
        self,
        command: str,
        cwd: Path,
        env_overrides: dict[str, str] | None = None,
    ) -> None:
        self._command = command
        self._cwd = cwd
        self._env_overrides = {"NODE_ENV": "production"}
        if env_overrides:
            self._env_overrides.update(env_overrides)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> BuildRunner:
        return cls(config["build"]["command"], Path(config["data"]["project_path"]).resolve())

    async def run(self) -> BuildResult:
        env = {**os.environ, **self._env_overrides}
        log.info("Starting build: %s (cwd=%s)", self._command, self._cwd)
        try:
            proc = await asyncio.create_subprocess_shell(
                self._command,
                cwd=self._cwd,
                env=env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            log.error("Build could not start: %s", exc)
            raise UpstreamProcessError(BUILD_FAILED, details=str(exc)) from exc

        out, err = await proc.communicate()
        stdout = out.decode("utf-8", errors="replace")
        stderr = err.decode("utf-8", errors="replace")

        if proc.returncode != 0:
            log.error("Build exited with status %s", proc.returncode)
            raise UpstreamProcessError(
                BUILD_FAILED,
                details=f"Command failed with exit code {proc.returncode}: {self._command}",
                stdout=stdout,
                stderr=stderr,
                returncode=proc.returncode,
            )

        log.info("Build finished")
        return BuildResult(stdout=stdout, stderr=stderr)
