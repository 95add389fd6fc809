"""
Launcher — the contract between the core and external processes.

The core hands a launcher an executable, its arguments, a working
directory and a complete environment, and gets back the exit status.
It never looks at stdout or stderr.

A process that cannot be started raises ``LaunchError``. A process
that starts and exits non-zero is NOT an error; callers decide what
the exit code means.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from pathlib import Path

from pydantic import BaseModel

from alloy.core.errors import LaunchError

logger = logging.getLogger(__name__)


class LaunchResult(BaseModel):
    """Outcome of a process that was started and waited for."""

    executable: str
    exit_code: int
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class Launcher(ABC):
    """Abstract process launcher.

    Implementations MUST wait for the process to exit before returning.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Launcher identifier (e.g. 'process', 'mock')."""

    @abstractmethod
    async def launch(
        self,
        executable: Path,
        args: Sequence[str],
        cwd: Path,
        env: Mapping[str, str],
    ) -> LaunchResult:
        """Start ``executable`` and wait for it to exit.

        Raises:
            LaunchError: If the process could not be started.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class ProcessLauncher(Launcher):
    """Launch real processes with asyncio.

    Args:
        command_prefix: Prepended to every invocation, e.g.
            ``["arch", "-x86_64"]`` so Rosetta fronts the runtime.

    Once started, a process is never killed by the launcher: if the
    awaiting task is cancelled the child keeps running.
    """

    def __init__(self, command_prefix: Sequence[str] = ()):
        self._prefix = list(command_prefix)

    @property
    def name(self) -> str:
        return "process"

    async def launch(
        self,
        executable: Path,
        args: Sequence[str],
        cwd: Path,
        env: Mapping[str, str],
    ) -> LaunchResult:
        if executable.is_absolute() and not executable.exists():
            raise LaunchError(f"failed to launch {executable}: no such file")

        cmd = [*self._prefix, str(executable), *args]
        logger.debug("Launching: %s (cwd=%s)", cmd, cwd)
        start = time.monotonic()

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(cwd),
                env=dict(env),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise LaunchError(f"failed to launch {executable}: {e}") from e

        exit_code = await proc.wait()
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.debug("%s exited with %d after %dms", executable, exit_code, elapsed_ms)

        return LaunchResult(
            executable=str(executable),
            exit_code=exit_code,
            duration_ms=elapsed_ms,
        )
