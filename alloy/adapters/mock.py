"""
Mock launcher — test double for process launches.

Used by the test suite and by ``alloy daemon --mock`` to exercise the
whole daemon without a wine runtime. Every launch is recorded and,
by default, exits 0. Exit codes and launch failures can be configured
per executable (matched by full path or by file name).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from alloy.adapters.launcher import LaunchResult, Launcher
from alloy.core.errors import LaunchError


@dataclass
class LaunchCall:
    """One recorded launch."""

    executable: Path
    args: list[str]
    cwd: Path
    env: dict[str, str] = field(default_factory=dict)


class MockLauncher(Launcher):
    """Records launches instead of running anything."""

    def __init__(self, default_exit_code: int = 0):
        self._default_exit_code = default_exit_code
        self._exit_codes: dict[str, int] = {}
        self._failures: dict[str, str] = {}
        self._calls: list[LaunchCall] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def calls(self) -> list[LaunchCall]:
        """All launches this mock has received, oldest first."""
        return self._calls

    @property
    def call_count(self) -> int:
        return len(self._calls)

    def set_exit_code(self, executable: str, exit_code: int) -> None:
        """Make launches of ``executable`` exit with ``exit_code``."""
        self._exit_codes[executable] = exit_code

    def set_failure(self, executable: str, error: str = "mock launch failure") -> None:
        """Make launches of ``executable`` fail to start."""
        self._failures[executable] = error

    def _lookup(self, table: Mapping[str, object], executable: Path) -> object | None:
        for key in (str(executable), executable.name):
            if key in table:
                return table[key]
        return None

    async def launch(
        self,
        executable: Path,
        args: Sequence[str],
        cwd: Path,
        env: Mapping[str, str],
    ) -> LaunchResult:
        self._calls.append(LaunchCall(executable=executable, args=list(args), cwd=cwd, env=dict(env)))

        error = self._lookup(self._failures, executable)
        if error is not None:
            raise LaunchError(f"failed to launch {executable}: {error}")

        exit_code = self._lookup(self._exit_codes, executable)
        return LaunchResult(
            executable=str(executable),
            exit_code=self._default_exit_code if exit_code is None else int(exit_code),
        )

    def reset(self) -> None:
        """Clear the call log and configured responses."""
        self._calls.clear()
        self._exit_codes.clear()
        self._failures.clear()
