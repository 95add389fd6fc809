"""
Wine command runner — the single place a bottle launch is composed.

Environment layering, later layers win::

    host environment
    runtime defaults   WINEDEBUG, DYLD_FALLBACK_LIBRARY_PATH, WINEPREFIX
    bottle overrides   BottleRecord.environment, in order
    call overrides     extra_env

The working directory is always the bottle prefix.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from pathlib import Path

from alloy.adapters.launcher import LaunchResult, Launcher
from alloy.core.models.bottle import BottleRecord

logger = logging.getLogger(__name__)


def bottle_environment(
    record: BottleRecord,
    prefix: Path,
    extra_env: Mapping[str, str] | None = None,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Build the full environment for a launch inside ``record``'s prefix."""
    env = dict(os.environ if base_env is None else base_env)
    env["WINEDEBUG"] = "-all"
    env["DYLD_FALLBACK_LIBRARY_PATH"] = str(record.wine_runtime.root / "lib")
    env["WINEPREFIX"] = str(prefix)

    for key, value in record.environment:
        env[key] = value

    if extra_env:
        env.update(extra_env)
    return env


async def run_wine_command(
    launcher: Launcher,
    record: BottleRecord,
    prefix: Path,
    command: Path,
    args: Sequence[str] = (),
    extra_env: Mapping[str, str] | None = None,
) -> LaunchResult:
    """Launch ``command`` for a bottle and wait for it.

    A non-zero exit is logged as a warning and returned, not raised.

    Raises:
        LaunchError: If the process could not be started.
    """
    env = bottle_environment(record, prefix, extra_env)
    logger.info("Running %s in bottle %s (%s)", command.name, record.name, record.id)

    result = await launcher.launch(command, list(args), prefix, env)
    if not result.success:
        logger.warning("wine command %s exited with %d", command, result.exit_code)
    return result
