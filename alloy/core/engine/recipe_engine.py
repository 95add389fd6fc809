"""
Recipe engine — provisions a bottle by interpreting a recipe's steps.

Flow:
    lock bottle → load record once → run steps in order → persist environment

Steps run strictly sequentially against one in-memory copy of the
bottle record. The accumulated environment is written back only after
every step succeeded. When a step fails the error propagates and the
in-memory changes are discarded, but side effects already caused by
earlier steps (launched processes, copied files) stay on disk.

A ``run`` step whose program exits non-zero is logged and recorded in
the report as a warning; the recipe continues.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from alloy.adapters.launcher import Launcher
from alloy.core.engine.wine_command import run_wine_command
from alloy.core.errors import InvalidInputError, NotFoundError, StorageError
from alloy.core.models.bottle import BottleRecord
from alloy.core.models.recipe import (
    CopyStep,
    EnvStep,
    Recipe,
    RecipeStep,
    RunStep,
    WaitForExitStep,
    WineCfgStep,
)
from alloy.core.persistence.bottle_store import BottleStore
from alloy.core.persistence.locks import KeyedLocks

logger = logging.getLogger(__name__)

WINECFG_EXECUTABLE = "winecfg"
DEFAULT_VERSION_VAR = "WINE_DEFAULT_VERSION"


@dataclass
class RecipeReport:
    """Result of applying a recipe to a bottle."""

    recipe_id: str
    bottle_id: uuid.UUID
    steps_total: int = 0
    steps_run: int = 0
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "applied": self.recipe_id,
            "bottle_id": str(self.bottle_id),
            "steps": self.steps_run,
            "warnings": list(self.warnings),
        }


@dataclass
class _Application:
    """Mutable state of one recipe run."""

    recipe: Recipe
    record: BottleRecord
    prefix: Path
    report: RecipeReport


def _copy_resource(source: Path, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    if source.is_dir():
        shutil.copytree(source, destination, dirs_exist_ok=True)
    else:
        shutil.copy2(source, destination)


def _destination_in_prefix(prefix: Path, to: Path) -> Path:
    if to.is_absolute():
        raise InvalidInputError(f"copy destination {to} must be relative to the bottle prefix")
    destination = prefix / to
    if not destination.resolve().is_relative_to(prefix.resolve()):
        raise InvalidInputError(f"copy destination {to} escapes the bottle prefix")
    return destination


class RecipeEngine:
    """Step interpreter over one bottle at a time."""

    def __init__(
        self,
        store: BottleStore,
        launcher: Launcher,
        locks: KeyedLocks | None = None,
    ):
        self._store = store
        self._launcher = launcher
        self._locks = locks if locks is not None else KeyedLocks()
        self._handlers: dict[str, Callable[[_Application, RecipeStep], Awaitable[None]]] = {
            "run": self._run,
            "wait_for_exit": self._wait_for_exit,
            "winecfg": self._winecfg,
            "env": self._env,
            "copy": self._copy,
        }

    async def apply(self, bottle_id: uuid.UUID, recipe: Recipe) -> RecipeReport:
        """Apply ``recipe`` to a bottle.

        Holds the bottle's lock for the whole run, so concurrent applies
        or a delete of the same bottle wait for it.

        Raises:
            NotFoundError: Unknown bottle, missing resource or companion tool.
            InvalidInputError: Copy destination outside the prefix.
            StorageError: Copy or metadata write failed.
            LaunchError: A process could not be started.
        """
        async with self._locks.hold(bottle_id):
            record = await self._store.record(bottle_id)
            steps = recipe.manifest.steps
            app = _Application(
                recipe=recipe,
                record=record,
                prefix=self._store.bottle_prefix(bottle_id),
                report=RecipeReport(
                    recipe_id=recipe.id,
                    bottle_id=bottle_id,
                    steps_total=len(steps),
                ),
            )

            logger.info("Applying recipe %s to bottle %s (%s)", recipe.id, record.name, bottle_id)
            for index, step in enumerate(steps, start=1):
                logger.info("  step %d/%d: %s", index, len(steps), step.type)
                try:
                    await self._handlers[step.type](app, step)
                except Exception as e:
                    logger.error(
                        "Recipe %s failed at step %d (%s): %s", recipe.id, index, step.type, e
                    )
                    raise
                app.report.steps_run += 1

            await self._store.update(bottle_id, app.record)
            logger.info("Recipe %s applied to bottle %s", recipe.id, bottle_id)
            return app.report

    # ── Step handlers ────────────────────────────────────────────

    async def _run(self, app: _Application, step: RunStep) -> None:
        program = app.recipe.resource(step.path)
        result = await run_wine_command(
            self._launcher,
            app.record,
            app.prefix,
            program,
            step.args,
        )
        if not result.success:
            app.report.warnings.append(
                f"step {app.report.steps_run + 1}: {program.name} exited with {result.exit_code}"
            )

    async def _wait_for_exit(self, app: _Application, step: WaitForExitStep) -> None:
        logger.debug("wait step implicitly satisfied (processes run synchronously)")

    async def _winecfg(self, app: _Application, step: WineCfgStep) -> None:
        if step.version:
            app.record.set_env(DEFAULT_VERSION_VAR, step.version)

        winecfg = app.record.wine_runtime.bin_dir / WINECFG_EXECUTABLE
        if not winecfg.exists():
            raise NotFoundError(f"wine runtime missing {WINECFG_EXECUTABLE} companion at {winecfg}")

        await run_wine_command(self._launcher, app.record, app.prefix, winecfg)

    async def _env(self, app: _Application, step: EnvStep) -> None:
        for key, value in step.variables:
            app.record.set_env(key, value)

    async def _copy(self, app: _Application, step: CopyStep) -> None:
        source = app.recipe.resource(step.source)
        if not source.exists():
            raise NotFoundError(f"recipe resource {source} is missing")

        destination = _destination_in_prefix(app.prefix, step.to)
        try:
            await asyncio.to_thread(_copy_resource, source, destination)
        except OSError as e:
            raise StorageError(f"failed to copy {source} to {destination}: {e}") from e
        logger.debug("Copied %s → %s", source, destination)
