"""
Daemon service — dispatches RPC methods to the core components.

Holds the long-lived shared state for the process:

    store     BottleStore over <data>/bottles
    registry  RuntimeRegistry snapshot, captured once at construction
    recipes   recipe directory path (manifests re-read on every call)
    launcher  process launcher (real, or mock in --mock mode)
    locks     per-bottle lock table shared with the recipe engine

The runtime list is never rescanned; a runtime installed while the
daemon runs stays invisible until restart.

Each method decodes its params with a pydantic model, calls one
component, and returns a JSON-ready dict. Component errors propagate
unchanged; the transport turns them into RPC errors.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from alloy import __version__
from alloy.adapters.launcher import Launcher, ProcessLauncher
from alloy.core.config.recipe_loader import find_recipe, load_all
from alloy.core.config.settings import Settings
from alloy.core.engine.recipe_engine import RecipeEngine
from alloy.core.engine.wine_command import run_wine_command
from alloy.core.errors import InvalidParamsError, MethodNotFoundError
from alloy.core.models.runtime import RuntimeSelection
from alloy.core.persistence.bottle_store import BottleStore
from alloy.core.persistence.locks import KeyedLocks
from alloy.core.services.runtime_registry import RuntimeRegistry
from alloy.core.services.shortcuts import create_shortcut

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=BaseModel)


# ── Parameter shapes ────────────────────────────────────────────


class _Params(BaseModel):
    model_config = ConfigDict(extra="ignore")


class BottleCreateParams(_Params):
    name: str
    wine_version: str
    wine_label: str | None = None
    wine_path: Path | None = None
    channel: str | None = None


class BottleDeleteParams(_Params):
    id: uuid.UUID


class BottleRunParams(_Params):
    id: uuid.UUID
    executable: str
    args: list[str] | None = None


class RecipeApplyParams(_Params):
    bottle_id: uuid.UUID
    recipe_id: str


class ShortcutCreateParams(_Params):
    bottle_id: uuid.UUID
    name: str
    executable: str
    destination: Path | None = None


def _decode(model: type[P], params: Any, usage: str) -> P:
    try:
        return model.model_validate({} if params is None else params)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'params'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidParamsError(f"expected params {usage} ({errors})") from e


# ── Service ─────────────────────────────────────────────────────


class DaemonService:
    """Stateless-per-request dispatcher over long-lived shared state."""

    def __init__(
        self,
        store: BottleStore,
        registry: RuntimeRegistry,
        recipe_dir: Path,
        launcher: Launcher,
        locks: KeyedLocks | None = None,
        launch_prefix: Sequence[str] = (),
    ):
        self._store = store
        self._registry = registry
        self._recipe_dir = recipe_dir
        self._launcher = launcher
        self._locks = locks if locks is not None else KeyedLocks()
        self._launch_prefix = list(launch_prefix)
        self._engine = RecipeEngine(store, launcher, self._locks)

        self._methods: dict[str, Callable[[Any], Awaitable[dict]]] = {
            "service.ping": self.service_ping,
            "service.info": self.service_info,
            "runtime.list": self.runtime_list,
            "bottle.list": self.bottle_list,
            "bottle.create": self.bottle_create,
            "bottle.delete": self.bottle_delete,
            "bottle.run": self.bottle_run,
            "recipe.list": self.recipe_list,
            "recipe.apply": self.recipe_apply,
            "shortcut.create": self.shortcut_create,
        }

    @classmethod
    def from_settings(cls, settings: Settings, launcher: Launcher | None = None) -> DaemonService:
        """Build the service and its components from resolved settings."""
        settings.ensure_directories()
        registry = RuntimeRegistry.load(settings.runtime_root, settings.arm64_wine64)
        return cls(
            store=BottleStore(settings.bottle_root),
            registry=registry,
            recipe_dir=settings.recipe_root,
            launcher=launcher or ProcessLauncher(settings.launch_prefix),
            launch_prefix=settings.launch_prefix,
        )

    @property
    def store(self) -> BottleStore:
        return self._store

    @property
    def registry(self) -> RuntimeRegistry:
        return self._registry

    @property
    def methods(self) -> list[str]:
        return sorted(self._methods)

    async def dispatch(self, method: str, params: Any = None) -> dict:
        """Run one named operation.

        Raises:
            MethodNotFoundError: Unknown method.
            InvalidParamsError: Params missing or mistyped.
            AlloyError: Anything the component raised.
        """
        handler = self._methods.get(method)
        if handler is None:
            raise MethodNotFoundError(f"unknown method {method}")
        logger.debug("Dispatching %s", method)
        return await handler(params)

    # ── service.* / runtime.* ────────────────────────────────────

    async def service_ping(self, params: Any = None) -> dict:
        return {"status": "ok"}

    async def service_info(self, params: Any = None) -> dict:
        return {
            "version": __version__,
            "runtime_dir": str(self._registry.runtime_root),
            "bottle_root": str(self._store.root),
            "recipe_dir": str(self._recipe_dir),
            "launcher": self._launcher.name,
            "runtimes": self._runtimes_json(),
        }

    async def runtime_list(self, params: Any = None) -> dict:
        return {"runtimes": self._runtimes_json()}

    def _runtimes_json(self) -> list[dict]:
        return [rt.model_dump(mode="json") for rt in self._registry.runtimes]

    # ── bottle.* ─────────────────────────────────────────────────

    async def bottle_list(self, params: Any = None) -> dict:
        bottles = await self._store.list()
        return {"bottles": [b.model_dump(mode="json") for b in bottles]}

    async def bottle_create(self, params: Any) -> dict:
        p = _decode(
            BottleCreateParams,
            params,
            "{ name, wine_version, wine_label?, wine_path?, channel? }",
        )
        runtime = self._registry.select(
            RuntimeSelection(
                wine_version=p.wine_version,
                wine_label=p.wine_label,
                wine_path=p.wine_path,
                channel=p.channel,
            )
        )
        record = await self._store.create(p.name, runtime)
        return {"bottle": record.model_dump(mode="json")}

    async def bottle_delete(self, params: Any) -> dict:
        p = _decode(BottleDeleteParams, params, "{ id }")
        async with self._locks.hold(p.id):
            await self._store.remove(p.id)
        return {"deleted": str(p.id)}

    async def bottle_run(self, params: Any) -> dict:
        """Run a program in a bottle.

        A non-zero exit is a normal result, not an error: the caller
        decides what the exit code means.
        """
        p = _decode(BottleRunParams, params, "{ id, executable, args? }")
        record = await self._store.record(p.id)
        result = await run_wine_command(
            self._launcher,
            record,
            self._store.bottle_prefix(p.id),
            record.wine_runtime.wine64_path,
            [p.executable, *(p.args or [])],
        )
        return {"exit_status": result.exit_code, "success": result.success}

    # ── recipe.* ─────────────────────────────────────────────────

    async def recipe_list(self, params: Any = None) -> dict:
        recipes = await asyncio.to_thread(load_all, self._recipe_dir)
        return {"recipes": [r.manifest.summary() for r in recipes]}

    async def recipe_apply(self, params: Any) -> dict:
        p = _decode(RecipeApplyParams, params, "{ bottle_id, recipe_id }")
        recipe = await asyncio.to_thread(find_recipe, self._recipe_dir, p.recipe_id)
        report = await self._engine.apply(p.bottle_id, recipe)
        return report.to_dict()

    # ── shortcut.* ───────────────────────────────────────────────

    async def shortcut_create(self, params: Any) -> dict:
        p = _decode(
            ShortcutCreateParams,
            params,
            "{ bottle_id, name, executable, destination? }",
        )
        record = await self._store.record(p.bottle_id)
        bundle = await create_shortcut(
            record,
            self._store.bottle_prefix(p.bottle_id),
            p.name,
            p.executable,
            destination=p.destination,
            launch_prefix=self._launch_prefix,
        )
        return {"shortcut": str(bundle)}
