"""
Recipe loader — discovers and parses recipe manifests.

Recipes live under the recipe root in either shape::

    recipes/
        dxvk/
            recipe.yaml
            resources/...
        steam.yaml
        resources/...        # shared by top-level manifests

Manifests are re-read on every call; nothing is cached, so edits on
disk take effect on the next request.

Step encodings on disk are loose. Each raw step is matched against the
known shapes and normalized into one canonical ``RecipeStep``::

    - run: setup.exe                          # bare string
    - run: {command: setup.exe, args: [/S]}   # or file: / path:
    - wait_for_exit: true
    - winecfg: {version: win10}
    - env: {DXVK_HUD: fps}
    - copy: {from: d3d11.dll, to: drive_c/windows/system32/d3d11.dll}

The canonical tagged form (``type: run`` ...) is accepted as well.
Anything else is a load error, never silently dropped.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import TypeAdapter, ValidationError

from alloy.core.errors import InvalidInputError, NotFoundError, StorageError
from alloy.core.models.recipe import (
    CopyStep,
    EnvStep,
    Recipe,
    RecipeManifest,
    RecipeStep,
    RunStep,
    WaitForExitStep,
    WineCfgStep,
)

logger = logging.getLogger(__name__)

MANIFEST_NAMES = ("recipe.yaml", "recipe.yml")
MANIFEST_SUFFIXES = (".yaml", ".yml")

_STEP_KEYS = ("run", "wait_for_exit", "winecfg", "env", "copy")
_RUN_PROGRAM_KEYS = ("command", "file", "path")

_canonical_step: TypeAdapter[RecipeStep] = TypeAdapter(RecipeStep)


# ── Step normalization ──────────────────────────────────────────


def _scalar_to_str(key: str, value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise InvalidInputError(f"env value for {key!r} must be a scalar, got {type(value).__name__}")


def _normalize_run(value: Any) -> RunStep:
    if isinstance(value, str):
        if not value.strip():
            raise InvalidInputError("run step command must not be empty")
        return RunStep(path=Path(value))

    if not isinstance(value, dict):
        raise InvalidInputError(f"run step must be a string or a mapping, got {type(value).__name__}")

    key = next((k for k in _RUN_PROGRAM_KEYS if k in value), None)
    if key is None:
        raise InvalidInputError("run step missing command")
    program = value[key]
    if not isinstance(program, str) or not program.strip():
        raise InvalidInputError(f"run step {key!r} must be a non-empty string")

    args = value.get("args") or []
    if not isinstance(args, list):
        raise InvalidInputError("run step args must be a list")
    return RunStep(path=Path(program), args=tuple(str(a) for a in args))


def _normalize_wait(value: Any) -> WaitForExitStep:
    if value is True:
        return WaitForExitStep()
    raise InvalidInputError("wait_for_exit must be true when specified")


def _normalize_winecfg(value: Any) -> WineCfgStep:
    if value is None:
        return WineCfgStep()
    if not isinstance(value, dict):
        raise InvalidInputError("winecfg step must be a mapping")
    version = value.get("version")
    return WineCfgStep(version=str(version) if version is not None else None)


def _normalize_env(value: Any) -> EnvStep:
    if not isinstance(value, dict):
        raise InvalidInputError("env step must be a mapping of variable names to values")
    return EnvStep(
        variables=tuple((str(k), _scalar_to_str(str(k), v)) for k, v in value.items())
    )


def _normalize_copy(value: Any) -> CopyStep:
    if not isinstance(value, dict) or "from" not in value or "to" not in value:
        raise InvalidInputError("copy step needs 'from' and 'to'")
    return CopyStep(source=Path(str(value["from"])), to=Path(str(value["to"])))


_NORMALIZERS = {
    "run": _normalize_run,
    "wait_for_exit": _normalize_wait,
    "winecfg": _normalize_winecfg,
    "env": _normalize_env,
    "copy": _normalize_copy,
}


def normalize_step(raw: Any) -> RecipeStep:
    """Normalize one on-disk step into its canonical variant.

    Raises:
        InvalidInputError: If the step matches none of the known shapes.
    """
    if not isinstance(raw, dict):
        raise InvalidInputError(f"step must be a mapping, got {type(raw).__name__}")

    if "type" in raw:
        try:
            return _canonical_step.validate_python(raw)
        except ValidationError as e:
            raise InvalidInputError(f"invalid step: {e}") from e

    present = [k for k in _STEP_KEYS if k in raw]
    if len(present) != 1:
        keys = ", ".join(sorted(str(k) for k in raw)) or "none"
        raise InvalidInputError(
            f"step must have exactly one of {', '.join(_STEP_KEYS)} (found: {keys})"
        )

    kind = present[0]
    return _NORMALIZERS[kind](raw[kind])


# ── Manifest loading ────────────────────────────────────────────


def load_recipe(path: Path) -> Recipe:
    """Load and normalize a single manifest.

    Raises:
        StorageError: If the file cannot be read.
        InvalidInputError: If the YAML or any step is invalid.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise InvalidInputError(f"invalid recipe yaml {path}: {e}") from e
    except OSError as e:
        raise StorageError(f"failed to read recipe manifest at {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise InvalidInputError(f"invalid recipe yaml {path}: {e}") from e

    if not isinstance(data, dict):
        raise InvalidInputError(f"invalid recipe yaml {path}: expected a mapping")

    raw_steps = data.get("steps")
    if not isinstance(raw_steps, list):
        raise InvalidInputError(f"invalid recipe yaml {path}: 'steps' must be a list")

    steps = []
    for index, raw_step in enumerate(raw_steps, start=1):
        try:
            steps.append(normalize_step(raw_step))
        except InvalidInputError as e:
            raise InvalidInputError(f"invalid recipe yaml {path}: step {index}: {e}") from e

    try:
        manifest = RecipeManifest.model_validate(
            {
                "id": data.get("id"),
                "name": data.get("name"),
                "description": data.get("description"),
                "steps": steps,
            }
        )
    except ValidationError as e:
        raise InvalidInputError(f"invalid recipe yaml {path}: {e}") from e

    logger.debug("Loaded recipe %s (%d steps) from %s", manifest.id, len(steps), path)
    return Recipe(manifest=manifest, base_dir=path.parent)


def _manifest_paths(recipe_dir: Path) -> list[Path]:
    paths = []
    for child in sorted(recipe_dir.iterdir()):
        if child.is_dir():
            for name in MANIFEST_NAMES:
                if (child / name).is_file():
                    paths.append(child / name)
                    break
        elif child.suffix in MANIFEST_SUFFIXES and child.is_file():
            paths.append(child)
    return paths


def load_all(recipe_dir: Path) -> list[Recipe]:
    """Load every manifest under ``recipe_dir``, ordered by name.

    A missing directory yields an empty list; a single invalid manifest
    fails the whole load.
    """
    if not recipe_dir.is_dir():
        logger.debug("Recipe directory not found: %s", recipe_dir)
        return []

    try:
        paths = _manifest_paths(recipe_dir)
    except OSError as e:
        raise StorageError(f"failed to read recipe directory {recipe_dir}: {e}") from e

    recipes = [load_recipe(p) for p in paths]
    recipes.sort(key=lambda r: r.manifest.name)
    return recipes


def find_recipe(recipe_dir: Path, recipe_id: str) -> Recipe:
    """Find a recipe by id.

    Raises:
        NotFoundError: If no manifest declares ``recipe_id``.
    """
    for recipe in load_all(recipe_dir):
        if recipe.manifest.id == recipe_id:
            return recipe
    raise NotFoundError(f"recipe {recipe_id} not found in {recipe_dir}")
