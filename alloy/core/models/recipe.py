"""
Recipe models — canonical manifest and step variants.

On-disk manifests use several loose encodings per step; the loader
normalizes all of them into the tagged variants below. Once loaded a
manifest is immutable.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

RESOURCES_DIR = "resources"


class _Step(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class RunStep(_Step):
    """Launch a program inside the bottle and wait for it."""

    type: Literal["run"] = "run"
    path: Path
    args: tuple[str, ...] = ()


class WaitForExitStep(_Step):
    """Acknowledges that the preceding run already waited."""

    type: Literal["wait_for_exit"] = "wait_for_exit"


class WineCfgStep(_Step):
    """Optionally pin the default version, then run winecfg."""

    type: Literal["winecfg"] = "winecfg"
    version: str | None = None


class EnvStep(_Step):
    """Overwrite environment overrides on the bottle."""

    type: Literal["env"] = "env"
    variables: tuple[tuple[str, str], ...] = ()


class CopyStep(_Step):
    """Copy a recipe resource into the bottle prefix."""

    type: Literal["copy"] = "copy"
    source: Path = Field(alias="from")
    to: Path


RecipeStep = Annotated[
    Union[RunStep, WaitForExitStep, WineCfgStep, EnvStep, CopyStep],
    Field(discriminator="type"),
]


class RecipeManifest(BaseModel):
    """A parsed recipe.yaml."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str | None = None
    steps: tuple[RecipeStep, ...] = ()

    def summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "steps": len(self.steps),
        }


@dataclass(frozen=True)
class Recipe:
    """A manifest together with the directory it was loaded from."""

    manifest: RecipeManifest
    base_dir: Path

    @property
    def id(self) -> str:
        return self.manifest.id

    @property
    def resources_dir(self) -> Path:
        return self.base_dir / RESOURCES_DIR

    def resource(self, path: Path) -> Path:
        """Absolute paths are used as-is; relative ones live under resources/."""
        if path.is_absolute():
            return path
        return self.resources_dir / path
