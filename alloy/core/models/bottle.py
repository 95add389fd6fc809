"""
Bottle models — the persisted record of one provisioned environment.

A record is serialized to ``<bottles>/<id>/bottle.json`` and lives next
to the bottle's ``prefix/`` directory. The runtime is embedded by value,
so a bottle keeps the runtime it was created with even if the registry
changes later.
"""

from __future__ import annotations

import time
import uuid
from pathlib import Path

from pydantic import BaseModel, Field


def _unix_now() -> int:
    """Current time as whole seconds since the epoch."""
    return int(time.time())


class WineRuntime(BaseModel):
    """A resolved, usable runtime: the executable a bottle launches."""

    label: str
    wine64_path: Path
    version: str
    channel: str | None = None

    @property
    def bin_dir(self) -> Path:
        """Directory holding the main executable and its companion tools."""
        return self.wine64_path.parent

    @property
    def root(self) -> Path:
        """Runtime install root (the parent of ``bin/``)."""
        return self.bin_dir.parent


class BottleRecord(BaseModel):
    """Root state model for one bottle — serialized to bottle.json."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str
    created_at: int = Field(default_factory=_unix_now)
    wine_runtime: WineRuntime

    # Ordered overrides. A later entry for a key shadows an earlier one;
    # set_env keeps at most one entry per key.
    environment: list[tuple[str, str]] = Field(default_factory=list)

    def set_env(self, key: str, value: str) -> None:
        """Overwrite ``key``: drop existing entries, append the new pair."""
        self.environment = [(k, v) for k, v in self.environment if k != key]
        self.environment.append((key, value))

    def env_dict(self) -> dict[str, str]:
        """Overrides as a mapping, later entries winning."""
        return dict(self.environment)
