"""
Runtime catalog models.

``RuntimeDescriptor`` is what discovery finds on disk; it is converted
into a ``WineRuntime`` when a bottle is created. ``RuntimeSelection``
carries the caller's criteria for choosing one.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict

from alloy.core.models.bottle import WineRuntime


class RuntimeDescriptor(BaseModel):
    """An installed runtime discovered under the runtime root."""

    model_config = ConfigDict(frozen=True)

    channel: str
    label: str
    version: str
    wine64_path: Path
    notes: str | None = None

    def to_wine_runtime(self, label: str | None = None) -> WineRuntime:
        """Convert to a bottle runtime, optionally overriding the label."""
        return WineRuntime(
            label=label or self.label,
            wine64_path=self.wine64_path,
            version=self.version,
            channel=self.channel,
        )


class RuntimeSelection(BaseModel):
    """Criteria for picking a runtime at bottle creation."""

    wine_version: str
    wine_label: str | None = None
    wine_path: Path | None = None
    channel: str | None = None
