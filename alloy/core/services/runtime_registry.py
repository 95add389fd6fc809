"""
Runtime registry — discovery and selection of installed wine runtimes.

Runtimes are scoped by folder name under the runtime root::

    runtime/
        wine-x86_64-7.0/bin/wine64
        wine-arm64-8.0-rc1/bin/wine64

The name is ``wine-<arch>-<version...>``; the version is everything
after the architecture. Folders that do not match, or that lack the
executable, are skipped.

The daemon loads one ``RuntimeRegistry`` at startup and keeps it for
the process lifetime. It is never rescanned: a runtime installed while
the daemon runs stays invisible until restart.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from alloy.core.models.bottle import WineRuntime
from alloy.core.models.runtime import RuntimeDescriptor, RuntimeSelection

logger = logging.getLogger(__name__)

RUNTIME_DIR_TAG = "wine"
WINE_EXECUTABLE = "wine64"
DEFAULT_CHANNEL = "rossetta"
CUSTOM_CHANNEL = "custom"

_ARCH_CHANNELS = {
    "x86_64": "rossetta",
    "arm64": "native-arm64",
}

ARM64_OVERRIDE_CHANNEL = "native-arm64"
ARM64_OVERRIDE_LABEL = "wine arm64 (external)"
ARM64_OVERRIDE_VERSION = "experimental"


def channel_for_arch(arch: str) -> str:
    """Map an architecture token to its channel name."""
    return _ARCH_CHANNELS.get(arch, f"custom-{arch}")


def default_wine_path(runtime_root: Path, version: str) -> Path:
    """Conventional executable location for a version. May not exist."""
    return runtime_root / f"{RUNTIME_DIR_TAG}-x86_64-{version}" / "bin" / WINE_EXECUTABLE


def _parse_dir_name(name: str) -> tuple[str, str] | None:
    """Split ``wine-<arch>-<version>`` into (arch, version)."""
    parts = name.split("-")
    if len(parts) < 3 or parts[0] != RUNTIME_DIR_TAG:
        return None
    return parts[1], "-".join(parts[2:])


def discover_runtimes(root: Path) -> list[RuntimeDescriptor]:
    """Scan the immediate subdirectories of ``root`` for runtimes.

    Returns:
        Descriptors sorted by label. Empty if ``root`` does not exist.
    """
    if not root.is_dir():
        logger.debug("Runtime root not found: %s", root)
        return []

    runtimes: list[RuntimeDescriptor] = []
    for entry in root.iterdir():
        if not entry.is_dir():
            continue
        parsed = _parse_dir_name(entry.name)
        if parsed is None:
            continue
        arch, version = parsed

        wine64 = entry / "bin" / WINE_EXECUTABLE
        if not wine64.exists():
            logger.debug("Skipping %s: no bin/%s", entry.name, WINE_EXECUTABLE)
            continue

        runtimes.append(
            RuntimeDescriptor(
                channel=channel_for_arch(arch),
                label=f"wine {arch} {version}",
                version=version,
                wine64_path=wine64,
            )
        )

    runtimes.sort(key=lambda rt: rt.label)
    return runtimes


@dataclass(frozen=True)
class RuntimeRegistry:
    """Immutable snapshot of the runtimes available to the daemon."""

    runtime_root: Path
    runtimes: tuple[RuntimeDescriptor, ...] = ()

    @classmethod
    def load(cls, runtime_root: Path, arm64_override: Path | None = None) -> RuntimeRegistry:
        """Discover runtimes and append the external arm64 build if present."""
        runtimes = discover_runtimes(runtime_root)

        if arm64_override is not None:
            if arm64_override.exists():
                runtimes.append(
                    RuntimeDescriptor(
                        channel=ARM64_OVERRIDE_CHANNEL,
                        label=ARM64_OVERRIDE_LABEL,
                        version=ARM64_OVERRIDE_VERSION,
                        wine64_path=arm64_override,
                        notes="provided via SILICON_ALLOY_ARM64_WINE64",
                    )
                )
            else:
                logger.warning("arm64 wine64 override %s does not exist, ignoring", arm64_override)

        if not runtimes:
            logger.warning("No wine runtimes discovered under %s", runtime_root)
        else:
            logger.info("Discovered %d runtimes: %s", len(runtimes), [rt.label for rt in runtimes])

        return cls(runtime_root=runtime_root, runtimes=tuple(runtimes))

    def channels(self) -> list[str]:
        return sorted({rt.channel for rt in self.runtimes})

    def select(self, selection: RuntimeSelection) -> WineRuntime:
        """Pick a runtime for a new bottle. Never fails.

        Order:
            1. explicit ``wine_path`` — used directly, channel "custom"
            2. exact channel + version match
            3. first match on channel alone
            4. conventional path under the runtime root, even if absent;
               the launch failure surfaces when it is first used
        """
        version = selection.wine_version

        if selection.wine_path is not None:
            return WineRuntime(
                label=selection.wine_label or f"custom wine {version}",
                wine64_path=selection.wine_path,
                version=version,
                channel=selection.channel or CUSTOM_CHANNEL,
            )

        channel = selection.channel or DEFAULT_CHANNEL

        for rt in self.runtimes:
            if rt.channel == channel and rt.version == version:
                return rt.to_wine_runtime(selection.wine_label)

        for rt in self.runtimes:
            if rt.channel == channel:
                logger.info(
                    "No %s runtime for version %s, using %s", channel, version, rt.label
                )
                return rt.to_wine_runtime(selection.wine_label)

        fallback = default_wine_path(self.runtime_root, version)
        logger.warning(
            "No runtime on channel %s; falling back to %s (may not exist)", channel, fallback
        )
        return WineRuntime(
            label=selection.wine_label or f"wine {version}",
            wine64_path=fallback,
            version=version,
            channel=channel,
        )
