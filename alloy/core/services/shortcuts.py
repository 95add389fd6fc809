"""
Shortcut bundles — double-clickable launchers for a program in a bottle.

Produces a minimal macOS application bundle::

    <destination>/<name>.app/
        Contents/
            Info.plist
            MacOS/launch      # shell script, mode 0755
            Resources/

The script exports the bottle's WINEPREFIX and environment, changes
into the prefix, and execs the bottle's runtime with the program.
"""

from __future__ import annotations

import asyncio
import logging
import plistlib
import shlex
import shutil
from collections.abc import Sequence
from pathlib import Path

from alloy.core.errors import StorageError
from alloy.core.models.bottle import BottleRecord

logger = logging.getLogger(__name__)

DEFAULT_SHORTCUT_NAME = "Windows App"
BUNDLE_ID_PREFIX = "com.siliconalloy.shortcut"


def default_shortcut_dir() -> Path:
    return Path.home() / "Applications" / "Silicon Alloy"


def sanitize_shortcut_name(name: str) -> str:
    """Keep letters, digits, spaces, dashes and underscores; replace the rest."""
    cleaned = "".join(ch if ch.isalnum() or ch in " -_" else "_" for ch in name).strip()
    return cleaned or DEFAULT_SHORTCUT_NAME


def info_plist(name: str, record: BottleRecord) -> bytes:
    return plistlib.dumps(
        {
            "CFBundleDevelopmentRegion": "en",
            "CFBundleExecutable": "launch",
            "CFBundleIdentifier": f"{BUNDLE_ID_PREFIX}.{record.id}",
            "CFBundleInfoDictionaryVersion": "6.0",
            "CFBundleName": name,
            "CFBundlePackageType": "APPL",
            "CFBundleShortVersionString": "1.0",
            "CFBundleVersion": "1.0",
        }
    )


def launcher_script(
    record: BottleRecord,
    prefix: Path,
    executable: str,
    launch_prefix: Sequence[str] = (),
) -> str:
    lines = [
        "#!/bin/zsh",
        "set -euo pipefail",
        "",
        f"export WINEPREFIX={shlex.quote(str(prefix))}",
    ]
    for key, value in record.environment:
        lines.append(f"export {key}={shlex.quote(value)}")
    lines.append('cd "$WINEPREFIX"')

    command = [*launch_prefix, str(record.wine_runtime.wine64_path), executable]
    lines.append(f'exec {" ".join(shlex.quote(part) for part in command)} "$@"')
    return "\n".join(lines) + "\n"


def _write_bundle(bundle: Path, plist: bytes, script: str) -> None:
    if bundle.exists():
        shutil.rmtree(bundle)

    contents = bundle / "Contents"
    (contents / "MacOS").mkdir(parents=True)
    (contents / "Resources").mkdir()

    (contents / "Info.plist").write_bytes(plist)
    launch = contents / "MacOS" / "launch"
    launch.write_text(script, encoding="utf-8")
    launch.chmod(0o755)


async def create_shortcut(
    record: BottleRecord,
    prefix: Path,
    name: str,
    executable: str,
    destination: Path | None = None,
    launch_prefix: Sequence[str] = (),
) -> Path:
    """Write (or replace) a shortcut bundle and return its path.

    Raises:
        StorageError: If the bundle cannot be written.
    """
    display_name = sanitize_shortcut_name(name)
    bundle = (destination or default_shortcut_dir()) / f"{display_name}.app"

    try:
        await asyncio.to_thread(
            _write_bundle,
            bundle,
            info_plist(display_name, record),
            launcher_script(record, prefix, executable, launch_prefix),
        )
    except OSError as e:
        raise StorageError(f"failed to create shortcut {bundle}: {e}") from e

    logger.info("Created shortcut %s for bottle %s (%s)", bundle, record.name, record.id)
    return bundle
