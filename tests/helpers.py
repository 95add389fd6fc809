"""
Filesystem builders shared by the test modules.
"""

import textwrap
from pathlib import Path


def make_runtime(root: Path, arch: str = "x86_64", version: str = "7.0") -> Path:
    """Lay out ``wine-<arch>-<version>/bin`` with wine64 and winecfg; return wine64."""
    bin_dir = root / f"wine-{arch}-{version}" / "bin"
    bin_dir.mkdir(parents=True)
    for tool in ("wine64", "winecfg"):
        exe = bin_dir / tool
        exe.write_text("#!/bin/sh\nexit 0\n")
        exe.chmod(0o755)
    return bin_dir / "wine64"


def write_recipe(recipe_dir: Path, recipe_id: str, body: str, resources: dict | None = None) -> Path:
    """Write ``<recipe_dir>/<id>/recipe.yaml`` plus optional resource files."""
    folder = recipe_dir / recipe_id
    folder.mkdir(parents=True, exist_ok=True)
    manifest = folder / "recipe.yaml"
    manifest.write_text(textwrap.dedent(body))
    for rel, content in (resources or {}).items():
        target = folder / "resources" / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    return manifest
