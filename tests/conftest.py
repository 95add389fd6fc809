"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from alloy.adapters.mock import MockLauncher
from alloy.core.persistence.bottle_store import BottleStore
from alloy.core.services.runtime_registry import RuntimeRegistry
from tests.helpers import make_runtime


@pytest.fixture
def runtime_root(tmp_path: Path) -> Path:
    """Runtime root holding a single wine-x86_64-7.0 install."""
    root = tmp_path / "runtime"
    make_runtime(root)
    return root


@pytest.fixture
def registry(runtime_root: Path) -> RuntimeRegistry:
    return RuntimeRegistry.load(runtime_root)


@pytest.fixture
def store(tmp_path: Path) -> BottleStore:
    return BottleStore(tmp_path / "bottles")


@pytest.fixture
def recipe_dir(tmp_path: Path) -> Path:
    path = tmp_path / "recipes"
    path.mkdir()
    return path


@pytest.fixture
def launcher() -> MockLauncher:
    return MockLauncher()
