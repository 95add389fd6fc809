"""
Settings loader — where bottles, runtimes, recipes and the socket live.

Values are resolved in precedence order:
    environment variables  >  alloy.yml  >  platform defaults

The settings file is optional. It is looked up at ``--config``, then
``$SILICON_ALLOY_CONFIG``, then ``<data_root>/alloy.yml``.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from alloy.core.errors import ConfigError

logger = logging.getLogger(__name__)

APP_DIR_NAME = "SiliconAlloy"
SETTINGS_FILE = "alloy.yml"

# ── Environment variables ───────────────────────────────────────

ENV_CONFIG = "SILICON_ALLOY_CONFIG"
ENV_DATA_DIR = "SILICON_ALLOY_DATA_DIR"
ENV_RUNTIME_DIR = "SILICON_ALLOY_RUNTIME_DIR"
ENV_RECIPES = "SILICON_ALLOY_RECIPES"
ENV_SOCKET = "SILICON_ALLOY_SOCKET"
ENV_ARM64_WINE64 = "SILICON_ALLOY_ARM64_WINE64"

_ENV_FIELDS = {
    ENV_RUNTIME_DIR: "runtime_root",
    ENV_RECIPES: "recipe_root",
    ENV_SOCKET: "socket_path",
    ENV_ARM64_WINE64: "arm64_wine64",
}


def _default_launch_prefix() -> list[str]:
    # Rosetta fronts every wine invocation on Apple hardware.
    if sys.platform == "darwin":
        return ["arch", "-x86_64"]
    return []


class Settings(BaseModel):
    """Resolved daemon settings."""

    model_config = ConfigDict(extra="forbid")

    data_root: Path
    runtime_root: Path
    recipe_root: Path
    socket_path: Path
    arm64_wine64: Path | None = None
    launch_prefix: list[str] = Field(default_factory=_default_launch_prefix)

    @property
    def bottle_root(self) -> Path:
        return self.data_root / "bottles"

    @property
    def log_dir(self) -> Path:
        return self.data_root / "logs"

    def ensure_directories(self) -> None:
        """Create the data, runtime, recipe, bottle and log directories."""
        for path in (
            self.data_root,
            self.bottle_root,
            self.runtime_root,
            self.recipe_root,
            self.log_dir,
            self.socket_path.parent,
        ):
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ConfigError(f"Cannot create {path}: {e}") from e


def default_data_root(environ: Mapping[str, str] | None = None) -> Path:
    """Platform data directory for Silicon Alloy."""
    env = os.environ if environ is None else environ
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME
    xdg = env.get("XDG_DATA_HOME")
    base = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return base / APP_DIR_NAME


def _default_socket_path(data_root: Path, environ: Mapping[str, str]) -> Path:
    runtime_dir = environ.get("XDG_RUNTIME_DIR")
    if runtime_dir:
        return Path(runtime_dir) / APP_DIR_NAME / "daemon.sock"
    return data_root / "daemon.sock"


def _read_settings_file(path: Path) -> dict:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def load_settings(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Resolve settings from defaults, the settings file, and the environment.

    Args:
        config_path: Explicit settings file. Must exist when given.
        environ: Environment mapping (default: ``os.environ``).

    Raises:
        ConfigError: If the settings file is unreadable or invalid.
    """
    env = os.environ if environ is None else environ

    data_root = Path(env[ENV_DATA_DIR]) if env.get(ENV_DATA_DIR) else default_data_root(env)

    if config_path is None and env.get(ENV_CONFIG):
        config_path = Path(env[ENV_CONFIG])

    file_data: dict = {}
    if config_path is not None:
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
        file_data = _read_settings_file(config_path)
    elif (data_root / SETTINGS_FILE).is_file():
        config_path = data_root / SETTINGS_FILE
        file_data = _read_settings_file(config_path)

    if config_path is not None:
        logger.debug("Loaded settings from %s", config_path)

    # A data_root in the file moves the other defaults with it,
    # unless the environment already pinned it.
    if "data_root" in file_data and not env.get(ENV_DATA_DIR):
        data_root = Path(file_data["data_root"]).expanduser()

    values: dict = {
        "data_root": data_root,
        "runtime_root": data_root / "runtime",
        "recipe_root": data_root / "recipes",
        "socket_path": _default_socket_path(data_root, env),
    }
    values.update({k: v for k, v in file_data.items() if k != "data_root"})

    for var, field in _ENV_FIELDS.items():
        if env.get(var):
            values[field] = env[var]

    try:
        settings = Settings.model_validate(values)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    logger.debug(
        "Settings: data=%s runtime=%s recipes=%s socket=%s",
        settings.data_root,
        settings.runtime_root,
        settings.recipe_root,
        settings.socket_path,
    )
    return settings
