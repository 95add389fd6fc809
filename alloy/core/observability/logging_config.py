"""
Logging setup for the alloy CLI and daemon.

The CLI logs to stderr only. The daemon additionally keeps
``<data>/logs/daemon.log``, rotated at midnight, which records at
least INFO even when the console was silenced with ``-q``.

Console level precedence:
    --debug  >  --verbose  >  --quiet  >  SILICON_ALLOY_LOG  >  WARNING
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from alloy.core.errors import ConfigError

if TYPE_CHECKING:
    from alloy.core.config.settings import Settings

ENV_LOG_LEVEL = "SILICON_ALLOY_LOG"
DAEMON_LOG_NAME = "daemon.log"

_DAEMON_LOG_BACKUPS = 7

# Console format per tier: quiet output is bare messages, INFO adds the
# logger name, DEBUG adds level and line.
_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    logging.WARNING: ("%(message)s", None),
}

# Several daemon processes may share a data dir over time; keep the pid.
_FILE_FORMAT = "%(asctime)s %(levelname)-5s [%(process)d] %(name)s — %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# asyncio logs every subprocess transport and slow callback at DEBUG.
# It stays one tier behind the console so --debug shows our own
# launches without the event-loop chatter.
_ASYNCIO_TIERS = {
    logging.DEBUG: logging.INFO,
    logging.INFO: logging.WARNING,
}


def resolve_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the console level name from CLI flags and the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    env = os.environ if environ is None else environ
    return logging.getLevelName(_parse_level(env.get(ENV_LOG_LEVEL)))


def setup_logging(level: str = "WARNING") -> None:
    """Configure stderr logging for the whole process.

    Replaces any handlers installed by an earlier call, so the daemon
    can reconfigure after the CLI group already did.
    """
    numeric_level = _parse_level(level)
    root = _reset_root()
    root.addHandler(_console_handler(numeric_level))
    root.setLevel(numeric_level)
    _quiet_asyncio(numeric_level)

    # Don't propagate exceptions from logging itself
    logging.raiseExceptions = False


def setup_daemon_logging(settings: Settings, level: str = "WARNING") -> Path:
    """Configure console plus the rotating daemon log; return its path.

    Raises:
        ConfigError: If the log file cannot be opened.
    """
    numeric_level = _parse_level(level)
    file_level = min(numeric_level, logging.INFO)
    log_path = settings.log_dir / DAEMON_LOG_NAME

    try:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.TimedRotatingFileHandler(
            log_path,
            when="midnight",
            backupCount=_DAEMON_LOG_BACKUPS,
            encoding="utf-8",
        )
    except OSError as e:
        raise ConfigError(f"Cannot open daemon log {log_path}: {e}") from e
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))

    root = _reset_root()
    root.addHandler(_console_handler(numeric_level))
    root.addHandler(file_handler)
    root.setLevel(file_level)
    _quiet_asyncio(file_level)

    logging.raiseExceptions = False
    return log_path


def _reset_root() -> logging.Logger:
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    return root


def _console_handler(numeric_level: int) -> logging.Handler:
    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _CONSOLE_FORMATS[logging.DEBUG]
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _CONSOLE_FORMATS[logging.INFO]
    else:
        fmt, datefmt = _CONSOLE_FORMATS[logging.WARNING]

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return console


def _quiet_asyncio(numeric_level: int) -> None:
    logging.getLogger("asyncio").setLevel(_ASYNCIO_TIERS.get(numeric_level, logging.WARNING))


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
