"""
Error taxonomy — every failure the core reports to callers.

Components raise these with human-readable context; they bubble
unchanged up to the daemon, which turns them into RPC errors using
``code`` and ``kind``. A non-zero exit of an external process is NOT
an error: it is reported through ``LaunchResult`` and logged.
"""

from __future__ import annotations


class AlloyError(Exception):
    """Base class for all expected failures."""

    code: int = -32000
    kind: str = "error"


class NotFoundError(AlloyError):
    """A bottle, recipe, or runtime companion tool does not exist."""

    kind = "not_found"


class InvalidInputError(AlloyError):
    """Malformed name, parameters, or recipe manifest."""

    kind = "invalid_input"


class InvalidParamsError(InvalidInputError):
    """RPC parameters are missing or have the wrong shape."""

    code = -32602
    kind = "invalid_params"


class MethodNotFoundError(InvalidInputError):
    """The requested RPC method is not part of the service surface."""

    code = -32601
    kind = "method_not_found"


class StorageError(AlloyError):
    """A directory or file operation failed."""

    kind = "io"


class LaunchError(AlloyError):
    """An external process could not be started."""

    kind = "launch_failure"


class ConfigError(AlloyError):
    """Settings file or environment is invalid."""

    kind = "config"
