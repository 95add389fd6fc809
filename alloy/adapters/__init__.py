"""Adapters — bindings to external processes.

Public re-exports for convenient access.
"""

from alloy.adapters.launcher import LaunchResult, Launcher, ProcessLauncher
from alloy.adapters.mock import LaunchCall, MockLauncher

__all__ = [
    "LaunchCall",
    "LaunchResult",
    "Launcher",
    "MockLauncher",
    "ProcessLauncher",
]
