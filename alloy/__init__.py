"""Silicon Alloy — Windows-compatibility bottles managed by a local daemon."""

__version__ = "0.1.0"
