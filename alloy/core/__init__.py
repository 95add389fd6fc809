"""Core — domain models, persistence, runtime registry, recipe engine."""
