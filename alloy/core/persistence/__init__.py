"""Persistence — bottle record store and per-bottle locking."""
