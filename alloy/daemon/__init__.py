"""Daemon — RPC dispatch, Unix-socket transport, and client."""
