"""
Shared helpers for the CLI command groups.

Every command talks to the daemon through :class:`RpcClient`; the socket
comes from ``--socket`` or the resolved settings.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click

from alloy.core.errors import AlloyError


def get_client(ctx: click.Context):
    """Build an RPC client for the daemon socket in effect."""
    from alloy.daemon.client import RpcClient

    socket_path: Path | None = ctx.obj.get("socket_path")
    if socket_path is None:
        from alloy.core.config.settings import load_settings

        socket_path = load_settings(ctx.obj.get("config_path")).socket_path
    return RpcClient(socket_path)


def call(ctx: click.Context, method: str, params: dict | None = None) -> Any:
    """Call the daemon; print the error in red and exit 1 on failure."""
    try:
        return get_client(ctx).call_sync(method, params)
    except AlloyError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


def echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2))
