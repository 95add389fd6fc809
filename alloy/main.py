"""
Silicon Alloy — CLI entrypoint.

Usage:
    alloy --help
    alloy daemon
    alloy bottle create "My Game" --wine-version 9.0
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click

from alloy import __version__
from alloy.core.observability.logging_config import (
    resolve_level,
    setup_daemon_logging,
    setup_logging,
)
from alloy.ui.cli import call, echo_json


@click.group()
@click.version_option(version=__version__, prog_name="alloy")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to alloy.yml (default: <data dir>/alloy.yml).",
)
@click.option(
    "--socket",
    "socket_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Daemon socket (default: from settings).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    socket_path: str | None,
) -> None:
    """Silicon Alloy — run Windows programs in Wine bottles."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["socket_path"] = Path(socket_path) if socket_path else None
    ctx.obj["log_level"] = resolve_level(debug, verbose, quiet)

    setup_logging(ctx.obj["log_level"])


@cli.command()
@click.option("--mock", is_flag=True, help="Use the mock launcher (no real execution).")
@click.pass_context
def daemon(ctx: click.Context, mock: bool) -> None:
    """Start the background daemon in the foreground."""
    from alloy.adapters.mock import MockLauncher
    from alloy.core.config.settings import load_settings
    from alloy.core.errors import AlloyError
    from alloy.daemon.server import serve
    from alloy.daemon.service import DaemonService

    try:
        settings = load_settings(ctx.obj.get("config_path"))
        if ctx.obj.get("socket_path") is not None:
            settings = settings.model_copy(update={"socket_path": ctx.obj["socket_path"]})
        service = DaemonService.from_settings(
            settings,
            launcher=MockLauncher() if mock else None,
        )
        log_path = setup_daemon_logging(settings, ctx.obj["log_level"])
    except AlloyError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if not ctx.obj.get("quiet"):
        click.echo()
        click.secho("⚡ Silicon Alloy daemon", bold=True)
        click.echo(f"   Socket:   {settings.socket_path}")
        click.echo(f"   Bottles:  {settings.bottle_root}")
        click.echo(f"   Runtimes: {len(service.registry.runtimes)}")
        click.echo(f"   Log:      {log_path}")
        if mock:
            click.secho("   Mode: mock (no real execution)", fg="yellow")
        click.echo()

    try:
        asyncio.run(serve(service, settings.socket_path))
    except AlloyError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def info(ctx: click.Context, as_json: bool) -> None:
    """Show daemon version, directories and runtimes."""
    result = call(ctx, "service.info")

    if as_json:
        echo_json(result)
        return

    click.secho(f"\n⚡ Silicon Alloy {result.get('version', '?')}", fg="cyan", bold=True)
    click.echo(f"   Bottles:  {result.get('bottle_root')}")
    click.echo(f"   Runtimes: {result.get('runtime_dir')}")
    click.echo(f"   Recipes:  {result.get('recipe_dir')}")
    click.echo(f"   Launcher: {result.get('launcher')}")

    runtimes = result.get("runtimes", [])
    click.echo()
    click.secho(f"   Installed runtimes: {len(runtimes)}", fg="white", bold=True)
    for rt in runtimes:
        click.echo(f"     • {rt['label']}  [{rt['channel']}]")
    click.echo()


# ── Register sub-command groups from alloy/ui/cli/ ────────────────

from alloy.ui.cli.bottle import bottle
from alloy.ui.cli.recipe import recipe
from alloy.ui.cli.runtime import runtime
from alloy.ui.cli.shortcut import shortcut

cli.add_command(bottle)
cli.add_command(recipe)
cli.add_command(runtime)
cli.add_command(shortcut)


if __name__ == "__main__":
    cli()
