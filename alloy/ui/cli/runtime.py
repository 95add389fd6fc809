"""
CLI commands for Wine runtimes.
"""

from __future__ import annotations

import click

from alloy.ui.cli import call, echo_json


@click.group()
def runtime() -> None:
    """Wine runtimes known to the daemon."""


@runtime.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def runtime_list(ctx: click.Context, as_json: bool) -> None:
    """List discovered runtimes."""
    result = call(ctx, "runtime.list")

    if as_json:
        echo_json(result)
        return

    runtimes = result.get("runtimes", [])
    if not runtimes:
        click.secho("No Wine runtimes installed.", fg="yellow")
        return

    click.secho(f"🍷 Runtimes ({len(runtimes)}):", fg="cyan", bold=True)
    for rt in runtimes:
        click.echo(f"   • {rt['label']}  [{rt['channel']}]")
        click.echo(f"     {rt['wine64_path']}")
        if rt.get("notes"):
            click.echo(f"     {rt['notes']}")
