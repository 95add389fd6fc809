"""
CLI commands for application shortcuts.
"""

from __future__ import annotations

import click

from alloy.ui.cli import call, echo_json


@click.group()
def shortcut() -> None:
    """Shortcuts — launcher bundles for programs in a bottle."""


@shortcut.command("create")
@click.argument("bottle_id")
@click.argument("executable")
@click.option("--name", "-n", required=True, help="Shortcut display name.")
@click.option(
    "--destination",
    "-d",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory for the bundle (default: ~/Applications/Silicon Alloy).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def shortcut_create(
    ctx: click.Context,
    bottle_id: str,
    executable: str,
    name: str,
    destination: str | None,
    as_json: bool,
) -> None:
    """Create a launcher for EXECUTABLE in a bottle."""
    params: dict = {"bottle_id": bottle_id, "name": name, "executable": executable}
    if destination:
        params["destination"] = destination

    result = call(ctx, "shortcut.create", params)

    if as_json:
        echo_json(result)
        return

    click.secho(f"✅ Shortcut created: {result['shortcut']}", fg="green")
