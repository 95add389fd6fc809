"""
CLI commands for bottles — list, create, delete, run.

Thin wrappers over the daemon's ``bottle.*`` methods.
"""

from __future__ import annotations

import click

from alloy.ui.cli import call, echo_json


@click.group()
def bottle() -> None:
    """Bottles — isolated Wine prefixes."""


@bottle.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def bottle_list(ctx: click.Context, as_json: bool) -> None:
    """List all bottles."""
    result = call(ctx, "bottle.list")

    if as_json:
        echo_json(result)
        return

    bottles = result.get("bottles", [])
    if not bottles:
        click.secho("No bottles yet. Create one with `alloy bottle create`.", fg="yellow")
        return

    click.secho(f"🍾 Bottles ({len(bottles)}):", fg="cyan", bold=True)
    for b in bottles:
        runtime = b.get("wine_runtime", {})
        click.echo(f"   • {b['name']}  {b['id']}")
        click.echo(f"     {runtime.get('label', '?')}  →  {runtime.get('wine64_path', '?')}")


@bottle.command("create")
@click.argument("name")
@click.option("--wine-version", "-w", required=True, help="Wine version, e.g. 9.0.")
@click.option("--channel", default=None, help="Runtime channel (rossetta, native-arm64, …).")
@click.option("--label", "wine_label", default=None, help="Override the runtime label.")
@click.option(
    "--wine-path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Explicit wine64 executable.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def bottle_create(
    ctx: click.Context,
    name: str,
    wine_version: str,
    channel: str | None,
    wine_label: str | None,
    wine_path: str | None,
    as_json: bool,
) -> None:
    """Create a bottle called NAME."""
    params: dict = {"name": name, "wine_version": wine_version}
    if channel:
        params["channel"] = channel
    if wine_label:
        params["wine_label"] = wine_label
    if wine_path:
        params["wine_path"] = wine_path

    result = call(ctx, "bottle.create", params)

    if as_json:
        echo_json(result)
        return

    record = result["bottle"]
    click.secho(f"✅ Created bottle {record['name']}", fg="green", bold=True)
    click.echo(f"   Id:      {record['id']}")
    click.echo(f"   Runtime: {record['wine_runtime']['label']}")


@bottle.command("delete")
@click.argument("bottle_id")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def bottle_delete(ctx: click.Context, bottle_id: str, as_json: bool) -> None:
    """Delete a bottle and everything in its prefix."""
    result = call(ctx, "bottle.delete", {"id": bottle_id})

    if as_json:
        echo_json(result)
        return

    click.secho(f"🗑  Deleted bottle {result['deleted']}", fg="green")


@bottle.command("run", context_settings={"ignore_unknown_options": True})
@click.argument("bottle_id")
@click.argument("executable")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def bottle_run(
    ctx: click.Context,
    bottle_id: str,
    executable: str,
    args: tuple[str, ...],
    as_json: bool,
) -> None:
    """Run EXECUTABLE inside a bottle and wait for it to exit."""
    result = call(
        ctx,
        "bottle.run",
        {"id": bottle_id, "executable": executable, "args": list(args)},
    )

    if as_json:
        echo_json(result)
        return

    if result.get("success"):
        click.secho(f"✅ {executable} exited cleanly", fg="green")
    else:
        click.secho(f"⚠️  {executable} exited with {result.get('exit_status')}", fg="yellow")
