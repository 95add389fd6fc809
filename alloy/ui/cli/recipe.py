"""
CLI commands for recipes — list, apply.
"""

from __future__ import annotations

import click

from alloy.ui.cli import call, echo_json


@click.group()
def recipe() -> None:
    """Recipes — scripted bottle provisioning."""


@recipe.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def recipe_list(ctx: click.Context, as_json: bool) -> None:
    """List recipes the daemon can apply."""
    result = call(ctx, "recipe.list")

    if as_json:
        echo_json(result)
        return

    recipes = result.get("recipes", [])
    if not recipes:
        click.secho("No recipes found.", fg="yellow")
        return

    click.secho(f"📜 Recipes ({len(recipes)}):", fg="cyan", bold=True)
    for r in recipes:
        click.echo(f"   • {r['id']}  {r['name']}  ({r['steps']} steps)")
        if r.get("description"):
            click.echo(f"     {r['description']}")


@recipe.command("apply")
@click.argument("bottle_id")
@click.argument("recipe_id")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def recipe_apply(ctx: click.Context, bottle_id: str, recipe_id: str, as_json: bool) -> None:
    """Apply RECIPE_ID to the bottle BOTTLE_ID."""
    result = call(ctx, "recipe.apply", {"bottle_id": bottle_id, "recipe_id": recipe_id})

    if as_json:
        echo_json(result)
        return

    click.secho(
        f"✅ Applied {result['applied']} ({result['steps']} steps)", fg="green", bold=True
    )
    for warning in result.get("warnings", []):
        click.secho(f"   ⚠️  {warning}", fg="yellow")
