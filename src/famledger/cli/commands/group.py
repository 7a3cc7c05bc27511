"""Family group commands."""

import click

from famledger.cli.error_handling import handle_domain_error
from famledger.domain.group import GroupService
from famledger.utils.resolvers import resolve_user


@click.group()
def group_group():
    """Manage family groups."""
    pass


@group_group.command("create")
@click.argument("name", metavar="NAME")
@click.option(
    "--user",
    "users",
    multiple=True,
    required=True,
    help="Initial member (ID, email or name). Repeat for more members.",
)
@click.option("--description", help="Optional group description")
@click.pass_context
def create_group(ctx, name: str, users: tuple[str, ...], description: str | None):
    """Create a family group.

    Examples:
        famledger group create "Rossi" --user anna@example.com
        famledger group create "Casa" --user 1 --user 2 --description "Household"
    """
    db = ctx.obj["db"]
    service = GroupService(db)

    try:
        user_ids = [resolve_user(db, u).id for u in users]
        group_id = service.create_group(name=name, user_ids=user_ids, description=description)
        click.echo(f"Created group '{name}' (ID: {group_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@group_group.command("list")
@click.pass_context
def list_groups(ctx):
    """List all groups."""
    service = GroupService(ctx.obj["db"])

    groups = service.list_groups()
    if not groups:
        click.echo("No groups found.")
        return

    click.echo("\nGroups:")
    click.echo("-" * 60)
    for g in groups:
        status = "" if g.is_active else " (inactive)"
        plan = g.plan.get("name", g.plan.get("type", "")) if g.plan else ""
        click.echo(f"ID: {g.id:3d} | {g.name:20s} | Members: {len(g.user_ids):2d} | {plan}{status}")


@group_group.command("add-member")
@click.argument("group_id", type=int)
@click.argument("user", metavar="USER")
@click.pass_context
def add_member(ctx, group_id: int, user: str):
    """Add USER to a group, moving them out of their previous group.

    Examples:
        famledger group add-member 1 marco@example.com
    """
    db = ctx.obj["db"]
    try:
        member = resolve_user(db, user)
        GroupService(db).add_member(group_id, member.id)
        click.echo(f"Added '{member.name}' to group {group_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@group_group.command("remove-member")
@click.argument("group_id", type=int)
@click.argument("user", metavar="USER")
@click.pass_context
def remove_member(ctx, group_id: int, user: str):
    """Remove USER from a group."""
    db = ctx.obj["db"]
    try:
        member = resolve_user(db, user)
        GroupService(db).remove_member(group_id, member.id)
        click.echo(f"Removed '{member.name}' from group {group_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@group_group.command("delete")
@click.argument("group_id", type=int)
@click.pass_context
def delete_group(ctx, group_id: int):
    """Delete a group. Only groups without members can be deleted."""
    try:
        GroupService(ctx.obj["db"]).delete_group(group_id)
        click.echo(f"Deleted group {group_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register group commands with main CLI."""
    cli.add_command(group_group, name="group")
