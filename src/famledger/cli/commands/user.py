"""User commands."""

import click

from famledger.cli.error_handling import handle_domain_error
from famledger.domain.entities import ROLES
from famledger.domain.user import UserService
from famledger.utils.resolvers import resolve_account, resolve_user


@click.group()
def user_group():
    """Manage users."""
    pass


@user_group.command("create")
@click.argument("name", metavar="NAME")
@click.argument("email", metavar="EMAIL")
@click.option("--group", "group_id", type=int, help="Group to join")
@click.option("--role", type=click.Choice(ROLES), default="member", show_default=True)
@click.pass_context
def create_user(ctx, name: str, email: str, group_id: int | None, role: str):
    """Create a user.

    Examples:
        famledger user create "Anna" anna@example.com
        famledger user create "Marco" marco@example.com --group 1 --role admin
    """
    service = UserService(ctx.obj["db"])
    try:
        user_id = service.create_user(name=name, email=email, group_id=group_id, role=role)
        click.echo(f"Created user '{name}' (ID: {user_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@user_group.command("list")
@click.option("--group", "group_id", type=int, help="Only users of this group")
@click.pass_context
def list_users(ctx, group_id: int | None):
    """List users."""
    service = UserService(ctx.obj["db"])

    users = service.list_users(group_id=group_id)
    if not users:
        click.echo("No users found.")
        return

    click.echo("\nUsers:")
    click.echo("-" * 70)
    for u in users:
        group = u.group_id if u.group_id is not None else "-"
        click.echo(f"ID: {u.id:3d} | {u.name:15s} | {u.email:25s} | {u.role:10s} | Group: {group}")


@user_group.command("set-role")
@click.argument("user", metavar="USER")
@click.argument("role", type=click.Choice(ROLES))
@click.pass_context
def set_role(ctx, user: str, role: str):
    """Change the role of USER."""
    db = ctx.obj["db"]
    try:
        target = resolve_user(db, user)
        UserService(db).set_role(target.id, role)
        click.echo(f"'{target.name}' is now {role}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@user_group.command("set-default-account")
@click.argument("user", metavar="USER")
@click.argument("account", metavar="ACCOUNT", required=False)
@click.pass_context
def set_default_account(ctx, user: str, account: str | None):
    """Set the default account of USER. Omit ACCOUNT to clear it.

    Examples:
        famledger user set-default-account anna@example.com "Conto comune"
        famledger user set-default-account 1
    """
    db = ctx.obj["db"]
    try:
        target = resolve_user(db, user)
        account_obj = resolve_account(db, account, group_id=target.group_id) if account else None
        UserService(db).set_default_account(target.id, account_obj.id if account_obj else None)
        if account_obj is None:
            click.echo(f"Cleared default account of '{target.name}'")
        else:
            click.echo(f"Default account of '{target.name}' set to '{account_obj.name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


@user_group.command("set-budget-day")
@click.argument("user", metavar="USER")
@click.argument("day", type=int)
@click.pass_context
def set_budget_day(ctx, user: str, day: int):
    """Set the day of month on which USER's budget period starts."""
    db = ctx.obj["db"]
    try:
        target = resolve_user(db, user)
        UserService(db).set_budget_start_date(target.id, day)
        click.echo(f"Budget start day of '{target.name}' set to {day}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@user_group.command("delete")
@click.argument("user", metavar="USER")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def delete_user(ctx, user: str, yes: bool):
    """Delete USER with their budgets, periods and transactions.

    Accounts and recurring series owned only by the user are deleted too.
    """
    db = ctx.obj["db"]
    try:
        target = resolve_user(db, user)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not yes and not click.confirm(f"Delete '{target.name}' and all their data?", default=False):
        click.echo("Cancelled.")
        return

    try:
        UserService(db).delete_user(target.id)
        click.echo(f"Deleted user '{target.name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register user commands with main CLI."""
    cli.add_command(user_group, name="user")
