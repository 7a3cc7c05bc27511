"""Account management commands."""

import click

from famledger.cli.error_handling import handle_domain_error, money
from famledger.domain.account import AccountService
from famledger.domain.finance_logic import calculate_aggregated_balance
from famledger.utils.resolvers import resolve_account, resolve_user


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--type", "account_type", default="checking", show_default=True, help="Account type")
@click.option(
    "--user",
    "users",
    multiple=True,
    required=True,
    help="Owner (ID, email or name). Repeat for shared accounts.",
)
@click.option("--group", "group_id", type=int, help="Group (defaults to the first owner's group)")
@click.pass_context
def create_account(ctx, name: str, account_type: str, users: tuple[str, ...], group_id: int | None):
    """Create a new account.

    Examples:
        famledger account create "Conto comune" --user 1 --user 2
        famledger account create "Risparmi" --type savings --user anna@example.com
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        owners = [resolve_user(db, u) for u in users]
        if group_id is None:
            group_id = owners[0].group_id
        account_id = service.create_account(
            name=name, type=account_type, user_ids=[o.id for o in owners], group_id=group_id
        )
        click.echo(f"Created account '{name}' (ID: {account_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.option("--group", "group_id", type=int, help="Only accounts of this group")
@click.option("--user", help="Only accounts owned by this user")
@click.pass_context
def list_accounts(ctx, group_id: int | None, user: str | None):
    """List accounts with their current balances."""
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        user_id = resolve_user(db, user).id if user else None
    except ValueError as e:
        handle_domain_error(ctx, e)

    rows = service.list_with_balances(group_id=group_id, user_id=user_id)
    if not rows:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 70)
    for acc, balance in rows:
        click.echo(f"ID: {acc.id:3d} | {acc.name:20s} | {acc.type:12s} | {money(ctx, balance):>15s}")
    click.echo("-" * 70)
    total = calculate_aggregated_balance(balance for _, balance in rows)
    click.echo(f"{'Total':>43s} | {money(ctx, total):>15s}")


@account_group.command("rename")
@click.argument("account", metavar="ACCOUNT")
@click.argument("new_name", metavar="NEW_NAME")
@click.option("--type", "account_type", help="New account type (optional)")
@click.pass_context
def rename_account(ctx, account: str, new_name: str, account_type: str | None) -> None:
    """Rename an account.

    ACCOUNT can be an account name or ID.

    Examples:
        famledger account rename "Conto" "Conto comune"
        famledger account rename 1 "Risparmi" --type savings
    """
    db = ctx.obj["db"]
    try:
        account_obj = resolve_account(db, account)
        AccountService(db).update_account(account_obj.id, name=new_name, type=account_type)
        click.echo(f"Renamed account to '{new_name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def delete_account(ctx, account: str, yes: bool) -> None:
    """Delete an account and every transaction touching it.

    ACCOUNT can be an account name or ID.

    Examples:
        famledger account delete "Conto comune"
        famledger account delete 1 --yes
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        account_obj = resolve_account(db, account)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not yes and not click.confirm(
        f"Delete account '{account_obj.name}' and all its transactions?", default=False
    ):
        click.echo("Cancelled.")
        return

    try:
        removed = service.delete_account(account_obj.id)
        click.echo(
            f"Deleted account '{account_obj.name}' "
            f"({removed} transaction{'s' if removed != 1 else ''} removed)"
        )
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
