"""Transaction commands."""

import click

from famledger.cli.date_filters import period_options, resolve_cli_date_range
from famledger.cli.error_handling import (
    handle_domain_error,
    money,
    parse_amount_or_exit,
    parse_date_or_exit,
)
from famledger.domain.calculations import calculate_monthly_financials
from famledger.domain.entities import TRANSACTION_TYPES, TransactionFilter
from famledger.domain.transaction import TransactionService
from famledger.utils.resolvers import resolve_account, resolve_category, resolve_user


@click.group()
def transaction_group():
    """Manage transactions."""
    pass


@transaction_group.command("add")
@click.argument("description", metavar="DESCRIPTION")
@click.argument("amount", metavar="AMOUNT")
@click.option("--type", "txn_type", type=click.Choice(TRANSACTION_TYPES), default="expense", show_default=True)
@click.option("--category", required=True, help="Category key, label or ID")
@click.option("--account", required=True, help="Account name or ID")
@click.option("--to-account", help="Destination account name or ID (transfers only)")
@click.option("--date", "date_str", default="today", show_default=True, help="Date (YYYY-MM-DD, DD/MM/YYYY or relative like 'ieri')")
@click.option("--user", help="Owning user (defaults to the account's first owner)")
@click.pass_context
def add_transaction(
    ctx,
    description: str,
    amount: str,
    txn_type: str,
    category: str,
    account: str,
    to_account: str | None,
    date_str: str,
    user: str | None,
):
    """Add a transaction.

    AMOUNT accepts Italian or English formats and an optional currency
    symbol. The sign is ignored: --type decides the direction.

    Examples:
        famledger transaction add "Spesa Esselunga" "45,30 €" --category spesa --account 1
        famledger tx add "Stipendio" 2500 --type income --category stipendio --account "Conto"
        famledger tx add "Risparmio" 300 --type transfer --category risparmio \\
            --account "Conto" --to-account "Risparmi"
    """
    db = ctx.obj["db"]
    service = TransactionService(db)

    value = parse_amount_or_exit(ctx, amount)
    day = parse_date_or_exit(ctx, date_str)

    try:
        account_obj = resolve_account(db, account)
        destination = resolve_account(db, to_account, group_id=account_obj.group_id) if to_account else None
        category_obj = resolve_category(db, category, group_id=account_obj.group_id)
        if user:
            user_id = resolve_user(db, user).id
        else:
            user_id = account_obj.user_ids[0] if account_obj.user_ids else None

        transaction_id = service.create_transaction(
            description=description,
            amount=abs(value),
            type=txn_type,
            category=category_obj.key,
            date=day,
            account_id=account_obj.id,
            group_id=account_obj.group_id,
            user_id=user_id,
            to_account_id=destination.id if destination else None,
        )
        click.echo(f"Created {txn_type} transaction {transaction_id}: {money(ctx, abs(value))}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@transaction_group.command("list")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@period_options
@click.option("--category", help="Category key")
@click.option("--type", "txn_type", type=click.Choice(TRANSACTION_TYPES))
@click.option("--account", help="Account name or ID")
@click.option("--user", help="Owning user")
@click.option("--group", "group_id", type=int, help="Owning group")
@click.option("--limit", type=int, help="Maximum number of rows")
@click.option("--offset", type=int, default=0, help="Rows to skip")
@click.pass_context
def list_transactions(
    ctx,
    start_date: str | None,
    end_date: str | None,
    category: str | None,
    txn_type: str | None,
    account: str | None,
    user: str | None,
    group_id: int | None,
    limit: int | None,
    offset: int,
    **period_flags: bool,
):
    """View transactions with optional filters, newest first.

    Examples:
        famledger transaction list --this-month
        famledger tx list --type expense --category spesa --limit 20
    """
    db = ctx.obj["db"]
    service = TransactionService(db)

    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )

    try:
        account_id = resolve_account(db, account).id if account else None
        user_id = resolve_user(db, user).id if user else None
        page = service.list_transactions(
            TransactionFilter(
                start_date=start,
                end_date=end,
                category=category.lower() if category else None,
                type=txn_type,
                account_id=account_id,
                user_id=user_id,
                group_id=group_id,
                limit=limit,
                offset=offset,
            )
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not page.items:
        click.echo("No transactions found.")
        return

    accounts = {acc.id: acc.name for acc in db.list_accounts()}

    click.echo(f"\nFound {page.total} transaction(s):")
    click.echo("-" * 100)
    click.echo(f"{'ID':<6} {'Date':<12} {'Type':<9} {'Amount':>14} {'Account':<20} {'Category':<15} Description")
    click.echo("-" * 100)
    for txn in page.items:
        account_name = accounts.get(txn.account_id, "Unknown")
        if txn.to_account_id is not None:
            account_name = f"{account_name} > {accounts.get(txn.to_account_id, 'Unknown')}"
        click.echo(
            f"{txn.id:<6} {str(txn.date):<12} {txn.type:<9} {money(ctx, txn.amount):>14} "
            f"{account_name[:20]:<20} {txn.category[:15]:<15} {txn.description[:30]}"
        )

    totals = calculate_monthly_financials(page.items)
    click.echo("-" * 100)
    click.echo(
        f"Income: {money(ctx, totals.total_income)} | Expenses: {money(ctx, totals.total_expenses)} | "
        f"Transfers: {money(ctx, totals.total_transfers)} | Count: {totals.transaction_count}"
    )
    if page.has_more:
        click.echo(f"Showing {len(page.items)} of {page.total}. Use --offset to see more.")


@transaction_group.command("update")
@click.argument("transaction_id", type=int)
@click.option("--description", help="New description")
@click.option("--amount", help="New amount")
@click.option("--category", help="New category key")
@click.option("--date", "date_str", help="New date")
@click.pass_context
def update_transaction(
    ctx,
    transaction_id: int,
    description: str | None,
    amount: str | None,
    category: str | None,
    date_str: str | None,
):
    """Update fields of a transaction.

    Examples:
        famledger transaction update 12 --amount 50 --date ieri
    """
    changes = {}
    if description is not None:
        changes["description"] = description
    if amount is not None:
        changes["amount"] = abs(parse_amount_or_exit(ctx, amount))
    if category is not None:
        changes["category"] = category
    if date_str is not None:
        changes["date"] = parse_date_or_exit(ctx, date_str)
    if not changes:
        click.echo("Error: Nothing to update.", err=True)
        ctx.exit(1)

    try:
        TransactionService(ctx.obj["db"]).update_transaction(transaction_id, **changes)
        click.echo(f"Updated transaction {transaction_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@transaction_group.command("delete")
@click.argument("transaction_id", type=int)
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def delete_transaction(ctx, transaction_id: int, yes: bool) -> None:
    """Delete a transaction.

    Examples:
        famledger transaction delete 1
    """
    service = TransactionService(ctx.obj["db"])

    if service.get_transaction(transaction_id) is None:
        click.echo(f"Error: Transaction {transaction_id} not found", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(f"Are you sure you want to delete transaction {transaction_id}?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_transaction(transaction_id)
        click.echo(f"Deleted transaction {transaction_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli: click.Group) -> None:
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
    cli.add_command(transaction_group, name="tx")
