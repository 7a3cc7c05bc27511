"""Budget period commands."""

import click

from famledger.cli.error_handling import handle_domain_error, money, parse_date_or_exit
from famledger.domain.budget_period import BudgetPeriodService
from famledger.utils.resolvers import resolve_user


@click.group()
def period_group():
    """Manage budget periods."""
    pass


@period_group.command("start")
@click.argument("user", metavar="USER")
@click.option("--date", "date_str", default="today", show_default=True, help="Start date")
@click.pass_context
def start_period(ctx, user: str, date_str: str):
    """Start a new budget period for USER.

    The currently active period, if still open, ends the day before.

    Examples:
        famledger period start anna@example.com
        famledger period start 1 --date 2025-01-27
    """
    db = ctx.obj["db"]
    start = parse_date_or_exit(ctx, date_str)
    try:
        owner = resolve_user(db, user)
        period = BudgetPeriodService(db).create_period(owner.id, start)
        click.echo(f"Started budget period {period.id} for '{owner.name}' on {period.start_date}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@period_group.command("close")
@click.argument("user", metavar="USER")
@click.argument("period_id", type=int)
@click.option("--date", "date_str", default="today", show_default=True, help="End date")
@click.pass_context
def close_period(ctx, user: str, period_id: int, date_str: str):
    """Close a budget period and open the next one the following day.

    Examples:
        famledger period close anna@example.com 3 --date 2025-02-26
    """
    db = ctx.obj["db"]
    end = parse_date_or_exit(ctx, date_str)
    try:
        owner = resolve_user(db, user)
        period = BudgetPeriodService(db).close_period(owner.id, period_id, end)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Closed budget period {period.id} ({period.start_date} - {period.end_date})")
    click.echo(f"  Spent: {money(ctx, period.total_spent)}")
    click.echo(f"  Saved: {money(ctx, period.total_saved)}")


@period_group.command("list")
@click.argument("user", metavar="USER")
@click.pass_context
def list_periods(ctx, user: str):
    """List budget periods of USER, newest first."""
    db = ctx.obj["db"]
    try:
        owner = resolve_user(db, user)
    except ValueError as e:
        handle_domain_error(ctx, e)

    periods = BudgetPeriodService(db).list_periods(owner.id)
    if not periods:
        click.echo("No budget periods found.")
        return

    click.echo(f"\nBudget periods of {owner.name}:")
    click.echo("-" * 80)
    for p in periods:
        end = str(p.end_date) if p.end_date else "open"
        active = " *" if p.is_active else ""
        totals = ""
        if p.total_spent is not None:
            totals = f" | spent {money(ctx, p.total_spent)} | saved {money(ctx, p.total_saved or 0)}"
        click.echo(f"ID: {p.id:3d} | {p.start_date} - {end:10s}{totals}{active}")


@period_group.command("delete")
@click.argument("user", metavar="USER")
@click.argument("period_id", type=int)
@click.pass_context
def delete_period(ctx, user: str, period_id: int):
    """Delete a budget period of USER."""
    db = ctx.obj["db"]
    try:
        owner = resolve_user(db, user)
        BudgetPeriodService(db).delete_period(owner.id, period_id)
        click.echo(f"Deleted budget period {period_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@period_group.command("migrate")
@click.argument("user", metavar="USER")
@click.pass_context
def migrate_periods(ctx, user: str):
    """Move USER's legacy stored periods into the periods table."""
    db = ctx.obj["db"]
    try:
        owner = resolve_user(db, user)
        created = BudgetPeriodService(db).migrate_legacy_periods(owner.id)
        click.echo(f"Migrated {created} budget period{'s' if created != 1 else ''} for '{owner.name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register budget period commands with main CLI."""
    cli.add_command(period_group, name="period")
