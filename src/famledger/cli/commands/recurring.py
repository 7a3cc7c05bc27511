"""Recurring series commands."""

import click

from famledger.cli.error_handling import (
    handle_domain_error,
    money,
    parse_amount_or_exit,
    parse_date_or_exit,
)
from famledger.domain.entities import FREQUENCIES
from famledger.domain.finance_logic import FREQUENCY_LABELS
from famledger.domain.recurring import DEFAULT_MAX_DAYS_OVERDUE, SERIES_TYPES, RecurringService
from famledger.utils.resolvers import resolve_account, resolve_category, resolve_user


def _max_days_overdue(ctx: click.Context, value: int | None) -> int:
    if value is not None:
        return value
    recurring = ctx.obj.get("config", {}).get("recurring", {})
    return int(recurring.get("max_days_overdue", DEFAULT_MAX_DAYS_OVERDUE))


@click.group()
def recurring_group():
    """Manage recurring income and expenses."""
    pass


@recurring_group.command("create")
@click.argument("description", metavar="DESCRIPTION")
@click.argument("amount", metavar="AMOUNT")
@click.option("--type", "series_type", type=click.Choice(SERIES_TYPES), default="expense", show_default=True)
@click.option("--category", required=True, help="Category key, label or ID")
@click.option("--account", required=True, help="Account name or ID")
@click.option("--user", "users", multiple=True, help="Sharing user. Defaults to the account owners.")
@click.option("--frequency", type=click.Choice(FREQUENCIES), default="monthly", show_default=True)
@click.option("--start-date", default="today", show_default=True, help="First scheduled date")
@click.option("--end-date", help="Last date (optional)")
@click.option("--due-day", type=int, help="Day of month, or ISO weekday for weekly series")
@click.pass_context
def create_series(
    ctx,
    description: str,
    amount: str,
    series_type: str,
    category: str,
    account: str,
    users: tuple[str, ...],
    frequency: str,
    start_date: str,
    end_date: str | None,
    due_day: int | None,
):
    """Create a recurring series.

    Examples:
        famledger recurring create "Affitto" 800 --category casa --account 1
        famledger recurring create "Palestra" 15 --frequency weekly --due-day 1 \\
            --category sport --account "Conto" --start-date 2025-01-06
    """
    db = ctx.obj["db"]
    value = parse_amount_or_exit(ctx, amount)
    start = parse_date_or_exit(ctx, start_date, "start date")
    end = parse_date_or_exit(ctx, end_date, "end date")

    if due_day is None:
        due_day = start.isoweekday() if frequency in ("weekly", "biweekly") else start.day

    try:
        account_obj = resolve_account(db, account)
        category_obj = resolve_category(db, category, group_id=account_obj.group_id)
        user_ids = [resolve_user(db, u).id for u in users] or list(account_obj.user_ids)
        series_id = RecurringService(db).create_series(
            description=description,
            amount=abs(value),
            type=series_type,
            category=category_obj.key,
            account_id=account_obj.id,
            user_ids=user_ids,
            frequency=frequency,
            start_date=start,
            due_day=due_day,
            end_date=end,
        )
        click.echo(f"Created recurring series '{description}' (ID: {series_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@recurring_group.command("list")
@click.option("--user", help="Only series shared with this user")
@click.option("--group", "group_id", type=int, help="Only series of this group")
@click.option("--active", "active_only", is_flag=True, help="Only active series")
@click.pass_context
def list_series(ctx, user: str | None, group_id: int | None, active_only: bool):
    """List recurring series with their monthly totals."""
    db = ctx.obj["db"]
    service = RecurringService(db)
    try:
        user_id = resolve_user(db, user).id if user else None
    except ValueError as e:
        handle_domain_error(ctx, e)

    series = service.list_series(user_id=user_id, group_id=group_id, active_only=active_only)
    if not series:
        click.echo("No recurring series found.")
        return

    click.echo("\nRecurring series:")
    click.echo("-" * 90)
    for s in series:
        state = "active" if s.is_active else "inactive"
        due = str(s.due_date) if s.due_date else "-"
        click.echo(
            f"ID: {s.id:3d} | {s.description:20s} | {s.type:7s} | {money(ctx, s.amount):>12s} | "
            f"{FREQUENCY_LABELS.get(s.frequency, s.frequency):12s} | next {due} | {state}"
        )

    totals = service.get_totals(user_id=user_id, group_id=group_id)
    click.echo("-" * 90)
    click.echo(
        f"Monthly income: {money(ctx, totals['total_income'])} | "
        f"Monthly expenses: {money(ctx, totals['total_expenses'])} | Net: {money(ctx, totals['net_monthly'])}"
    )


@recurring_group.command("toggle")
@click.argument("series_id", type=int)
@click.pass_context
def toggle_series(ctx, series_id: int):
    """Activate or deactivate a series."""
    try:
        series = RecurringService(ctx.obj["db"]).toggle_active(series_id)
        click.echo(f"Recurring series {series_id} is now {'active' if series.is_active else 'inactive'}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@recurring_group.command("delete")
@click.argument("series_id", type=int)
@click.pass_context
def delete_series(ctx, series_id: int):
    """Delete a series. Transactions it generated are kept."""
    try:
        RecurringService(ctx.obj["db"]).delete_series(series_id)
        click.echo(f"Deleted recurring series {series_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@recurring_group.command("execute-due")
@click.option("--dry-run", is_flag=True, help="Show what would run without writing anything")
@click.option("--max-days-overdue", type=int, help="Skip series overdue by more days (config default)")
@click.option("--group", "group_id", type=int, help="Only series of this group")
@click.option("--date", "date_str", default="today", show_default=True, help="Run as of this date")
@click.pass_context
def execute_due(ctx, dry_run: bool, max_days_overdue: int | None, group_id: int | None, date_str: str):
    """Execute every due recurring series once.

    Examples:
        famledger recurring execute-due --dry-run
        famledger recurring execute-due --max-days-overdue 3
    """
    service = RecurringService(ctx.obj["db"])
    today = parse_date_or_exit(ctx, date_str)
    result = service.execute_all_due(
        today=today,
        dry_run=dry_run,
        max_days_overdue=_max_days_overdue(ctx, max_days_overdue),
        group_id=group_id,
    )

    prefix = "[dry run] " if dry_run else ""
    click.echo(
        f"{prefix}Processed {result.processed} | Successful {result.successful} | "
        f"Failed {result.failed} | Total {money(ctx, result.total_amount)}"
    )
    for failure in result.failures:
        click.echo(f"  Series {failure.series_id} ({failure.description}): {failure.error}", err=True)
    if result.failed:
        ctx.exit(1)


@recurring_group.command("reconcile")
@click.argument("series_id", type=int, required=False)
@click.option("--max-days-overdue", type=int, help="Report series overdue by more days (config default)")
@click.pass_context
def reconcile(ctx, series_id: int | None, max_days_overdue: int | None):
    """Compare executions with the schedule.

    With SERIES_ID, show the reconciliation of that series. Without it,
    list series whose due date is too old to run automatically.
    """
    service = RecurringService(ctx.obj["db"])

    if series_id is not None:
        try:
            rec = service.get_reconciliation(series_id)
        except ValueError as e:
            handle_domain_error(ctx, e)
        click.echo(f"Recurring series {series_id}:")
        click.echo(f"  Expected executions: {rec.expected_executions}")
        click.echo(f"  Actual executions:   {rec.actual_executions}")
        click.echo(f"  Missed payments:     {rec.missed_payments}")
        click.echo(f"  Expected total:      {money(ctx, rec.expected_total)}")
        click.echo(f"  Total paid:          {money(ctx, rec.total_paid)}")
        click.echo(f"  Difference:          {money(ctx, rec.difference)}")
        click.echo(f"  Success rate:        {rec.success_rate:.1f}%")
        return

    missed = service.find_missed_executions(max_days_overdue=_max_days_overdue(ctx, max_days_overdue))
    if not missed:
        click.echo("No missed executions.")
        return
    click.echo("\nMissed executions:")
    click.echo("-" * 70)
    for m in missed:
        click.echo(
            f"ID: {m.series.id:3d} | {m.series.description:20s} | due {m.due_date} | "
            f"{m.days_overdue} days overdue"
        )


def register_commands(cli):
    """Register recurring series commands with main CLI."""
    cli.add_command(recurring_group, name="recurring")
