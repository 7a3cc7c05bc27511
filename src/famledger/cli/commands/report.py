"""Report commands."""

import click

from famledger.cli.date_filters import period_options, resolve_cli_date_range
from famledger.cli.error_handling import handle_domain_error, money
from famledger.domain.reports import ReportsService
from famledger.utils.resolvers import resolve_user


@click.group()
def report_group():
    """Financial reports for a family group."""
    pass


@report_group.command("overview")
@click.argument("group_id", type=int)
@click.option("--user", help="Only this user's accounts and transactions")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@period_options
@click.pass_context
def overview(
    ctx,
    group_id: int,
    user: str | None,
    start_date: str | None,
    end_date: str | None,
    **period_flags: bool,
):
    """Earned, spent and balances of a group, by account type and category.

    Examples:
        famledger report overview 1 --this-month
        famledger report overview 1 --user anna@example.com --last-year
    """
    db = ctx.obj["db"]
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    try:
        user_id = resolve_user(db, user).id if user else None
        report = ReportsService(db).get_overview(group_id, user_id=user_id, start=start, end=end)
    except ValueError as e:
        handle_domain_error(ctx, e)

    metrics = report.metrics
    click.echo(f"\nOverview ({report.transaction_count} transactions)")
    click.echo("=" * 60)
    click.echo(f"Earned:      {money(ctx, metrics.total_earned):>16s}")
    click.echo(f"Spent:       {money(ctx, metrics.total_spent):>16s}")
    click.echo(f"Transferred: {money(ctx, metrics.total_transferred):>16s}")
    click.echo(f"Balance:     {money(ctx, metrics.total_balance):>16s}")

    if report.account_types:
        click.echo("\nBy account type:")
        click.echo("-" * 60)
        for summary in report.account_types:
            click.echo(
                f"{summary.type:12s} | earned {money(ctx, summary.total_earned):>14s} | "
                f"spent {money(ctx, summary.total_spent):>14s} | "
                f"balance {money(ctx, summary.total_balance):>14s}"
            )

    if report.categories:
        click.echo("\nBy category (net spending):")
        click.echo("-" * 60)
        for item in report.categories:
            click.echo(f"{item.category:20s} | {money(ctx, item.net):>14s} | {item.percentage:5.1f}%")


@report_group.command("categories")
@click.argument("group_id", type=int)
@click.option("--start-date", help="Start date")
@click.option("--end-date", help="End date")
@period_options
@click.pass_context
def categories(ctx, group_id: int, start_date: str | None, end_date: str | None, **period_flags: bool):
    """Income and expense totals per category."""
    db = ctx.obj["db"]
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    try:
        stats = ReportsService(db).get_category_stats(group_id, start=start, end=end)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not stats["income"] and not stats["expense"]:
        click.echo("No transactions found.")
        return

    for kind, title in (("expense", "Expenses"), ("income", "Income")):
        if not stats[kind]:
            continue
        click.echo(f"\n{title}:")
        click.echo("-" * 50)
        for stat in stats[kind]:
            click.echo(f"{stat.name:25s} | {money(ctx, stat.total):>16s}")


@report_group.command("periods")
@click.argument("group_id", type=int)
@click.option("--user", help="Only periods of this user")
@click.pass_context
def periods(ctx, group_id: int, user: str | None):
    """Budget periods with flows and balances per account type."""
    db = ctx.obj["db"]
    try:
        user_id = resolve_user(db, user).id if user else None
        summaries = ReportsService(db).get_period_summaries(group_id, user_id=user_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not summaries:
        click.echo("No budget periods found.")
        return

    for summary in summaries:
        click.echo(f"\n{summary.name} (user {summary.user_id})")
        click.echo("-" * 70)
        click.echo(
            f"Earned {money(ctx, summary.total_earned)} | Spent {money(ctx, summary.total_spent)}"
        )
        for account_type, metrics in sorted(summary.metrics_by_account_type.items()):
            click.echo(
                f"  {account_type:12s} | start {money(ctx, metrics.start_balance):>14s} | "
                f"end {money(ctx, metrics.end_balance):>14s}"
            )


def register_commands(cli):
    """Register report commands with main CLI."""
    cli.add_command(report_group, name="report")
