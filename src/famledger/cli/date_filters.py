"""CLI helpers for date range resolution."""

from datetime import date

import click

from famledger.utils.date_parser import PERIODS, get_date_range, parse_date


def period_options(command):
    """Add --this-month ... --last-week flags to a command."""
    for period in reversed(PERIODS):
        command = click.option(
            f"--{period}",
            period.replace("-", "_"),
            is_flag=True,
            help=f"Restrict to {period.replace('-', ' ')}",
        )(command)
    return command


def resolve_cli_date_range(
    ctx: click.Context,
    *,
    start_date: str | None,
    end_date: str | None,
    period_flags: dict[str, bool],
) -> tuple[date | None, date | None]:
    """Resolve a date range from one period flag or explicit dates."""
    chosen = [name for name, is_set in period_flags.items() if is_set]

    if len(chosen) > 1:
        click.echo("Error: Only one period option can be specified at a time.", err=True)
        ctx.exit(1)
    if chosen and (start_date or end_date):
        click.echo(
            "Error: Period options cannot be combined with --start-date or --end-date.", err=True
        )
        ctx.exit(1)

    if chosen:
        return get_date_range(chosen[0].replace("_", "-"))

    start = end = None
    try:
        if start_date:
            start = parse_date(start_date)
        if end_date:
            end = parse_date(end_date)
    except ValueError as e:
        click.echo(f"Error: Invalid date: {e}", err=True)
        ctx.exit(1)
    if start and end and start > end:
        click.echo("Error: Start date must be on or before end date.", err=True)
        ctx.exit(1)
    return start, end
