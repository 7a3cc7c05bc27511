"""CLI error handling and output helpers."""

from datetime import date
from decimal import Decimal
from typing import Optional

import click

from famledger.domain.calculations import format_currency
from famledger.utils.amount_parser import parse_amount
from famledger.utils.date_parser import parse_date


def handle_domain_error(ctx: click.Context, error: ValueError) -> None:
    """Render a domain (or parsing) error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def parse_date_or_exit(ctx: click.Context, value: Optional[str], label: str = "date") -> Optional[date]:
    if value is None:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def parse_amount_or_exit(ctx: click.Context, value: str) -> Decimal:
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid amount: {e}", err=True)
        ctx.exit(1)


def money(ctx: click.Context, value: Decimal) -> str:
    """Format an amount with the configured currency symbol."""
    symbol = ctx.obj.get("config", {}).get("currency", {}).get("symbol", "€")
    return format_currency(value, symbol=symbol)
