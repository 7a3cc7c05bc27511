"""Parsing and lookup helpers shared by the CLI."""

from famledger.utils.amount_parser import parse_amount
from famledger.utils.date_parser import get_date_range, parse_date
from famledger.utils.resolvers import resolve_account, resolve_category, resolve_user

__all__ = [
    "parse_amount",
    "parse_date",
    "get_date_range",
    "resolve_account",
    "resolve_category",
    "resolve_user",
]
