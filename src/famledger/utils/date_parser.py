"""Date parsing utilities."""

from datetime import date, timedelta
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
PERIODS = ("this-month", "this-year", "this-week", "last-month", "last-year", "last-week")

_ALIASES = {"oggi": "today", "ieri": "yesterday", "domani": "tomorrow"}


def _start_of(unit: str, today: date) -> date:
    if unit == "month":
        return today.replace(day=1)
    if unit == "year":
        return today.replace(month=1, day=1)
    if unit == "week":
        return today - timedelta(days=today.weekday())
    raise ValueError(f"Unknown unit '{unit}'")


def _shift(unit: str, anchor: date, step: int) -> date:
    if unit == "month":
        return anchor + relativedelta(months=step)
    if unit == "year":
        return anchor + relativedelta(years=step)
    return anchor + timedelta(weeks=step)


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2024-01-15", "15/01/2024", "January 15, 2024")
    and relative ones: "today", "yesterday", "tomorrow" (or "oggi", "ieri",
    "domani"), "last/this/next month|year|week" (first day of that period)
    and "last monday" ... "last sunday".

    Day-first is assumed for slash dates, so "01/02/2024" is 1 February.

    Raises:
        ValueError: If the string cannot be parsed
    """
    if date_str is None or not date_str.strip():
        raise ValueError("Empty date string")
    text = date_str.strip().lower()
    text = _ALIASES.get(text, text)
    today = today or date.today()

    if text == "today":
        return today
    if text == "yesterday":
        return today - timedelta(days=1)
    if text == "tomorrow":
        return today + timedelta(days=1)

    prefix, _, unit = text.partition(" ")
    if prefix in ("last", "this", "next") and unit:
        if unit in ("month", "year", "week"):
            step = {"last": -1, "this": 0, "next": 1}[prefix]
            return _shift(unit, _start_of(unit, today), step)
        if prefix == "last" and unit in WEEKDAYS:
            days_ago = (today.weekday() - WEEKDAYS.index(unit)) % 7 or 7
            return today - timedelta(days=days_ago)

    try:
        return date_parser.parse(text, dayfirst="/" in text).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}") from e


def get_date_range(period: str, today: Optional[date] = None) -> tuple[date, date]:
    """Start and end dates of a named period.

    Current periods (this-*) end today, past ones end on their last day.

    Raises:
        ValueError: If the period is not one of PERIODS
    """
    name = period.strip().lower()
    today = today or date.today()
    if name not in PERIODS:
        raise ValueError(f"Unknown period: '{period}'. Supported periods: {', '.join(PERIODS)}")

    which, _, unit = name.partition("-")
    start = _start_of(unit, today)
    if which == "this":
        return start, today
    previous_start = _shift(unit, start, -1)
    return previous_start, start - timedelta(days=1)
