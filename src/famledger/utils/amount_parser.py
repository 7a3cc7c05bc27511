"""Amount parsing utilities."""

import re
from decimal import Decimal, InvalidOperation

_CURRENCY = re.compile(r"[$€£¥]|EUR|USD|GBP", re.IGNORECASE)


def _normalize_separators(text: str) -> str:
    """Turn ``1.234,56`` / ``1,234.56`` / ``12,5`` into ``1234.56`` style."""
    if "," in text and "." in text:
        # Whichever separator comes last is the decimal one
        if text.rfind(",") > text.rfind("."):
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")
    if "," in text:
        head, _, tail = text.rpartition(",")
        if len(tail) == 3 and head:
            return text.replace(",", "")
        return head.replace(",", "") + "." + tail
    return text


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles:
    - "123.45", "-123.45"
    - currency symbols: "€12,50", "$1,234.56", "£10"
    - Italian separators: "1.234,56"
    - "(123.45)" (negative in parentheses)

    Raises:
        ValueError: If the string is not an amount
    """
    if amount_str is None or not str(amount_str).strip():
        raise ValueError("Empty amount string")

    text = str(amount_str).strip()
    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]

    text = _CURRENCY.sub("", text).replace(" ", "").strip()
    if text.startswith("-"):
        negative = not negative
        text = text[1:]
    elif text.startswith("+"):
        text = text[1:]

    try:
        amount = Decimal(_normalize_separators(text))
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}'") from e
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if negative else amount
