"""Tests for amount parsing."""

from decimal import Decimal

import pytest

from famledger.utils.amount_parser import parse_amount


@pytest.mark.parametrize(
    "text,expected",
    [
        ("123.45", Decimal("123.45")),
        ("-123.45", Decimal("-123.45")),
        ("+10", Decimal("10")),
        ("€12,50", Decimal("12.50")),
        ("$1,234.56", Decimal("1234.56")),
        ("1.234,56", Decimal("1234.56")),
        ("1,234", Decimal("1234")),
        ("12,5", Decimal("12.5")),
        ("(45.00)", Decimal("-45.00")),
        ("10 EUR", Decimal("10")),
    ],
)
def test_parse_amount(text, expected):
    assert parse_amount(text) == expected


@pytest.mark.parametrize("text", ["", "abc", "NaN", "1.2.3,4,5"])
def test_parse_amount_rejects_garbage(text):
    with pytest.raises(ValueError):
        parse_amount(text)
