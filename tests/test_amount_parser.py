"""Tests for amount parsing."""

import pytest
from decimal import Decimal

from pocketplan.utils.amount_parser import format_amount, parse_amount


@pytest.mark.parametrize(
    "text, expected",
    [
        ("123.45", Decimal("123.45")),
        ("123,45", Decimal("123.45")),
        ("1,234.56", Decimal("1234.56")),
        ("1 234,56", Decimal("1234.56")),
        ("10", Decimal("10.00")),
        ("12.50 zł", Decimal("12.50")),
        ("PLN 12.50", Decimal("12.50")),
        ("$12.50", Decimal("12.50")),
        ("-12.50", Decimal("-12.50")),
        ("(12.50)", Decimal("-12.50")),
        ("  7.999 ", Decimal("8.00")),
    ],
)
def test_parse_amount(text, expected):
    assert parse_amount(text) == expected


@pytest.mark.parametrize("text", ["", "   ", "abc", "nan", "inf"])
def test_parse_invalid_amount(text):
    with pytest.raises(ValueError):
        parse_amount(text)


def test_format_amount():
    assert format_amount(Decimal("5")) == "5.00zł"
    assert format_amount(Decimal("3.456"), "PLN") == "3.46PLN"
