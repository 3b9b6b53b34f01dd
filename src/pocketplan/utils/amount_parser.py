"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

CENT = Decimal("0.01")


def parse_amount(amount_str: str) -> Decimal:
    """Parse a money string into a Decimal rounded to cents.

    Handles various formats:
    - "123.45"
    - "123,45" (comma as decimal separator)
    - "1,234.56" / "1 234,56"
    - "12.50 zł", "PLN 12.50", "$12.50"
    - "-12.50" and "(12.50)" (negative)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.strip()

    # Handle parentheses notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    # Remove currency markers and grouping spaces
    amount_str = re.sub(r"(?i)zł|pln|eur|usd|[$€£¥]", "", amount_str)
    amount_str = re.sub(r"\s+", "", amount_str)

    if "," in amount_str and "." in amount_str:
        # "1,234.56": commas group thousands
        amount_str = amount_str.replace(",", "")
    elif "," in amount_str:
        amount_str = amount_str.replace(",", ".")

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e}")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")

    if is_negative:
        amount = -amount
    return amount.quantize(CENT)


def format_amount(amount: Decimal, currency: str = "zł") -> str:
    """Render an amount with two decimals and the currency suffix."""
    return f"{Decimal(amount).quantize(CENT)}{currency}"
