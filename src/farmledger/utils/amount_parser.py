"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

_CURRENCY = re.compile(r"^(₹|rs\.?|inr)\s*", re.IGNORECASE)


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal with at most two decimal places.

    Handles "1234.50", "1,23,456.00" (Indian grouping), "₹500", "Rs. 500",
    "INR 500", and "(500)" or "-500" for negative amounts.

    Raises:
        ValueError: If amount string cannot be parsed or has more than two decimals
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    text = amount_str.strip()
    is_negative = text.startswith("(") and text.endswith(")")
    if is_negative:
        text = text[1:-1].strip()

    text = _CURRENCY.sub("", text).replace(",", "").strip()

    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    if amount.as_tuple().exponent < -2:
        raise ValueError(f"Amount '{amount_str}' has more than two decimal places")
    return -amount if is_negative else amount


def parse_positive_amount(amount_str: str) -> Decimal:
    """Parse an amount that must be greater than zero."""
    amount = parse_amount(amount_str)
    if amount <= 0:
        raise ValueError(f"Amount must be positive, got '{amount_str}'")
    return amount
