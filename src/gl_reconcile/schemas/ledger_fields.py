"""
Field parsers shared by ingestion and matching.

Amounts are exact decimals carried as strings; periods are "YYYY-MM";
transaction dates are stored as "YYYY-MM-DD".
"""

import re
from datetime import date
from decimal import Decimal, InvalidOperation

from ..errors import ValidationError

PERIOD_PATTERN = re.compile(r"^\d{4}-\d{2}$")

_COMPACT_DATE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_SLASH_DATE = re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})$")


def parse_decimal(value: str | int | Decimal | None) -> Decimal | None:
    """
    Parse an amount to Decimal.

    Thousands separators and surrounding whitespace are ignored. Returns None
    for missing, unparseable or non-finite input.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    cleaned = str(value).replace(",", "").strip()
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def format_amount(amount: Decimal) -> str:
    """Render a Decimal without exponent notation for storage."""
    return format(amount, "f")


def parse_transaction_date(value: str) -> date:
    """
    Parse a ledger transaction date.

    Accepts "YYYYMMDD" or "YYYY/MM/DD" (month/day may be one digit).

    Raises:
        ValidationError: if the value matches neither form or is not a
            real calendar date.
    """
    raw = (value or "").strip()
    match = _COMPACT_DATE.match(raw) or _SLASH_DATE.match(raw)
    if not match:
        raise ValidationError(f"Invalid transaction date: '{raw}'", detail={"value": raw})

    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as e:
        raise ValidationError(f"Invalid transaction date: '{raw}' ({e})", detail={"value": raw}) from e


def period_of(day: date) -> str:
    """Accounting period (YYYY-MM) containing a date."""
    return f"{day.year:04d}-{day.month:02d}"


def is_valid_period(period: str | None) -> bool:
    if not period or not PERIOD_PATTERN.match(period):
        return False
    return 1 <= int(period[5:7]) <= 12


def validate_period(period: str | None) -> str:
    """Return the period unchanged or raise ValidationError."""
    if not is_valid_period(period):
        raise ValidationError(
            f"Invalid period '{period}' (expected YYYY-MM)", detail={"value": period}
        )
    return period
