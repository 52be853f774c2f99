"""Shared field schemas: text normalization and ledger field parsing."""

from .ledger_fields import (
    format_amount,
    is_valid_period,
    parse_decimal,
    parse_transaction_date,
    period_of,
    validate_period,
)
from .normalization import is_text_match, normalize, to_full_width_kana

__all__ = [
    "format_amount",
    "is_text_match",
    "is_valid_period",
    "normalize",
    "parse_decimal",
    "parse_transaction_date",
    "period_of",
    "to_full_width_kana",
    "validate_period",
]
