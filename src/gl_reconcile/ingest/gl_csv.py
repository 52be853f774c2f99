"""
GL ledger extract parser.

The accounting system exports a headerless, 22-column positional CSV. Rows
outside the target account allow-list, and rows with neither a debit nor a
credit amount, are skipped silently (counted, not errors). Rows with an
unparseable date or amount are recorded as RowError and skipped; they never
abort the batch.
"""

import csv
import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from ..errors import RowError, ValidationError
from ..schemas.ledger_fields import format_amount, parse_decimal, parse_transaction_date
from ..schemas.normalization import to_full_width_kana
from ..state_store.records import DebitCredit, NewGLEntry

logger = logging.getLogger(__name__)

GL_CSV_COLUMNS: tuple[str, ...] = (
    "account_code",
    "account_name",
    "aux_code",
    "aux_name",
    "tax_code",
    "tax_name",
    "transaction_date",
    "voucher_no",
    "counter_account_code",
    "counter_account_name",
    "counter_aux_code",
    "counter_aux_name",
    "counter_tax_code",
    "counter_tax_name",
    "description",
    "number1",
    "number2",
    "debit_amount",
    "debit_tax",
    "credit_amount",
    "credit_tax",
    "balance",
)

_ZERO = Decimal(0)


@dataclass
class GLParseResult:
    """Outcome of parsing one GL extract."""

    total_rows: int = 0
    skipped_rows: int = 0
    errors: list[RowError] = field(default_factory=list)
    entries: list[NewGLEntry] = field(default_factory=list)

    @property
    def imported_rows(self) -> int:
        return len(self.entries)

    @property
    def periods(self) -> list[str]:
        """Distinct periods of the accepted rows, sorted."""
        return sorted({entry.period for entry in self.entries})


def _parse_side_amount(raw: str, label: str) -> Decimal:
    """Blank means zero; anything else must be a decimal."""
    if not raw:
        return _ZERO
    amount = parse_decimal(raw)
    if amount is None:
        raise ValidationError(f"Invalid {label}: '{raw}'", detail={"value": raw})
    return amount


class GLCSVParser:
    """
    Turns decoded GL CSV text into NewGLEntry values.

    Usage:
        parser = GLCSVParser(config.ingestion.target_account_codes)
        result = parser.parse(decoded.text)
    """

    def __init__(self, target_account_codes: Iterable[str]):
        self.target_account_codes = frozenset(code.strip() for code in target_account_codes)

    def parse(self, text: str) -> GLParseResult:
        result = GLParseResult()

        reader = csv.reader(io.StringIO(text))
        for raw_row in reader:
            # Blank lines are not records
            if not raw_row or not any(cell.strip() for cell in raw_row):
                continue

            result.total_rows += 1
            row_number = result.total_rows

            try:
                entry = self.parse_row(raw_row)
            except ValidationError as e:
                result.errors.append(RowError(row=row_number, message=e.message))
                continue

            if entry is None:
                result.skipped_rows += 1
            else:
                result.entries.append(entry)

        logger.debug(
            "Parsed GL extract: total=%d accepted=%d skipped=%d errors=%d",
            result.total_rows,
            result.imported_rows,
            result.skipped_rows,
            len(result.errors),
        )
        return result

    def parse_row(self, raw_row: list[str]) -> NewGLEntry | None:
        """
        Parse one positional row.

        Returns:
            The entry, or None when the row is out of scope (account not
            targeted, or both amounts zero).

        Raises:
            ValidationError: for a malformed date or amount.
        """
        cells = [cell.strip() for cell in raw_row]
        cells += [""] * (len(GL_CSV_COLUMNS) - len(cells))
        row = dict(zip(GL_CSV_COLUMNS, cells))

        if row["account_code"] not in self.target_account_codes:
            return None

        debit = _parse_side_amount(row["debit_amount"], "debit amount")
        credit = _parse_side_amount(row["credit_amount"], "credit amount")
        if debit == _ZERO and credit == _ZERO:
            return None

        if debit != _ZERO:
            side, amount = DebitCredit.DEBIT, abs(debit)
        else:
            side, amount = DebitCredit.CREDIT, abs(credit)

        transaction_date = parse_transaction_date(row["transaction_date"])

        return NewGLEntry(
            voucher_no=row["voucher_no"],
            transaction_date=transaction_date.isoformat(),
            account_code=row["account_code"],
            account_name=to_full_width_kana(row["account_name"]),
            amount=format_amount(amount),
            debit_credit=side,
            description=row["description"],
        )
