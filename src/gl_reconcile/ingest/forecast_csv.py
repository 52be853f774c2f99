"""
Forecast bulk-load parser.

Headerless five-column CSV: project code, accounting item, accounting
period (YYYY-MM), description, amount. Quoted fields are honoured and
amounts may carry thousands separators.
"""

import csv
import io
import logging
from dataclasses import dataclass, field

from ..errors import RowError, ValidationError
from ..schemas.ledger_fields import format_amount, is_valid_period, parse_decimal
from ..state_store.records import NewOrderForecast

logger = logging.getLogger(__name__)

FORECAST_CSV_COLUMNS: tuple[str, ...] = (
    "project_code",
    "accounting_item",
    "accounting_period",
    "description",
    "amount",
)


@dataclass
class ForecastParseResult:
    """Outcome of parsing one forecast file. Every rejected row is both skipped and an error."""

    total_rows: int = 0
    skipped_rows: int = 0
    errors: list[RowError] = field(default_factory=list)
    forecasts: list[NewOrderForecast] = field(default_factory=list)

    @property
    def imported_rows(self) -> int:
        return len(self.forecasts)


def parse_forecast_row(raw_row: list[str]) -> NewOrderForecast:
    """
    Validate one row.

    Raises:
        ValidationError: missing field, malformed period, or an amount that
            is unparseable or not positive.
    """
    cells = [cell.strip() for cell in raw_row]
    cells += [""] * (len(FORECAST_CSV_COLUMNS) - len(cells))
    row = dict(zip(FORECAST_CSV_COLUMNS, cells))

    missing = [name for name in FORECAST_CSV_COLUMNS if not row[name]]
    if missing:
        raise ValidationError(
            f"Missing required field(s): {', '.join(missing)}", detail={"fields": missing}
        )

    period = row["accounting_period"]
    if not is_valid_period(period):
        raise ValidationError(f"Invalid accounting period '{period}' (expected YYYY-MM)")

    amount = parse_decimal(row["amount"])
    if amount is None or amount <= 0:
        raise ValidationError(f"Invalid amount: '{row['amount']}'")

    return NewOrderForecast(
        project_code=row["project_code"],
        accounting_period=period,
        accounting_item=row["accounting_item"],
        description=row["description"],
        amount=format_amount(amount),
    )


def parse_forecast_csv(text: str) -> ForecastParseResult:
    """Parse decoded forecast CSV text; bad rows are collected, never raised."""
    result = ForecastParseResult()

    for raw_row in csv.reader(io.StringIO(text)):
        if not raw_row or not any(cell.strip() for cell in raw_row):
            continue

        result.total_rows += 1
        try:
            result.forecasts.append(parse_forecast_row(raw_row))
        except ValidationError as e:
            result.skipped_rows += 1
            result.errors.append(RowError(row=result.total_rows, message=e.message))

    logger.debug(
        "Parsed forecast file: total=%d accepted=%d skipped=%d",
        result.total_rows,
        result.imported_rows,
        result.skipped_rows,
    )
    return result
