"""CSV import services for GL extracts and forecast bulk loads.

Both imports decode the raw bytes, parse them into validated rows, and
write every accepted row in a single transaction. Per-row problems are
reported in the result; they never abort the import.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..errors import DuplicatePeriodError, RowError
from ..ingest.encoding import decode_preferring_utf8, detect_and_decode
from ..ingest.forecast_csv import parse_forecast_csv
from ..ingest.gl_csv import GLCSVParser

if TYPE_CHECKING:
    from ..config import Config
    from ..state_store.base import LedgerStore

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Summary of one CSV import."""

    total_rows: int = 0
    imported_rows: int = 0
    skipped_rows: int = 0
    errors: list[RowError] = field(default_factory=list)
    encoding: str = ""
    periods: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_rows": self.total_rows,
            "imported_rows": self.imported_rows,
            "skipped_rows": self.skipped_rows,
            "errors": [error.to_dict() for error in self.errors],
            "encoding": self.encoding,
            "periods": self.periods,
        }


class GLImportService:
    """Imports GL ledger extracts.

    A period that already holds GL entries is never imported into again: the
    whole file is rejected with DuplicatePeriodError before any row is written.

    Usage:
        service = GLImportService(state_store, config)
        result = service.import_from_bytes(path.read_bytes())
    """

    def __init__(self, state_store: LedgerStore, config: Config) -> None:
        self.store = state_store
        self.config = config
        self.parser = GLCSVParser(config.ingestion.target_account_codes)

    def import_from_file(self, path: Path, encoding: str | None = None) -> ImportResult:
        return self.import_from_bytes(Path(path).read_bytes(), encoding=encoding)

    def import_from_bytes(self, data: bytes, encoding: str | None = None) -> ImportResult:
        """Decode, parse and insert a GL extract.

        Args:
            data: Raw file content.
            encoding: Explicit encoding; falls back to the configured GL
                encoding, then to auto-detection.

        Raises:
            EncodingError: if an explicit encoding cannot decode the data.
            DuplicatePeriodError: if any accepted row's period already has entries.
        """
        decoded = detect_and_decode(data, encoding or self.config.ingestion.gl_encoding)
        parsed = self.parser.parse(decoded.text)

        result = ImportResult(
            total_rows=parsed.total_rows,
            skipped_rows=parsed.skipped_rows,
            errors=parsed.errors,
            encoding=decoded.encoding,
            periods=parsed.periods,
        )

        if parsed.entries:
            try:
                result.imported_rows = self.store.insert_gl_entries(parsed.entries)
            except DuplicatePeriodError as e:
                logger.warning("GL import rejected: %s", e.message)
                raise

        logger.info(
            "GL import (%s): %d rows, %d imported, %d skipped, %d errors",
            decoded.encoding,
            result.total_rows,
            result.imported_rows,
            result.skipped_rows,
            len(result.errors),
        )
        for error in result.errors:
            logger.debug("GL row %d rejected: %s", error.row, error.message)
        return result


class ForecastImportService:
    """Imports order forecasts from the five-column bulk-load CSV."""

    def __init__(self, state_store: LedgerStore, config: Config) -> None:
        self.store = state_store
        self.config = config

    def import_from_file(self, path: Path, encoding: str | None = None) -> ImportResult:
        return self.import_from_bytes(Path(path).read_bytes(), encoding=encoding)

    def import_from_bytes(self, data: bytes, encoding: str | None = None) -> ImportResult:
        """Decode (BOM-aware UTF-8 first), parse and insert forecasts."""
        decoded = decode_preferring_utf8(
            data, encoding or self.config.ingestion.forecast_encoding
        )
        parsed = parse_forecast_csv(decoded.text)

        result = ImportResult(
            total_rows=parsed.total_rows,
            skipped_rows=parsed.skipped_rows,
            errors=parsed.errors,
            encoding=decoded.encoding,
            periods=sorted({forecast.period for forecast in parsed.forecasts}),
        )
        if parsed.forecasts:
            result.imported_rows = self.store.insert_order_forecasts(parsed.forecasts)

        logger.info(
            "Forecast import (%s): %d rows, %d imported, %d skipped",
            decoded.encoding,
            result.total_rows,
            result.imported_rows,
            result.skipped_rows,
        )
        return result
