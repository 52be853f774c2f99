"""
Error taxonomy.

Every error surfaced to a caller carries a stable ``kind``, a human-readable
message and, outside production, a diagnostic ``detail`` mapping.
"""

from dataclasses import dataclass
from typing import Any


class ReconciliationError(Exception):
    """Base class for all errors raised by gl_reconcile."""

    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str, detail: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_dict(self, include_detail: bool = False) -> dict[str, Any]:
        """Serialize for a caller. Detail is omitted unless requested."""
        payload: dict[str, Any] = {"error": self.kind, "message": self.message}
        if include_detail and self.detail:
            payload["detail"] = self.detail
        return payload


class ValidationError(ReconciliationError):
    """Malformed date, amount or period."""

    kind = "validation_error"
    status_code = 400


class EncodingError(ReconciliationError):
    """Input bytes cannot be decoded with the requested encoding."""

    kind = "encoding_error"
    status_code = 400


class DuplicatePeriodError(ReconciliationError):
    """GL import targets a period that already holds entries."""

    kind = "duplicate_period"
    status_code = 409

    def __init__(self, periods: list[str]):
        self.periods = sorted(periods)
        super().__init__(
            f"GL entries already exist for period(s): {', '.join(self.periods)}",
            detail={"periods": self.periods},
        )


class NotFoundError(ReconciliationError):
    """Referenced forecast, GL entry or log does not exist."""

    kind = "not_found"
    status_code = 404


class ConflictError(ReconciliationError):
    """Operation conflicts with the current state of the records."""

    kind = "conflict"
    status_code = 409


class InternalError(ReconciliationError):
    """Persistence failure."""

    kind = "internal_error"
    status_code = 500


@dataclass(frozen=True)
class RowError:
    """A non-fatal, per-row ingestion problem (1-based row number)."""

    row: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row, "message": self.message}
