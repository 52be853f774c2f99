"""Record maintenance: exclusion toggles, manual entry, deletes, listings and statistics."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from ..errors import ConflictError, NotFoundError, ValidationError
from ..schemas.ledger_fields import format_amount, parse_decimal, validate_period
from ..state_store.records import (
    DebitCredit,
    GLEntryRecord,
    NewOrderForecast,
    OrderForecastRecord,
    ReconciliationStatus,
)

if TYPE_CHECKING:
    from ..state_store.sqlite_store import StateStore

logger = logging.getLogger(__name__)


class RecordService:
    """Maintenance operations on forecasts and GL entries.

    Usage:
        records = RecordService(state_store)
        records.set_gl_exclusion([12, 13], True, reason="intercompany")
    """

    def __init__(self, state_store: StateStore) -> None:
        self.store = state_store

    # Exclusion

    def set_forecast_exclusion(
        self, ids: Iterable[int], is_excluded: bool, reason: str | None = None
    ) -> int:
        """Exclude or re-include forecasts; returns the number updated.

        Excluding a matched forecast unmatches its GL counterpart.
        """
        updated = self.store.set_order_forecast_exclusion(ids, is_excluded, _clean_reason(reason))
        logger.info("%s %d forecasts", "Excluded" if is_excluded else "Re-included", updated)
        return updated

    def set_gl_exclusion(
        self, ids: Iterable[int], is_excluded: bool, reason: str | None = None
    ) -> int:
        """Exclude or re-include GL entries; returns the number updated."""
        updated = self.store.set_gl_entry_exclusion(ids, is_excluded, _clean_reason(reason))
        logger.info("%s %d GL entries", "Excluded" if is_excluded else "Re-included", updated)
        return updated

    # Manual entry

    def create_forecast(
        self,
        project_code: str,
        accounting_period: str,
        accounting_item: str,
        description: str,
        amount: str | Decimal,
        **optional: str | None,
    ) -> OrderForecastRecord:
        """Create a forecast by hand; it starts unmatched with period = accounting_period.

        Keyword extras: project_id, project_name, customer_id, customer_code,
        customer_name, remarks.

        Raises:
            ValidationError: on a blank required field, malformed period, or
                an amount that is not a positive decimal.
        """
        required = {
            "project_code": project_code,
            "accounting_item": accounting_item,
            "description": description,
        }
        missing = [name for name, value in required.items() if not (value or "").strip()]
        if missing:
            raise ValidationError(
                f"Missing required field(s): {', '.join(missing)}", detail={"fields": missing}
            )

        validate_period(accounting_period)
        value = parse_decimal(amount)
        if value is None or value <= 0:
            raise ValidationError(f"Invalid amount: '{amount}'", detail={"value": str(amount)})

        unknown = set(optional) - {
            "project_id",
            "project_name",
            "customer_id",
            "customer_code",
            "customer_name",
            "remarks",
        }
        if unknown:
            raise ValidationError(f"Unknown forecast field(s): {', '.join(sorted(unknown))}")

        record = self.store.create_order_forecast(
            NewOrderForecast(
                project_code=project_code.strip(),
                accounting_period=accounting_period,
                accounting_item=accounting_item.strip(),
                description=description.strip(),
                amount=format_amount(value),
                **optional,
            )
        )
        logger.info("Created forecast %d for %s", record.id, record.period)
        return record

    # Lookups

    def get_forecast(self, forecast_id: int) -> OrderForecastRecord:
        record = self.store.get_order_forecast(forecast_id)
        if record is None:
            raise NotFoundError(
                f"Order forecast {forecast_id} not found", detail={"order_forecast_id": forecast_id}
            )
        return record

    def get_gl_entry(self, entry_id: int) -> GLEntryRecord:
        record = self.store.get_gl_entry(entry_id)
        if record is None:
            raise NotFoundError(f"GL entry {entry_id} not found", detail={"gl_entry_id": entry_id})
        return record

    def list_forecasts(
        self, period: str | None = None, status: ReconciliationStatus | None = None
    ) -> list[OrderForecastRecord]:
        if period is not None:
            validate_period(period)
        return self.store.list_order_forecasts(period=period, status=status)

    def list_gl_entries(
        self,
        period: str | None = None,
        status: ReconciliationStatus | None = None,
        account_code: str | None = None,
    ) -> list[GLEntryRecord]:
        if period is not None:
            validate_period(period)
        return self.store.list_gl_entries(period=period, status=status, account_code=account_code)

    def list_unmatched_forecasts(self, period: str | None = None) -> list[OrderForecastRecord]:
        return self.list_forecasts(period, ReconciliationStatus.UNMATCHED)

    def list_unmatched_gl_entries(self, period: str | None = None) -> list[GLEntryRecord]:
        return self.list_gl_entries(period, ReconciliationStatus.UNMATCHED)

    def list_matched_forecasts(self, period: str | None = None) -> list[OrderForecastRecord]:
        return self.list_forecasts(period, ReconciliationStatus.MATCHED)

    def list_matched_gl_entries(self, period: str | None = None) -> list[GLEntryRecord]:
        return self.list_gl_entries(period, ReconciliationStatus.MATCHED)

    def find_gl_by_voucher(self, voucher_no: str) -> list[GLEntryRecord]:
        return self.store.get_gl_entries_by_voucher(voucher_no.strip())

    # Deletion

    def delete_forecast(self, forecast_id: int) -> None:
        """Delete an unmatched forecast.

        Raises:
            NotFoundError: if it does not exist.
            ConflictError: if it is currently matched; unmatch it first.
        """
        record = self.get_forecast(forecast_id)
        if record.is_matched:
            raise ConflictError(
                f"Order forecast {forecast_id} is matched to GL entry {record.gl_match_id}",
                detail={"order_forecast_id": forecast_id, "gl_entry_id": record.gl_match_id},
            )
        self.store.delete_order_forecast(forecast_id)
        logger.info("Deleted forecast %d", forecast_id)

    def delete_gl_entry(self, entry_id: int) -> None:
        """Delete a GL entry, unmatching its counterpart first."""
        self.get_gl_entry(entry_id)
        self.store.delete_gl_entry(entry_id)
        logger.info("Deleted GL entry %d", entry_id)

    def delete_forecasts_by_period(self, period: str) -> int:
        """Delete every forecast of a period, unmatching GL counterparts first."""
        validate_period(period)
        deleted = self.store.delete_order_forecasts_by_period(period)
        logger.info("Deleted %d forecasts for %s", deleted, period)
        return deleted

    # Statistics

    def gl_statistics(self, period: str | None = None) -> dict[str, Any]:
        """Counts by status plus debit, credit and matched totals."""
        entries = self.list_gl_entries(period)
        counts = _status_counts(entries)
        debit = credit = matched = Decimal(0)
        for entry in entries:
            amount = entry.amount_value or Decimal(0)
            if entry.debit_credit == DebitCredit.DEBIT:
                debit += amount
            else:
                credit += amount
            if entry.reconciliation_status == ReconciliationStatus.MATCHED:
                matched += amount

        return {
            "period": period,
            **counts,
            "total_debit_amount": format_amount(debit),
            "total_credit_amount": format_amount(credit),
            "matched_amount": format_amount(matched),
        }

    def forecast_statistics(self, period: str | None = None) -> dict[str, Any]:
        """Counts by status plus total and matched amounts."""
        forecasts = self.list_forecasts(period)
        total = sum((f.amount_value or Decimal(0) for f in forecasts), Decimal(0))
        matched = sum(
            (
                f.amount_value or Decimal(0)
                for f in forecasts
                if f.reconciliation_status == ReconciliationStatus.MATCHED
            ),
            Decimal(0),
        )
        return {
            "period": period,
            **_status_counts(forecasts),
            "total_amount": format_amount(total),
            "matched_amount": format_amount(matched),
        }


def _clean_reason(reason: str | None) -> str | None:
    if reason is None:
        return None
    return reason.strip() or None


def _status_counts(records: list[OrderForecastRecord] | list[GLEntryRecord]) -> dict[str, int]:
    counts = {
        "total_count": len(records),
        "matched_count": 0,
        "fuzzy_matched_count": 0,
        "unmatched_count": 0,
        "excluded_count": 0,
    }
    for record in records:
        status = record.reconciliation_status
        if status == ReconciliationStatus.MATCHED:
            counts["matched_count"] += 1
        elif status == ReconciliationStatus.FUZZY:
            counts["fuzzy_matched_count"] += 1
        elif status == ReconciliationStatus.EXCLUDED:
            counts["excluded_count"] += 1
        else:
            counts["unmatched_count"] += 1
    return counts
