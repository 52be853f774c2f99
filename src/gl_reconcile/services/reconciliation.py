"""Reconciliation orchestration service.

One run reconciles a single accounting period:
- Takes the per-period run guard (a second concurrent run gets ConflictError)
- Loads the period's forecasts and GL entries
- Runs the strict Matching Engine over them
- Commits every matched pair in its own transaction; a failed pair is
  rolled back, recorded, and does not stop the remaining pairs
- Writes one ReconciliationLog row with the run's counts

Manual match/unmatch, period deletion, log queries and the per-account
summary live here too, since they all move or report pairing state.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..errors import NotFoundError, ReconciliationError, ValidationError
from ..matching.engine import MatchingEngine, MatchResult
from ..schemas.ledger_fields import format_amount, validate_period
from ..schemas.normalization import normalize
from ..state_store.records import (
    GLEntryRecord,
    OrderForecastRecord,
    ReconciliationLogRecord,
    ReconciliationStatus,
)

if TYPE_CHECKING:
    from ..config import Config
    from ..state_store.base import LedgerStore

logger = logging.getLogger(__name__)


class ReconciliationState(str, Enum):
    """Outcome of a reconciliation run."""

    COMPLETED = "COMPLETED"
    COMPLETED_WITH_ERRORS = "COMPLETED_WITH_ERRORS"  # Some pair commits were rolled back


@dataclass
class ReconciliationRunResult:
    """Result of one reconciliation run."""

    period: str
    state: ReconciliationState = ReconciliationState.COMPLETED
    log_id: int | None = None
    matched_count: int = 0
    fuzzy_matched_count: int = 0
    unmatched_order_count: int = 0
    unmatched_gl_count: int = 0
    total_order_count: int = 0
    total_gl_count: int = 0
    already_matched_count: int = 0
    excluded_count: int = 0
    matches: list[MatchResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.state == ReconciliationState.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "state": self.state.value,
            "log_id": self.log_id,
            "matched_count": self.matched_count,
            "fuzzy_matched_count": self.fuzzy_matched_count,
            "unmatched_order_count": self.unmatched_order_count,
            "unmatched_gl_count": self.unmatched_gl_count,
            "total_order_count": self.total_order_count,
            "total_gl_count": self.total_gl_count,
            "already_matched_count": self.already_matched_count,
            "excluded_count": self.excluded_count,
            "matches": [match.to_dict() for match in self.matches],
            "errors": self.errors,
            "duration_ms": self.duration_ms,
        }


class ReconciliationService:
    """Orchestrates reconciliation runs and pairing changes.

    Safe to run repeatedly: a period with nothing left unmatched produces a
    run with matched_count == 0 and leaves existing pairs untouched.

    Usage:
        service = ReconciliationService(state_store, config)
        result = service.execute_reconciliation("2025-10")
    """

    def __init__(
        self,
        state_store: LedgerStore,
        config: Config,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the reconciliation service.

        Args:
            state_store: Storage for forecasts, GL entries and logs.
            config: Application configuration.
            clock: Returns the current UTC time; drives run-guard expiry.
        """
        self.store = state_store
        self.config = config
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.matching_engine = MatchingEngine(state_store)
        self.lock_ttl_seconds = config.reconciliation.lock_ttl_seconds

    def execute_reconciliation(self, period: str) -> ReconciliationRunResult:
        """Run one strict reconciliation pass over a period.

        Raises:
            ValidationError: if the period is malformed.
            ConflictError: if another run holds the period's run guard.
        """
        validate_period(period)
        start_time = time.monotonic()
        token = self.store.acquire_period_lock(period, self.lock_ttl_seconds, now=self.clock())

        try:
            logger.info("Starting reconciliation for %s", period)
            result = self._run(period)
        finally:
            if not self.store.release_period_lock(period, token):
                logger.warning("Run guard for %s expired before the run finished", period)

        result.duration_ms = int((time.monotonic() - start_time) * 1000)
        logger.info(
            "Reconciliation for %s finished: %d matched, %d unmatched forecasts, "
            "%d unmatched GL entries (%d ms)",
            period,
            result.matched_count,
            result.unmatched_order_count,
            result.unmatched_gl_count,
            result.duration_ms,
        )
        return result

    def _run(self, period: str) -> ReconciliationRunResult:
        orders = self.store.get_order_forecasts_by_period(period)
        gl_entries = self.store.get_gl_entries_by_period(period)
        outcome = self.matching_engine.match(orders, gl_entries)

        result = ReconciliationRunResult(
            period=period,
            total_order_count=outcome.total_orders,
            total_gl_count=outcome.total_gl,
            already_matched_count=outcome.already_matched_orders,
            excluded_count=outcome.excluded_orders + outcome.excluded_gl,
        )
        failed_pairs = 0

        for match in outcome.matched:
            try:
                self.store.link_pair(match.order.id, match.gl_entry.id)
            except ReconciliationError as e:
                failed_pairs += 1
                logger.error(
                    "Pair commit failed (forecast %d, GL entry %d): %s",
                    match.order.id,
                    match.gl_entry.id,
                    e.message,
                )
                result.errors.append(
                    f"forecast {match.order.id} / GL entry {match.gl_entry.id}: {e.message}"
                )
                continue
            result.matches.append(match)

        result.matched_count = len(result.matches)
        result.unmatched_order_count = len(outcome.unmatched_orders) + failed_pairs
        result.unmatched_gl_count = len(outcome.unmatched_gl) + failed_pairs
        if result.errors:
            result.state = ReconciliationState.COMPLETED_WITH_ERRORS

        log = self.store.create_reconciliation_log(
            period=period,
            matched_count=result.matched_count,
            fuzzy_matched_count=result.fuzzy_matched_count,
            unmatched_order_count=result.unmatched_order_count,
            unmatched_gl_count=result.unmatched_gl_count,
            total_order_count=result.total_order_count,
            total_gl_count=result.total_gl_count,
        )
        result.log_id = log.id
        return result

    # Manual pairing

    def _require_pair(self, gl_id: int, order_id: int) -> tuple[OrderForecastRecord, GLEntryRecord]:
        order = self.store.get_order_forecast(order_id)
        if order is None:
            raise NotFoundError(
                f"Order forecast {order_id} not found", detail={"order_forecast_id": order_id}
            )
        gl_entry = self.store.get_gl_entry(gl_id)
        if gl_entry is None:
            raise NotFoundError(f"GL entry {gl_id} not found", detail={"gl_entry_id": gl_id})
        return order, gl_entry

    def manual_reconcile(
        self, gl_id: int, order_id: int
    ) -> tuple[OrderForecastRecord, GLEntryRecord]:
        """Force-match a specific pair, bypassing the matching rules.

        Previous partners of either record are unmatched in the same
        transaction.

        Raises:
            NotFoundError: if either record does not exist.
            ValidationError: if either record is excluded.
        """
        order, gl_entry = self._require_pair(gl_id, order_id)
        if order.is_excluded or gl_entry.is_excluded:
            raise ValidationError(
                "Excluded records cannot be matched; re-include them first",
                detail={
                    "order_forecast_excluded": order.is_excluded,
                    "gl_entry_excluded": gl_entry.is_excluded,
                },
            )

        self.store.link_pair(order_id, gl_id, ReconciliationStatus.MATCHED, force=True)
        logger.info("Manually matched forecast %d with GL entry %d", order_id, gl_id)
        return self._require_pair(gl_id, order_id)

    def unmatch_reconciliation(self, gl_id: int, order_id: int) -> bool:
        """Clear the pairing between two records.

        Unmatching a pair that is not matched is a silent success.

        Returns:
            True if any record changed.

        Raises:
            NotFoundError: if either record does not exist.
        """
        self._require_pair(gl_id, order_id)
        order_changed, gl_changed = self.store.unlink_pair(order_id, gl_id)
        changed = order_changed or gl_changed
        if changed:
            logger.info("Unmatched forecast %d from GL entry %d", order_id, gl_id)
        else:
            logger.debug("Forecast %d and GL entry %d were not paired", order_id, gl_id)
        return changed

    def delete_by_period(self, period: str) -> int:
        """Delete every GL entry of a period after unmatching counterparts.

        Returns:
            Number of GL entries deleted.
        """
        validate_period(period)
        deleted = self.store.delete_gl_entries_by_period(period)
        logger.info("Deleted %d GL entries for %s", deleted, period)
        return deleted

    # Log queries

    def list_logs(
        self,
        period: str | None = None,
        period_from: str | None = None,
        period_to: str | None = None,
        sort_by: str = "executed_at",
        sort_order: str = "desc",
        limit: int | None = 20,
        offset: int = 0,
    ) -> tuple[list[ReconciliationLogRecord], int]:
        """Page through run logs; returns (logs, total matching count)."""
        for value in (period, period_from, period_to):
            if value is not None:
                validate_period(value)
        if (limit is not None and limit < 0) or offset < 0:
            raise ValidationError("limit and offset must not be negative")
        return self.store.list_reconciliation_logs(
            period=period,
            period_from=period_from,
            period_to=period_to,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )

    def get_log(self, log_id: int) -> ReconciliationLogRecord:
        log = self.store.get_reconciliation_log(log_id)
        if log is None:
            raise NotFoundError(f"Reconciliation log {log_id} not found", detail={"log_id": log_id})
        return log

    def get_latest_log(self, period: str | None = None) -> ReconciliationLogRecord:
        if period is not None:
            validate_period(period)
        log = self.store.get_latest_reconciliation_log(period)
        if log is None:
            scope = f" for {period}" if period else ""
            raise NotFoundError(f"No reconciliation has been run{scope}", detail={"period": period})
        return log

    def get_statistics(self) -> dict[str, Any]:
        """Aggregate over every run log.

        average_match_rate is the mean, over runs with at least one forecast,
        of matched / total forecasts, as a percentage.
        """
        logs, _ = self.store.list_reconciliation_logs(sort_by="executed_at", limit=None)

        rates = [
            (log.matched_count + log.fuzzy_matched_count) / log.total_order_count * 100
            for log in logs
            if log.total_order_count > 0
        ]
        return {
            "total_runs": len(logs),
            "total_matched": sum(log.matched_count for log in logs),
            "total_fuzzy_matched": sum(log.fuzzy_matched_count for log in logs),
            "total_unmatched_orders": sum(log.unmatched_order_count for log in logs),
            "total_unmatched_gl": sum(log.unmatched_gl_count for log in logs),
            "average_match_rate": round(sum(rates) / len(rates), 2) if rates else 0.0,
            "last_executed_at": logs[0].executed_at if logs else None,
        }

    # Account summary

    def account_summary(self, period: str) -> dict[str, Any]:
        """Per-account totals for GL entries and forecasts of a period.

        Forecasts name their account by code or by name; a name is resolved
        to the code of the GL account with the same normalized name. Excluded
        records are left out. Amounts are exact decimal strings.
        """
        validate_period(period)
        gl_entries = [e for e in self.store.get_gl_entries_by_period(period) if not e.is_excluded]
        orders = [o for o in self.store.get_order_forecasts_by_period(period) if not o.is_excluded]

        names: dict[str, str] = {}
        name_to_code: dict[str, str] = {}
        gl_totals: dict[str, dict[str, Any]] = {}
        for entry in gl_entries:
            names.setdefault(entry.account_code, entry.account_name)
            name_to_code.setdefault(normalize(entry.account_name), entry.account_code)
            bucket = gl_totals.setdefault(
                entry.account_code,
                {"total_amount": Decimal(0), "matched_amount": Decimal(0), "count": 0},
            )
            amount = entry.amount_value or Decimal(0)
            bucket["total_amount"] += amount
            bucket["count"] += 1
            if entry.is_matched:
                bucket["matched_amount"] += amount

        order_totals: dict[str, dict[str, Any]] = {}
        for order in orders:
            item = order.accounting_item.strip()
            key = item if item in names else name_to_code.get(normalize(item), item)
            names.setdefault(key, item)
            bucket = order_totals.setdefault(key, {"total_amount": Decimal(0), "count": 0})
            bucket["total_amount"] += order.amount_value or Decimal(0)
            bucket["count"] += 1

        gl_summary = [
            {
                "account_code": code,
                "account_name": names[code],
                "total_amount": format_amount(totals["total_amount"]),
                "matched_amount": format_amount(totals["matched_amount"]),
                "count": totals["count"],
            }
            for code, totals in sorted(gl_totals.items())
        ]
        order_summary = [
            {
                "account_code": code,
                "account_name": names[code],
                "total_amount": format_amount(totals["total_amount"]),
                "count": totals["count"],
            }
            for code, totals in sorted(order_totals.items())
        ]

        differences = []
        for code in sorted(set(gl_totals) | set(order_totals)):
            gl_amount = gl_totals.get(code, {}).get("total_amount", Decimal(0))
            order_amount = order_totals.get(code, {}).get("total_amount", Decimal(0))
            differences.append(
                {
                    "account_code": code,
                    "account_name": names[code],
                    "gl_amount": format_amount(gl_amount),
                    "order_amount": format_amount(order_amount),
                    "difference": format_amount(gl_amount - order_amount),
                }
            )

        gl_total = sum((t["total_amount"] for t in gl_totals.values()), Decimal(0))
        order_total = sum((t["total_amount"] for t in order_totals.values()), Decimal(0))
        return {
            "period": period,
            "gl_summary": gl_summary,
            "order_summary": order_summary,
            "differences": differences,
            "totals": {
                "gl_amount": format_amount(gl_total),
                "order_amount": format_amount(order_total),
                "difference": format_amount(gl_total - order_total),
            },
        }
