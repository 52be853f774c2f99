"""
Storage interface required by the matching and reconciliation core.

StateStore satisfies it; tests substitute fakes or wrap a real store to
inject failures.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol

from .records import (
    GLEntryRecord,
    NewGLEntry,
    NewOrderForecast,
    OrderForecastRecord,
    ReconciliationLogRecord,
    ReconciliationStatus,
)


class LedgerStore(Protocol):
    """Read-by-period, status writes and atomic dual-writes."""

    def get_order_forecast(self, forecast_id: int) -> OrderForecastRecord | None: ...

    def get_gl_entry(self, entry_id: int) -> GLEntryRecord | None: ...

    def get_order_forecasts_by_period(self, period: str) -> list[OrderForecastRecord]: ...

    def get_gl_entries_by_period(self, period: str) -> list[GLEntryRecord]: ...

    def insert_gl_entries(
        self, entries: Iterable[NewGLEntry], reject_existing_periods: bool = True
    ) -> int: ...

    def insert_order_forecasts(self, forecasts: Iterable[NewOrderForecast]) -> int: ...

    def link_pair(
        self,
        order_id: int,
        gl_id: int,
        status: ReconciliationStatus = ReconciliationStatus.MATCHED,
        force: bool = False,
    ) -> None: ...

    def unlink_pair(self, order_id: int, gl_id: int) -> tuple[bool, bool]: ...

    def delete_gl_entries_by_period(self, period: str) -> int: ...

    def create_reconciliation_log(
        self,
        period: str,
        matched_count: int,
        fuzzy_matched_count: int,
        unmatched_order_count: int,
        unmatched_gl_count: int,
        total_order_count: int,
        total_gl_count: int,
        executed_at: str | None = None,
    ) -> ReconciliationLogRecord: ...

    def get_reconciliation_log(self, log_id: int) -> ReconciliationLogRecord | None: ...

    def get_latest_reconciliation_log(
        self, period: str | None = None
    ) -> ReconciliationLogRecord | None: ...

    def list_reconciliation_logs(
        self,
        period: str | None = None,
        period_from: str | None = None,
        period_to: str | None = None,
        sort_by: str = "executed_at",
        sort_order: str = "desc",
        limit: int | None = 20,
        offset: int = 0,
    ) -> tuple[list[ReconciliationLogRecord], int]: ...

    def acquire_period_lock(
        self, period: str, ttl_seconds: int, now: datetime | None = None
    ) -> str: ...

    def release_period_lock(self, period: str, token: str) -> bool: ...
