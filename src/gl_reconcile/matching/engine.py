"""Matching engine pairing order forecasts with GL entries.

Strict mode only: a forecast matches a GL entry when all four checks pass,
in this order:

1. Same month (forecast accounting period == GL transaction month)
2. Same account (normalized accounting item == normalized account name)
3. Same description (normalized, and both non-empty)
4. Same amount (exact decimal equality, no tolerance)

A qualifying pair scores 100; there is no partial credit. Forecasts are
taken in load order and each claims the first still-available GL entry in
pool order, so a GL entry is used at most once per pass.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..schemas.normalization import normalize
from ..state_store.records import GLEntryRecord, OrderForecastRecord, ReconciliationStatus

if TYPE_CHECKING:
    from ..state_store.base import LedgerStore

logger = logging.getLogger(__name__)

STRICT_MATCH_SCORE = 100


@dataclass
class MatchResult:
    """A forecast paired with the GL entry that realizes it."""

    order: OrderForecastRecord
    gl_entry: GLEntryRecord
    score: int = STRICT_MATCH_SCORE
    reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "order_forecast_id": self.order.id,
            "gl_entry_id": self.gl_entry.id,
            "score": self.score,
            "reasons": self.reasons,
        }


@dataclass
class MatchOutcome:
    """Everything one matching pass produced, plus pre-pass counts."""

    matched: list[MatchResult] = field(default_factory=list)
    unmatched_orders: list[OrderForecastRecord] = field(default_factory=list)
    unmatched_gl: list[GLEntryRecord] = field(default_factory=list)
    total_orders: int = 0
    total_gl: int = 0
    already_matched_orders: int = 0
    already_matched_gl: int = 0
    excluded_orders: int = 0
    excluded_gl: int = 0


class GLPool:
    """
    Arena of GL entries plus the ordered set of indexes still available.

    Entries are never moved; claiming one only drops its index, so
    iteration order is always the original load order.
    """

    def __init__(self, entries: Iterable[GLEntryRecord]):
        self._entries = list(entries)
        self._available: dict[int, None] = dict.fromkeys(range(len(self._entries)))

    def __len__(self) -> int:
        return len(self._available)

    def available(self) -> Iterator[tuple[int, GLEntryRecord]]:
        for index in self._available:
            yield index, self._entries[index]

    def claim(self, index: int) -> GLEntryRecord:
        """Remove an entry from the pool; claiming twice is a bug."""
        if index not in self._available:
            raise KeyError(f"GL pool slot {index} already claimed")
        del self._available[index]
        return self._entries[index]

    def remaining(self) -> list[GLEntryRecord]:
        return [entry for _, entry in self.available()]


def strict_match_reasons(order: OrderForecastRecord, gl_entry: GLEntryRecord) -> list[str] | None:
    """
    Evaluate the four strict checks in order.

    Returns:
        The reasons list when every check passes, otherwise None.
    """
    if order.accounting_period != gl_entry.transaction_month:
        return None
    if normalize(order.accounting_item) != normalize(gl_entry.account_name):
        return None

    description = normalize(order.description)
    if not description or description != normalize(gl_entry.description):
        return None

    order_amount = order.amount_value
    if order_amount is None or order_amount != gl_entry.amount_value:
        return None

    return ["same_month", "account_match", "description_match", "amount_exact"]


class MatchingEngine:
    """Pairs unmatched forecasts to unmatched GL entries for one period.

    The engine itself holds no state between passes. A store is only needed
    for match_period(); match() works on records the caller already loaded.
    """

    def __init__(self, state_store: LedgerStore | None = None) -> None:
        self.store = state_store

    def match_period(self, period: str) -> MatchOutcome:
        """Load a period's records from the store and run match()."""
        if self.store is None:
            raise RuntimeError("MatchingEngine.match_period requires a state store")
        return self.match(
            self.store.get_order_forecasts_by_period(period),
            self.store.get_gl_entries_by_period(period),
        )

    def match(
        self,
        orders: Iterable[OrderForecastRecord],
        gl_entries: Iterable[GLEntryRecord],
    ) -> MatchOutcome:
        """Run one strict pass. Already-matched and excluded records are counted, not evaluated."""
        orders = list(orders)
        gl_entries = list(gl_entries)
        outcome = MatchOutcome(total_orders=len(orders), total_gl=len(gl_entries))

        eligible_orders = []
        for order in orders:
            if order.is_reconcilable:
                eligible_orders.append(order)
            elif order.is_excluded or order.reconciliation_status == ReconciliationStatus.EXCLUDED:
                outcome.excluded_orders += 1
            else:
                outcome.already_matched_orders += 1

        eligible_gl = []
        for entry in gl_entries:
            if entry.is_reconcilable:
                eligible_gl.append(entry)
            elif entry.is_excluded or entry.reconciliation_status == ReconciliationStatus.EXCLUDED:
                outcome.excluded_gl += 1
            else:
                outcome.already_matched_gl += 1

        pool = GLPool(eligible_gl)
        for order in eligible_orders:
            hit = self._find_first(order, pool)
            if hit is None:
                outcome.unmatched_orders.append(order)
                continue

            index, reasons = hit
            gl_entry = pool.claim(index)
            outcome.matched.append(MatchResult(order=order, gl_entry=gl_entry, reasons=reasons))

        outcome.unmatched_gl = pool.remaining()

        logger.debug(
            "Matching pass: %d matched, %d unmatched forecasts, %d unmatched GL entries",
            len(outcome.matched),
            len(outcome.unmatched_orders),
            len(outcome.unmatched_gl),
        )
        return outcome

    @staticmethod
    def _find_first(
        order: OrderForecastRecord, pool: GLPool
    ) -> tuple[int, list[str]] | None:
        for index, gl_entry in pool.available():
            reasons = strict_match_reasons(order, gl_entry)
            if reasons is not None:
                return index, reasons
        return None
