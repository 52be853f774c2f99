"""
State Store (SQLite-based).

Persistent DB for:
- Order forecasts and GL entries with their mutual match state
- Reconciliation run logs
- Per-period reconciliation run locks
"""

from .base import LedgerStore
from .records import (
    DebitCredit,
    GLEntryRecord,
    NewGLEntry,
    NewOrderForecast,
    OrderForecastRecord,
    ReconciliationLogRecord,
    ReconciliationStatus,
)
from .sqlite_store import StateStore

__all__ = [
    "StateStore",
    "LedgerStore",
    "DebitCredit",
    "GLEntryRecord",
    "NewGLEntry",
    "NewOrderForecast",
    "OrderForecastRecord",
    "ReconciliationLogRecord",
    "ReconciliationStatus",
]
