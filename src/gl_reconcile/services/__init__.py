"""Services orchestrating imports, reconciliation runs and record maintenance."""

from .imports import ForecastImportService, GLImportService, ImportResult
from .reconciliation import (
    ReconciliationRunResult,
    ReconciliationService,
    ReconciliationState,
)
from .records import RecordService

__all__ = [
    "ForecastImportService",
    "GLImportService",
    "ImportResult",
    "ReconciliationRunResult",
    "ReconciliationService",
    "ReconciliationState",
    "RecordService",
]
