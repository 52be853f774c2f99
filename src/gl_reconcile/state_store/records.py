"""
Record types persisted by the state store.

Back-references (gl_match_id / order_match_id) and exclusion reasons are
Optional; use is_matched / match_partner rather than testing the raw column.
"""

import sqlite3
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ..schemas.ledger_fields import parse_decimal


class ReconciliationStatus(str, Enum):
    """Match state of a forecast or GL entry."""

    UNMATCHED = "unmatched"
    MATCHED = "matched"
    FUZZY = "fuzzy"  # Reserved for a looser mode; the strict matcher never sets it
    EXCLUDED = "excluded"


LINKED_STATUSES = (ReconciliationStatus.MATCHED, ReconciliationStatus.FUZZY)


class DebitCredit(str, Enum):
    """Ledger side of a GL entry."""

    DEBIT = "debit"
    CREDIT = "credit"


@dataclass
class OrderForecastRecord:
    """A staff-entered order forecast line."""

    id: int
    project_id: str | None
    project_code: str
    project_name: str | None
    customer_id: str | None
    customer_code: str | None
    customer_name: str | None
    accounting_period: str  # YYYY-MM
    accounting_item: str
    description: str
    amount: str  # Exact decimal as text
    remarks: str | None
    period: str  # Partition key, always == accounting_period
    reconciliation_status: ReconciliationStatus
    gl_match_id: int | None
    is_excluded: bool
    exclusion_reason: str | None
    version: int
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "OrderForecastRecord":
        """Create from database row."""
        return cls(
            id=row["id"],
            project_id=row["project_id"],
            project_code=row["project_code"],
            project_name=row["project_name"],
            customer_id=row["customer_id"],
            customer_code=row["customer_code"],
            customer_name=row["customer_name"],
            accounting_period=row["accounting_period"],
            accounting_item=row["accounting_item"],
            description=row["description"] or "",
            amount=row["amount"],
            remarks=row["remarks"],
            period=row["period"],
            reconciliation_status=ReconciliationStatus(row["reconciliation_status"]),
            gl_match_id=row["gl_match_id"],
            is_excluded=bool(row["is_excluded"]),
            exclusion_reason=row["exclusion_reason"],
            version=row["version"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @property
    def amount_value(self) -> Decimal | None:
        return parse_decimal(self.amount)

    @property
    def is_matched(self) -> bool:
        return self.reconciliation_status in LINKED_STATUSES and self.gl_match_id is not None

    @property
    def match_partner(self) -> int | None:
        """GL entry id this forecast is linked to, or None when unmatched."""
        return self.gl_match_id if self.is_matched else None

    @property
    def is_reconcilable(self) -> bool:
        """Eligible for an automatic matching pass."""
        return (
            not self.is_excluded
            and self.reconciliation_status == ReconciliationStatus.UNMATCHED
        )


@dataclass
class GLEntryRecord:
    """A general-ledger transaction imported from the accounting system."""

    id: int
    voucher_no: str
    transaction_date: str  # YYYY-MM-DD
    account_code: str
    account_name: str
    amount: str  # Unsigned exact decimal as text
    debit_credit: DebitCredit
    description: str
    period: str  # Derived: transaction_date[:7]
    reconciliation_status: ReconciliationStatus
    order_match_id: int | None
    is_excluded: bool
    exclusion_reason: str | None
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "GLEntryRecord":
        """Create from database row."""
        return cls(
            id=row["id"],
            voucher_no=row["voucher_no"],
            transaction_date=row["transaction_date"],
            account_code=row["account_code"],
            account_name=row["account_name"],
            amount=row["amount"],
            debit_credit=DebitCredit(row["debit_credit"]),
            description=row["description"] or "",
            period=row["period"],
            reconciliation_status=ReconciliationStatus(row["reconciliation_status"]),
            order_match_id=row["order_match_id"],
            is_excluded=bool(row["is_excluded"]),
            exclusion_reason=row["exclusion_reason"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @property
    def amount_value(self) -> Decimal | None:
        return parse_decimal(self.amount)

    @property
    def transaction_month(self) -> str:
        return self.transaction_date[:7]

    @property
    def is_matched(self) -> bool:
        return self.reconciliation_status in LINKED_STATUSES and self.order_match_id is not None

    @property
    def match_partner(self) -> int | None:
        """Forecast id this entry is linked to, or None when unmatched."""
        return self.order_match_id if self.is_matched else None

    @property
    def is_reconcilable(self) -> bool:
        return (
            not self.is_excluded
            and self.reconciliation_status == ReconciliationStatus.UNMATCHED
        )


@dataclass
class ReconciliationLogRecord:
    """Immutable snapshot of one reconciliation run."""

    id: int
    period: str
    executed_at: str
    matched_count: int
    fuzzy_matched_count: int
    unmatched_order_count: int
    unmatched_gl_count: int
    total_order_count: int
    total_gl_count: int

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "ReconciliationLogRecord":
        """Create from database row."""
        return cls(
            id=row["id"],
            period=row["period"],
            executed_at=row["executed_at"],
            matched_count=row["matched_count"],
            fuzzy_matched_count=row["fuzzy_matched_count"],
            unmatched_order_count=row["unmatched_order_count"],
            unmatched_gl_count=row["unmatched_gl_count"],
            total_order_count=row["total_order_count"],
            total_gl_count=row["total_gl_count"],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "period": self.period,
            "executed_at": self.executed_at,
            "matched_count": self.matched_count,
            "fuzzy_matched_count": self.fuzzy_matched_count,
            "unmatched_order_count": self.unmatched_order_count,
            "unmatched_gl_count": self.unmatched_gl_count,
            "total_order_count": self.total_order_count,
            "total_gl_count": self.total_gl_count,
        }


@dataclass
class NewGLEntry:
    """A validated GL row awaiting insertion."""

    voucher_no: str
    transaction_date: str  # YYYY-MM-DD
    account_code: str
    account_name: str
    amount: str
    debit_credit: DebitCredit
    description: str = ""

    @property
    def period(self) -> str:
        return self.transaction_date[:7]


@dataclass
class NewOrderForecast:
    """A validated forecast awaiting insertion."""

    project_code: str
    accounting_period: str
    accounting_item: str
    description: str
    amount: str
    project_id: str | None = None
    project_name: str | None = None
    customer_id: str | None = None
    customer_code: str | None = None
    customer_name: str | None = None
    remarks: str | None = None

    @property
    def period(self) -> str:
        return self.accounting_period
