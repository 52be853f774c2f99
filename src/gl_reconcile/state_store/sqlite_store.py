"""
SQLite-based state store implementation.

Tables:
- order_forecasts: staff-entered forecast lines
- gl_entries: imported general-ledger transactions
- reconciliation_logs: one immutable row per reconciliation run
- reconciliation_run_locks: per-period run guard (migration 002)

Every write that touches both sides of a pairing happens inside a single
transaction, so a forecast never points at a GL entry that does not point
back.
"""

import logging
import sqlite3
import uuid
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from ..errors import ConflictError, DuplicatePeriodError, InternalError, ValidationError
from .records import (
    GLEntryRecord,
    NewGLEntry,
    NewOrderForecast,
    OrderForecastRecord,
    ReconciliationLogRecord,
    ReconciliationStatus,
)

logger = logging.getLogger(__name__)

ORDER_TABLE = "order_forecasts"
GL_TABLE = "gl_entries"

# table -> (own back-reference column, partner table, partner back-reference column)
_PAIRING = {
    ORDER_TABLE: ("gl_match_id", GL_TABLE, "order_match_id"),
    GL_TABLE: ("order_match_id", ORDER_TABLE, "gl_match_id"),
}

# Forecast rows carry an optimistic version that moves on every update
_VERSION_BUMP = {ORDER_TABLE: ", version = version + 1", GL_TABLE: ""}

LOG_SORT_COLUMNS = ("executed_at", "period")

_UNMATCHED = ReconciliationStatus.UNMATCHED.value
_EXCLUDED = ReconciliationStatus.EXCLUDED.value


def format_timestamp(moment: datetime) -> str:
    """Fixed-width UTC ISO timestamp; sorts correctly as text."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _now() -> str:
    return format_timestamp(datetime.now(timezone.utc))


class StateStore:
    """
    SQLite state store for forecasts, GL entries and reconciliation logs.

    Every public method opens its own connection and transaction. Methods
    that must change several rows atomically (pairing, exclusion, deletes,
    bulk inserts) do all of their work inside one _transaction() block.
    """

    def __init__(self, db_path: Path | str, run_migrations: bool = True):
        """
        Initialize state store.

        Args:
            db_path: Path to SQLite database file
            run_migrations: Whether to run pending migrations (default True)
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()
        if run_migrations:
            self._run_migrations()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """
        Context manager for database transactions.

        immediate takes the write lock up front, for read-then-write
        sequences whose reads must still hold when the writes land.
        """
        conn = self._get_connection()
        try:
            if immediate:
                conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("State store operation failed: %s", e)
            raise InternalError(
                "State store operation failed",
                detail={"database": str(self.db_path), "cause": str(e)},
            ) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Create base tables."""
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS order_forecasts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    project_id TEXT,
                    project_code TEXT NOT NULL,
                    project_name TEXT,
                    customer_id TEXT,
                    customer_code TEXT,
                    customer_name TEXT,
                    accounting_period TEXT NOT NULL,
                    accounting_item TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    amount TEXT NOT NULL,  -- Exact decimal as text
                    remarks TEXT,
                    period TEXT NOT NULL,
                    reconciliation_status TEXT NOT NULL DEFAULT 'unmatched',
                    gl_match_id INTEGER,
                    is_excluded INTEGER NOT NULL DEFAULT 0,
                    exclusion_reason TEXT,
                    version INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS gl_entries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    voucher_no TEXT NOT NULL,
                    transaction_date TEXT NOT NULL,  -- YYYY-MM-DD
                    account_code TEXT NOT NULL,
                    account_name TEXT NOT NULL,
                    amount TEXT NOT NULL,  -- Unsigned exact decimal as text
                    debit_credit TEXT NOT NULL,  -- debit, credit
                    description TEXT NOT NULL DEFAULT '',
                    period TEXT NOT NULL,
                    reconciliation_status TEXT NOT NULL DEFAULT 'unmatched',
                    order_match_id INTEGER,
                    is_excluded INTEGER NOT NULL DEFAULT 0,
                    exclusion_reason TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS reconciliation_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    period TEXT NOT NULL,
                    executed_at TEXT NOT NULL,
                    matched_count INTEGER NOT NULL DEFAULT 0,
                    fuzzy_matched_count INTEGER NOT NULL DEFAULT 0,
                    unmatched_order_count INTEGER NOT NULL DEFAULT 0,
                    unmatched_gl_count INTEGER NOT NULL DEFAULT 0,
                    total_order_count INTEGER NOT NULL DEFAULT 0,
                    total_gl_count INTEGER NOT NULL DEFAULT 0
                )
            """
            )

    def _run_migrations(self) -> None:
        """Run pending database migrations."""
        from .migrations import MigrationRunner

        conn = self._get_connection()
        try:
            runner = MigrationRunner(conn)
            runner.run_pending()
        finally:
            conn.close()

    # Order forecast methods

    def insert_order_forecasts(self, forecasts: Iterable[NewOrderForecast]) -> int:
        """Insert forecasts in one transaction; all or none. Returns count inserted."""
        now = _now()
        rows = [
            (
                f.project_id,
                f.project_code,
                f.project_name,
                f.customer_id,
                f.customer_code,
                f.customer_name,
                f.accounting_period,
                f.accounting_item,
                f.description,
                f.amount,
                f.remarks,
                f.period,
                now,
                now,
            )
            for f in forecasts
        ]
        if not rows:
            return 0

        with self._transaction() as conn:
            conn.executemany(
                """
                INSERT INTO order_forecasts
                (project_id, project_code, project_name, customer_id, customer_code,
                 customer_name, accounting_period, accounting_item, description, amount,
                 remarks, period, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                rows,
            )
        return len(rows)

    def create_order_forecast(self, forecast: NewOrderForecast) -> OrderForecastRecord:
        """Insert a single forecast and return the stored record."""
        now = _now()
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO order_forecasts
                (project_id, project_code, project_name, customer_id, customer_code,
                 customer_name, accounting_period, accounting_item, description, amount,
                 remarks, period, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    forecast.project_id,
                    forecast.project_code,
                    forecast.project_name,
                    forecast.customer_id,
                    forecast.customer_code,
                    forecast.customer_name,
                    forecast.accounting_period,
                    forecast.accounting_item,
                    forecast.description,
                    forecast.amount,
                    forecast.remarks,
                    forecast.period,
                    now,
                    now,
                ),
            )
            row = conn.execute(
                "SELECT * FROM order_forecasts WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
            return OrderForecastRecord.from_row(row)

    def get_order_forecast(self, forecast_id: int) -> OrderForecastRecord | None:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM order_forecasts WHERE id = ?", (forecast_id,)
            ).fetchone()
            return OrderForecastRecord.from_row(row) if row else None

    def get_order_forecasts_by_period(self, period: str) -> list[OrderForecastRecord]:
        """All forecasts of a period in insertion order."""
        return self.list_order_forecasts(period=period)

    def list_order_forecasts(
        self,
        period: str | None = None,
        status: ReconciliationStatus | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[OrderForecastRecord]:
        where, params = _filters(period=period, status=status)
        sql = f"SELECT * FROM order_forecasts{where} ORDER BY id"
        sql, params = _paginate(sql, params, limit, offset)
        with self._transaction() as conn:
            rows = conn.execute(sql, params).fetchall()
            return [OrderForecastRecord.from_row(row) for row in rows]

    # GL entry methods

    def find_existing_gl_periods(self, periods: Iterable[str]) -> list[str]:
        """Subset of periods that already hold GL entries, sorted."""
        periods = sorted(set(periods))
        if not periods:
            return []
        with self._transaction() as conn:
            return self._existing_gl_periods(conn, periods)

    def _existing_gl_periods(self, conn: sqlite3.Connection, periods: list[str]) -> list[str]:
        placeholders = ", ".join("?" for _ in periods)
        rows = conn.execute(
            f"SELECT DISTINCT period FROM gl_entries WHERE period IN ({placeholders}) ORDER BY period",
            periods,
        ).fetchall()
        return [row["period"] for row in rows]

    def insert_gl_entries(
        self, entries: Iterable[NewGLEntry], reject_existing_periods: bool = True
    ) -> int:
        """
        Insert GL entries in one transaction; all or none.

        Raises:
            DuplicatePeriodError: if reject_existing_periods is set and any
                period of the batch already holds entries. Checked under the
                write lock, before any row is written.
        """
        entries = list(entries)
        if not entries:
            return 0

        now = _now()
        rows = [
            (
                e.voucher_no,
                e.transaction_date,
                e.account_code,
                e.account_name,
                e.amount,
                e.debit_credit.value,
                e.description,
                e.period,
                now,
                now,
            )
            for e in entries
        ]

        with self._transaction(immediate=True) as conn:
            if reject_existing_periods:
                existing = self._existing_gl_periods(conn, sorted({e.period for e in entries}))
                if existing:
                    raise DuplicatePeriodError(existing)

            conn.executemany(
                """
                INSERT INTO gl_entries
                (voucher_no, transaction_date, account_code, account_name, amount,
                 debit_credit, description, period, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                rows,
            )
        return len(rows)

    def get_gl_entry(self, entry_id: int) -> GLEntryRecord | None:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM gl_entries WHERE id = ?", (entry_id,)).fetchone()
            return GLEntryRecord.from_row(row) if row else None

    def get_gl_entries_by_period(self, period: str) -> list[GLEntryRecord]:
        """All GL entries of a period in insertion order."""
        return self.list_gl_entries(period=period)

    def get_gl_entries_by_voucher(self, voucher_no: str) -> list[GLEntryRecord]:
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM gl_entries WHERE voucher_no = ? ORDER BY id", (voucher_no,)
            ).fetchall()
            return [GLEntryRecord.from_row(row) for row in rows]

    def list_gl_entries(
        self,
        period: str | None = None,
        status: ReconciliationStatus | None = None,
        account_code: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[GLEntryRecord]:
        where, params = _filters(period=period, status=status, account_code=account_code)
        sql = f"SELECT * FROM gl_entries{where} ORDER BY id"
        sql, params = _paginate(sql, params, limit, offset)
        with self._transaction() as conn:
            rows = conn.execute(sql, params).fetchall()
            return [GLEntryRecord.from_row(row) for row in rows]

    # Pairing

    def link_pair(
        self,
        order_id: int,
        gl_id: int,
        status: ReconciliationStatus = ReconciliationStatus.MATCHED,
        force: bool = False,
    ) -> None:
        """
        Mark a forecast and a GL entry as mutually matched, atomically.

        Without force both rows must still be unmatched and not excluded
        (guarded update). With force, any previous partners of either side
        are unmatched first, in the same transaction; excluded rows are
        still refused.

        Raises:
            ConflictError: if either guarded update touches no row. Nothing
                is written in that case.
        """
        now = _now()
        guard = " AND is_excluded = 0"
        if not force:
            guard += f" AND reconciliation_status = '{_UNMATCHED}'"

        with self._transaction(immediate=True) as conn:
            if force:
                conn.execute(
                    """
                    UPDATE gl_entries
                    SET reconciliation_status = ?, order_match_id = NULL, updated_at = ?
                    WHERE order_match_id = ? AND id != ?
                """,
                    (_UNMATCHED, now, order_id, gl_id),
                )
                conn.execute(
                    f"""
                    UPDATE order_forecasts
                    SET reconciliation_status = ?, gl_match_id = NULL, updated_at = ?
                        {_VERSION_BUMP[ORDER_TABLE]}
                    WHERE gl_match_id = ? AND id != ?
                """,
                    (_UNMATCHED, now, gl_id, order_id),
                )

            cursor = conn.execute(
                f"""
                UPDATE order_forecasts
                SET reconciliation_status = ?, gl_match_id = ?, updated_at = ?
                    {_VERSION_BUMP[ORDER_TABLE]}
                WHERE id = ?{guard}
            """,
                (status.value, gl_id, now, order_id),
            )
            if cursor.rowcount == 0:
                raise ConflictError(
                    f"Order forecast {order_id} is not available for matching",
                    detail={"order_forecast_id": order_id, "gl_entry_id": gl_id},
                )

            cursor = conn.execute(
                f"""
                UPDATE gl_entries
                SET reconciliation_status = ?, order_match_id = ?, updated_at = ?
                WHERE id = ?{guard}
            """,
                (status.value, order_id, now, gl_id),
            )
            if cursor.rowcount == 0:
                raise ConflictError(
                    f"GL entry {gl_id} is not available for matching",
                    detail={"order_forecast_id": order_id, "gl_entry_id": gl_id},
                )

    def unlink_pair(self, order_id: int, gl_id: int) -> tuple[bool, bool]:
        """
        Clear the pairing between a forecast and a GL entry, atomically.

        Only a side whose back-reference points at the other is reset.

        Returns:
            (forecast_changed, gl_entry_changed)
        """
        now = _now()
        with self._transaction(immediate=True) as conn:
            order_cursor = conn.execute(
                f"""
                UPDATE order_forecasts
                SET reconciliation_status = ?, gl_match_id = NULL, updated_at = ?
                    {_VERSION_BUMP[ORDER_TABLE]}
                WHERE id = ? AND gl_match_id = ?
            """,
                (_UNMATCHED, now, order_id, gl_id),
            )
            gl_cursor = conn.execute(
                """
                UPDATE gl_entries
                SET reconciliation_status = ?, order_match_id = NULL, updated_at = ?
                WHERE id = ? AND order_match_id = ?
            """,
                (_UNMATCHED, now, gl_id, order_id),
            )
            return order_cursor.rowcount > 0, gl_cursor.rowcount > 0

    def _unlink_partners_of(
        self, conn: sqlite3.Connection, table: str, where: str, params: tuple, now: str
    ) -> int:
        """Reset every partner row whose back-reference points into `table` rows matching `where`."""
        _, partner_table, partner_ref = _PAIRING[table]
        cursor = conn.execute(
            f"""
            UPDATE {partner_table}
            SET reconciliation_status = ?, {partner_ref} = NULL, updated_at = ?
                {_VERSION_BUMP[partner_table]}
            WHERE {partner_ref} IN (SELECT id FROM {table} WHERE {where})
        """,
            (_UNMATCHED, now, *params),
        )
        return cursor.rowcount

    # Exclusion

    def set_order_forecast_exclusion(
        self, ids: Iterable[int], is_excluded: bool, reason: str | None = None
    ) -> int:
        return self._set_exclusion(ORDER_TABLE, ids, is_excluded, reason)

    def set_gl_entry_exclusion(
        self, ids: Iterable[int], is_excluded: bool, reason: str | None = None
    ) -> int:
        return self._set_exclusion(GL_TABLE, ids, is_excluded, reason)

    def _set_exclusion(
        self, table: str, ids: Iterable[int], is_excluded: bool, reason: str | None
    ) -> int:
        """
        Exclude or re-include records; returns the number of rows changed.

        Excluding a matched record unmatches its counterpart first.
        Re-inclusion only touches rows that are currently excluded.
        """
        ref_column, _, _ = _PAIRING[table]
        bump = _VERSION_BUMP[table]
        now = _now()
        updated = 0

        with self._transaction(immediate=True) as conn:
            for record_id in dict.fromkeys(ids):
                if is_excluded:
                    self._unlink_partners_of(conn, table, "id = ?", (record_id,), now)
                    cursor = conn.execute(
                        f"""
                        UPDATE {table}
                        SET is_excluded = 1, reconciliation_status = ?, {ref_column} = NULL,
                            exclusion_reason = ?, updated_at = ?{bump}
                        WHERE id = ?
                    """,
                        (_EXCLUDED, reason, now, record_id),
                    )
                else:
                    cursor = conn.execute(
                        f"""
                        UPDATE {table}
                        SET is_excluded = 0, reconciliation_status = ?, {ref_column} = NULL,
                            exclusion_reason = NULL, updated_at = ?{bump}
                        WHERE id = ? AND is_excluded = 1
                    """,
                        (_UNMATCHED, now, record_id),
                    )
                updated += cursor.rowcount

        return updated

    # Deletion

    def delete_order_forecast(self, forecast_id: int) -> bool:
        return self._delete(ORDER_TABLE, "id = ?", (forecast_id,)) > 0

    def delete_gl_entry(self, entry_id: int) -> bool:
        """Delete one GL entry, unmatching its counterpart in the same transaction."""
        return self._delete(GL_TABLE, "id = ?", (entry_id,)) > 0

    def delete_gl_entries_by_period(self, period: str) -> int:
        """Unmatch counterparts, then delete every GL entry of the period."""
        return self._delete(GL_TABLE, "period = ?", (period,))

    def delete_order_forecasts_by_period(self, period: str) -> int:
        """Unmatch counterparts, then delete every forecast of the period."""
        return self._delete(ORDER_TABLE, "period = ?", (period,))

    def _delete(self, table: str, where: str, params: tuple) -> int:
        now = _now()
        with self._transaction(immediate=True) as conn:
            unlinked = self._unlink_partners_of(conn, table, where, params, now)
            cursor = conn.execute(f"DELETE FROM {table} WHERE {where}", params)
            if cursor.rowcount:
                logger.debug(
                    "Deleted %d row(s) from %s, unmatched %d counterpart(s)",
                    cursor.rowcount,
                    table,
                    unlinked,
                )
            return cursor.rowcount

    # Reconciliation logs

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
    ) -> ReconciliationLogRecord:
        executed_at = executed_at or _now()
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO reconciliation_logs
                (period, executed_at, matched_count, fuzzy_matched_count,
                 unmatched_order_count, unmatched_gl_count, total_order_count, total_gl_count)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    period,
                    executed_at,
                    matched_count,
                    fuzzy_matched_count,
                    unmatched_order_count,
                    unmatched_gl_count,
                    total_order_count,
                    total_gl_count,
                ),
            )
            row = conn.execute(
                "SELECT * FROM reconciliation_logs WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
            return ReconciliationLogRecord.from_row(row)

    def get_reconciliation_log(self, log_id: int) -> ReconciliationLogRecord | None:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM reconciliation_logs WHERE id = ?", (log_id,)
            ).fetchone()
            return ReconciliationLogRecord.from_row(row) if row else None

    def get_latest_reconciliation_log(
        self, period: str | None = None
    ) -> ReconciliationLogRecord | None:
        where, params = _filters(period=period)
        with self._transaction() as conn:
            row = conn.execute(
                f"SELECT * FROM reconciliation_logs{where} ORDER BY executed_at DESC, id DESC LIMIT 1",
                params,
            ).fetchone()
            return ReconciliationLogRecord.from_row(row) if row else None

    def list_reconciliation_logs(
        self,
        period: str | None = None,
        period_from: str | None = None,
        period_to: str | None = None,
        sort_by: str = "executed_at",
        sort_order: str = "desc",
        limit: int | None = 20,
        offset: int = 0,
    ) -> tuple[list[ReconciliationLogRecord], int]:
        """
        Query run logs.

        Returns:
            (page of logs, total matching count ignoring limit/offset)
        """
        if sort_by not in LOG_SORT_COLUMNS:
            raise ValidationError(
                f"Cannot sort logs by '{sort_by}'", detail={"allowed": list(LOG_SORT_COLUMNS)}
            )
        direction = sort_order.lower()
        if direction not in ("asc", "desc"):
            raise ValidationError(f"Invalid sort order '{sort_order}'")

        where, params = _filters(period=period, period_from=period_from, period_to=period_to)
        sql = (
            f"SELECT * FROM reconciliation_logs{where} "
            f"ORDER BY {sort_by} {direction.upper()}, id {direction.upper()}"
        )
        page_sql, page_params = _paginate(sql, params, limit, offset)

        with self._transaction() as conn:
            total = conn.execute(
                f"SELECT COUNT(*) AS count FROM reconciliation_logs{where}", params
            ).fetchone()["count"]
            rows = conn.execute(page_sql, page_params).fetchall()
            return [ReconciliationLogRecord.from_row(row) for row in rows], total

    # Run guard

    def acquire_period_lock(
        self, period: str, ttl_seconds: int, now: datetime | None = None
    ) -> str:
        """
        Take the per-period run guard.

        An existing lock whose expiry is at or before `now` is evicted first.

        Returns:
            Owner token, required by release_period_lock.

        Raises:
            ConflictError: if a live lock is held for the period.
        """
        now = now or datetime.now(timezone.utc)
        acquired_at = format_timestamp(now)
        expires_at = format_timestamp(now + timedelta(seconds=ttl_seconds))
        token = uuid.uuid4().hex

        with self._transaction(immediate=True) as conn:
            evicted = conn.execute(
                "DELETE FROM reconciliation_run_locks WHERE period = ? AND expires_at <= ?",
                (period, acquired_at),
            ).rowcount
            if evicted:
                logger.warning("Evicted expired reconciliation lock for %s", period)

            holder = conn.execute(
                "SELECT expires_at FROM reconciliation_run_locks WHERE period = ?", (period,)
            ).fetchone()
            if holder:
                raise ConflictError(
                    f"A reconciliation run for {period} is already in progress",
                    detail={"period": period, "expires_at": holder["expires_at"]},
                )

            conn.execute(
                """
                INSERT INTO reconciliation_run_locks (period, token, acquired_at, expires_at)
                VALUES (?, ?, ?, ?)
            """,
                (period, token, acquired_at, expires_at),
            )
        return token

    def release_period_lock(self, period: str, token: str) -> bool:
        """Release a lock held under `token`; False if it expired and was taken over."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM reconciliation_run_locks WHERE period = ? AND token = ?",
                (period, token),
            )
            return cursor.rowcount > 0

    # Statistics

    def get_stats(self) -> dict[str, Any]:
        """Row counts per table and status."""
        with self._transaction() as conn:
            stats: dict[str, Any] = {}
            for table in (ORDER_TABLE, GL_TABLE):
                rows = conn.execute(
                    f"SELECT reconciliation_status, COUNT(*) AS count FROM {table} "
                    "GROUP BY reconciliation_status"
                ).fetchall()
                by_status = {status.value: 0 for status in ReconciliationStatus}
                by_status.update({row["reconciliation_status"]: row["count"] for row in rows})
                stats[table] = {"total": sum(by_status.values()), **by_status}

            logs = conn.execute("SELECT COUNT(*) AS count FROM reconciliation_logs").fetchone()
            periods = conn.execute(
                "SELECT COUNT(DISTINCT period) AS count FROM gl_entries"
            ).fetchone()
            stats["reconciliation_logs"] = logs["count"] if logs else 0
            stats["gl_periods"] = periods["count"] if periods else 0
            return stats


def _filters(
    period: str | None = None,
    period_from: str | None = None,
    period_to: str | None = None,
    status: ReconciliationStatus | None = None,
    account_code: str | None = None,
) -> tuple[str, list[Any]]:
    """Build a WHERE clause from the non-None filters."""
    clauses: list[str] = []
    params: list[Any] = []
    if period is not None:
        clauses.append("period = ?")
        params.append(period)
    if period_from is not None:
        clauses.append("period >= ?")
        params.append(period_from)
    if period_to is not None:
        clauses.append("period <= ?")
        params.append(period_to)
    if status is not None:
        clauses.append("reconciliation_status = ?")
        params.append(ReconciliationStatus(status).value)
    if account_code is not None:
        clauses.append("account_code = ?")
        params.append(account_code)
    where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


def _paginate(
    sql: str, params: list[Any], limit: int | None, offset: int
) -> tuple[str, list[Any]]:
    if limit is None:
        if offset:
            return f"{sql} LIMIT -1 OFFSET ?", [*params, offset]
        return sql, params
    return f"{sql} LIMIT ? OFFSET ?", [*params, limit, offset]
