"""
Migration 001: Period and back-reference indexes.

Reconciliation loads both sides by period and unmatching/deletion looks
records up by their counterpart id.
"""

import sqlite3

VERSION = 1
NAME = "period_indexes"


def upgrade(conn: sqlite3.Connection) -> None:
    """Create lookup indexes."""
    conn.execute("CREATE INDEX IF NOT EXISTS idx_order_forecasts_period ON order_forecasts(period)")
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_order_forecasts_gl_match ON order_forecasts(gl_match_id)"
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_gl_entries_period ON gl_entries(period)")
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_gl_entries_order_match ON gl_entries(order_match_id)"
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_gl_entries_voucher ON gl_entries(voucher_no)")
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_reconciliation_logs_period "
        "ON reconciliation_logs(period, executed_at)"
    )


def downgrade(conn: sqlite3.Connection) -> None:
    """Drop lookup indexes."""
    for index in (
        "idx_order_forecasts_period",
        "idx_order_forecasts_gl_match",
        "idx_gl_entries_period",
        "idx_gl_entries_order_match",
        "idx_gl_entries_voucher",
        "idx_reconciliation_logs_period",
    ):
        conn.execute(f"DROP INDEX IF EXISTS {index}")
