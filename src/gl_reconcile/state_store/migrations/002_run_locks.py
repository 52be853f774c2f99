"""
Migration 002: Per-period reconciliation run guard.

One row per period while a run is in flight. Rows carry an expiry so a
crashed process never blocks its period for longer than the configured TTL.
"""

import sqlite3

VERSION = 2
NAME = "run_locks"


def upgrade(conn: sqlite3.Connection) -> None:
    """Create reconciliation_run_locks table."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS reconciliation_run_locks (
            period TEXT PRIMARY KEY,
            token TEXT NOT NULL,
            acquired_at TEXT NOT NULL,
            expires_at TEXT NOT NULL  -- Fixed-width UTC ISO, compared as text
        )
    """
    )


def downgrade(conn: sqlite3.Connection) -> None:
    """Remove reconciliation_run_locks table."""
    conn.execute("DROP TABLE IF EXISTS reconciliation_run_locks")
