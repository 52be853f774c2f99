"""
Migration runner for the ledger schema.

Migration modules live beside this file as {version}_{name}.py, e.g.
001_period_indexes.py, and define:
- VERSION: int
- NAME: str
- upgrade(conn: Connection) -> None
- downgrade(conn: Connection) -> None  (optional)
"""

import importlib
import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

MIGRATIONS_PACKAGE = "gl_reconcile.state_store.migrations"


@dataclass
class Migration:
    """A single schema step."""

    version: int
    name: str
    upgrade: Callable[[sqlite3.Connection], None]
    downgrade: Callable[[sqlite3.Connection], None] | None


def get_all_migrations() -> list[Migration]:
    """Load every migration module in this package, sorted by version."""
    migrations = []
    migrations_dir = Path(__file__).parent

    for py_file in sorted(migrations_dir.glob("[0-9][0-9][0-9]_*.py")):
        module_name = py_file.stem
        module = importlib.import_module(f"{MIGRATIONS_PACKAGE}.{module_name}")
        try:
            migrations.append(
                Migration(
                    version=module.VERSION,
                    name=module.NAME,
                    upgrade=module.upgrade,
                    downgrade=getattr(module, "downgrade", None),
                )
            )
        except AttributeError as e:
            raise RuntimeError(f"Migration module {module_name} is incomplete: {e}") from e

    return sorted(migrations, key=lambda m: m.version)


class MigrationRunner:
    """
    Applies pending migrations in version order.

    Applied versions are recorded in the `migrations` table; each migration
    commits together with its record or not at all.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self._ensure_migrations_table()

    def _ensure_migrations_table(self) -> None:
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS migrations (
                version INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                applied_at TEXT NOT NULL
            )
        """
        )
        self.conn.commit()

    def get_applied_versions(self) -> set[int]:
        cursor = self.conn.execute("SELECT version FROM migrations ORDER BY version")
        return {row[0] for row in cursor.fetchall()}

    def get_current_version(self) -> int:
        """Highest applied version, 0 for a fresh database."""
        result = self.conn.execute("SELECT MAX(version) FROM migrations").fetchone()[0]
        return result if result is not None else 0

    def _step(
        self,
        migration: Migration,
        action: str,
        change: Callable[[sqlite3.Connection], None],
        record_sql: str,
        record_params: tuple,
    ) -> None:
        """Run one schema change and its bookkeeping row as a unit."""
        logger.info("%s migration %d (%s)", action, migration.version, migration.name)
        try:
            change(self.conn)
            self.conn.execute(record_sql, record_params)
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            logger.exception("%s migration %d failed", action, migration.version)
            raise

    def apply_migration(self, migration: Migration) -> None:
        applied_at = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        self._step(
            migration,
            "Applying",
            migration.upgrade,
            "INSERT INTO migrations (version, name, applied_at) VALUES (?, ?, ?)",
            (migration.version, migration.name, applied_at),
        )

    def rollback_migration(self, migration: Migration) -> None:
        if migration.downgrade is None:
            raise NotImplementedError(
                f"Migration {migration.version} ({migration.name}) cannot be rolled back"
            )
        self._step(
            migration,
            "Rolling back",
            migration.downgrade,
            "DELETE FROM migrations WHERE version = ?",
            (migration.version,),
        )

    def run_pending(self) -> list[int]:
        """Apply every migration not yet recorded; returns the versions applied."""
        applied = self.get_applied_versions()
        pending = [m for m in get_all_migrations() if m.version not in applied]

        for migration in pending:
            self.apply_migration(migration)

        versions = [m.version for m in pending]
        if versions:
            logger.info("Applied %d migration(s): %s", len(versions), versions)
        else:
            logger.debug("No pending migrations")
        return versions

    def migrate_to(self, target_version: int) -> None:
        """Upgrade or downgrade to exactly target_version."""
        current = self.get_current_version()
        migration_map = {m.version: m for m in get_all_migrations()}

        if target_version > current:
            for version in range(current + 1, target_version + 1):
                if version in migration_map:
                    self.apply_migration(migration_map[version])
        elif target_version < current:
            for version in range(current, target_version, -1):
                if version in migration_map:
                    self.rollback_migration(migration_map[version])
