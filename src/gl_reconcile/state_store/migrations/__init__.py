"""
Versioned schema migrations for the ledger state store.

Applied in order on StateStore construction and tracked in a migrations table.
"""

from .runner import MigrationRunner, get_all_migrations

__all__ = ["MigrationRunner", "get_all_migrations"]
