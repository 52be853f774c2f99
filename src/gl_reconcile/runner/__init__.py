"""
CLI runner module.

Provides commands:
- import-gl / import-forecasts: Load CSV files
- reconcile: Run a reconciliation pass for a period
- match / unmatch: Manual pairing
- exclude / include: Exclusion toggles
- delete-period: Remove a period's GL entries or forecasts
- logs / summary / status: Reporting
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
