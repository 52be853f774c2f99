"""
Order forecast ↔ general-ledger reconciliation.

A deterministic, batch pipeline that imports ledger extracts and staff-entered
order forecasts, matches them per accounting period with strict rules, and
keeps both sides' match state mutually consistent.
"""

__version__ = "0.1.0"
