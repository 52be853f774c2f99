"""Forecast-to-ledger matching."""

from .engine import (
    STRICT_MATCH_SCORE,
    GLPool,
    MatchingEngine,
    MatchOutcome,
    MatchResult,
    strict_match_reasons,
)

__all__ = [
    "STRICT_MATCH_SCORE",
    "GLPool",
    "MatchingEngine",
    "MatchOutcome",
    "MatchResult",
    "strict_match_reasons",
]
