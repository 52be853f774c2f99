"""
CSV ingestion: encoding detection and row parsing for GL extracts and
forecast bulk loads.
"""

from .encoding import (
    CANDIDATE_ENCODINGS,
    DecodedText,
    decode_preferring_utf8,
    decode_with,
    detect_and_decode,
    score_decoding,
)
from .forecast_csv import FORECAST_CSV_COLUMNS, ForecastParseResult, parse_forecast_csv
from .gl_csv import GL_CSV_COLUMNS, GLCSVParser, GLParseResult

__all__ = [
    "CANDIDATE_ENCODINGS",
    "DecodedText",
    "decode_preferring_utf8",
    "decode_with",
    "detect_and_decode",
    "score_decoding",
    "FORECAST_CSV_COLUMNS",
    "ForecastParseResult",
    "parse_forecast_csv",
    "GL_CSV_COLUMNS",
    "GLCSVParser",
    "GLParseResult",
]
