"""
Encoding detection for ledger CSV files.

Ledger exports usually arrive in a legacy Japanese encoding with no declared
charset, so detection is content-based: every candidate decodes the buffer
and the decoding with the most CJK characters (minus a heavy penalty for
replacement characters) wins.
"""

from __future__ import annotations

import codecs
import logging
import re
from dataclasses import dataclass, field

from ..errors import EncodingError

logger = logging.getLogger(__name__)

# (display name, Python codec). Order breaks ties: earlier wins.
# cp932 is the Windows superset of Shift_JIS that accounting packages emit.
CANDIDATE_ENCODINGS: tuple[tuple[str, str], ...] = (
    ("Shift_JIS", "cp932"),
    ("EUC-JP", "euc_jp"),
    ("UTF-8", "utf-8-sig"),
    ("ISO-2022-JP", "iso2022_jp"),
)

DEFAULT_ENCODING = ("UTF-8", "utf-8-sig")

REPLACEMENT_CHAR = "\uFFFD"
REPLACEMENT_PENALTY = 10

_CJK_PATTERN = re.compile("[\u3040-\u309F\u30A0-\u30FF\u4E00-\u9FAF]")

_UTF8_BOM = codecs.BOM_UTF8


@dataclass(frozen=True)
class DecodedText:
    """Decoded file content plus the encoding that produced it."""

    text: str
    encoding: str
    detected: bool = False
    scores: dict[str, int] = field(default_factory=dict)


def score_decoding(text: str) -> int:
    """CJK character count minus a penalty per replacement character."""
    return len(_CJK_PATTERN.findall(text)) - REPLACEMENT_PENALTY * text.count(REPLACEMENT_CHAR)


def _resolve_codec(name: str) -> tuple[str, str]:
    """Map an encoding hint to (display name, codec); candidates resolve to their codec."""
    try:
        canonical = codecs.lookup(name).name
    except LookupError as e:
        raise EncodingError(f"Unknown encoding: '{name}'", detail={"encoding": name}) from e

    for display, codec in CANDIDATE_ENCODINGS:
        if canonical in (codecs.lookup(codec).name, codecs.lookup(display).name):
            return display, codec
    return name, canonical


def decode_with(data: bytes, encoding: str) -> DecodedText:
    """
    Decode with an explicit encoding.

    Raises:
        EncodingError: if the encoding is unknown or the bytes are not valid
            in it.
    """
    display, codec = _resolve_codec(encoding)
    try:
        text = data.decode(codec)
    except UnicodeDecodeError as e:
        raise EncodingError(
            f"File cannot be decoded as {display}: {e.reason} at byte {e.start}",
            detail={"encoding": display, "position": e.start},
        ) from e
    return DecodedText(text=text, encoding=display)


def detect_and_decode(data: bytes, hint: str | None = None) -> DecodedText:
    """
    Decode raw CSV bytes, detecting the encoding unless a hint is given.

    Args:
        data: Raw file bytes.
        hint: Explicit encoding; disables detection and fails loudly.

    Returns:
        DecodedText with the chosen encoding name. Falls back to UTF-8 when
        no candidate scores above zero.
    """
    if hint:
        return decode_with(data, hint)

    scores: dict[str, int] = {}
    best: tuple[str, str] | None = None
    best_score = 0
    best_text = ""

    for display, codec in CANDIDATE_ENCODINGS:
        try:
            text = data.decode(codec, errors="replace")
        except (UnicodeError, LookupError) as e:
            logger.debug("Decoding as %s failed: %s", display, e)
            continue

        score = score_decoding(text)
        scores[display] = score
        if score > best_score:
            best, best_score, best_text = (display, codec), score, text

    if best is None:
        display, codec = DEFAULT_ENCODING
        best_text = data.decode(codec, errors="replace")
        if REPLACEMENT_CHAR in best_text:
            logger.warning(
                "No candidate encoding decoded cleanly (scores=%s); falling back to %s",
                scores,
                display,
            )
        best = (display, codec)

    logger.debug("Detected encoding %s (scores=%s)", best[0], scores)
    return DecodedText(text=best_text, encoding=best[0], detected=True, scores=scores)


def decode_preferring_utf8(data: bytes, hint: str | None = None) -> DecodedText:
    """
    Decode a forecast upload: BOM-marked or valid UTF-8 first, detection after.
    """
    if hint:
        return decode_with(data, hint)

    if data.startswith(_UTF8_BOM):
        return DecodedText(text=data[len(_UTF8_BOM):].decode("utf-8", errors="replace"), encoding="UTF-8")

    try:
        return DecodedText(text=data.decode("utf-8"), encoding="UTF-8")
    except UnicodeDecodeError:
        logger.debug("Forecast file is not valid UTF-8; detecting encoding")

    return detect_and_decode(data)
