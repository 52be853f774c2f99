"""
Text normalization (SSOT).

This module defines THE comparison key used to decide whether two free-text
ledger fields (account names, descriptions) are "the same". It is the ONLY
normalization used by the matching engine.

normalize() steps, in order:
1. Full-width Latin letters/digits -> half-width
2. Half-width katakana (U+FF65-U+FF9F) -> full-width katakana
3. Ideographic space (U+3000) -> ASCII space
4. Hyphen/dash variants and the long vowel mark are removed
5. Whitespace runs collapse to one space; ends are trimmed
6. Lower-case

The result is for equality checks only. It is never stored or displayed;
to_full_width_kana() is the display-oriented conversion applied to stored
account names.

normalize() must be:
- Total: never raises; None/empty input yields ""
- Idempotent: normalize(normalize(x)) == normalize(x)
"""

import re
import unicodedata

# Full-width A-Z, a-z, 0-9 sit exactly 0xFEE0 above their ASCII forms
FULL_WIDTH_OFFSET = 0xFEE0

_ASCII_ALNUM = [*range(ord("0"), ord("9") + 1), *range(ord("A"), ord("Z") + 1), *range(ord("a"), ord("z") + 1)]
_FULL_WIDTH_ALNUM = str.maketrans({chr(code + FULL_WIDTH_OFFSET): chr(code) for code in _ASCII_ALNUM})

# Combining (semi-)voiced sound marks; NFC folds カ + U+3099 into ガ
COMBINING_VOICED = "\u3099"
COMBINING_SEMI_VOICED = "\u309A"

HALF_WIDTH_KANA_TABLE: dict[int, str] = {
    0xFF65: "・", 0xFF66: "ヲ", 0xFF67: "ァ", 0xFF68: "ィ", 0xFF69: "ゥ",
    0xFF6A: "ェ", 0xFF6B: "ォ", 0xFF6C: "ャ", 0xFF6D: "ュ", 0xFF6E: "ョ",
    0xFF6F: "ッ", 0xFF70: "ー", 0xFF71: "ア", 0xFF72: "イ", 0xFF73: "ウ",
    0xFF74: "エ", 0xFF75: "オ", 0xFF76: "カ", 0xFF77: "キ", 0xFF78: "ク",
    0xFF79: "ケ", 0xFF7A: "コ", 0xFF7B: "サ", 0xFF7C: "シ", 0xFF7D: "ス",
    0xFF7E: "セ", 0xFF7F: "ソ", 0xFF80: "タ", 0xFF81: "チ", 0xFF82: "ツ",
    0xFF83: "テ", 0xFF84: "ト", 0xFF85: "ナ", 0xFF86: "ニ", 0xFF87: "ヌ",
    0xFF88: "ネ", 0xFF89: "ノ", 0xFF8A: "ハ", 0xFF8B: "ヒ", 0xFF8C: "フ",
    0xFF8D: "ヘ", 0xFF8E: "ホ", 0xFF8F: "マ", 0xFF90: "ミ", 0xFF91: "ム",
    0xFF92: "メ", 0xFF93: "モ", 0xFF94: "ヤ", 0xFF95: "ユ", 0xFF96: "ヨ",
    0xFF97: "ラ", 0xFF98: "リ", 0xFF99: "ル", 0xFF9A: "レ", 0xFF9B: "ロ",
    0xFF9C: "ワ", 0xFF9D: "ン", 0xFF9E: COMBINING_VOICED, 0xFF9F: COMBINING_SEMI_VOICED,
}

_HALF_WIDTH_KANA_PATTERN = re.compile("[\uFF65-\uFF9F]")

IDEOGRAPHIC_SPACE = "\u3000"

# ASCII hyphen, full-width hyphen-minus, long vowel mark, and the common
# typographic dashes that ledger exports substitute for them
DASH_CHARACTERS = "-\uFF0D\u30FC\u2010\u2011\u2012\u2013\u2014\u2015\u2212"
_DASH_PATTERN = re.compile(f"[{re.escape(DASH_CHARACTERS)}]")

_WHITESPACE_PATTERN = re.compile(r"\s+")


def to_full_width_kana(text: str | None) -> str:
    """
    Convert half-width katakana to full-width.

    Voiced marks following a base kana are folded into it (ｶﾞ -> ガ); a
    mark with nothing to combine with becomes the spacing form (゛/゜).
    Everything outside U+FF65-U+FF9F passes through unchanged.
    """
    if not text:
        return ""
    if not _HALF_WIDTH_KANA_PATTERN.search(text):
        return text

    converted = unicodedata.normalize("NFC", text.translate(HALF_WIDTH_KANA_TABLE))
    return converted.replace(COMBINING_VOICED, "゛").replace(COMBINING_SEMI_VOICED, "゜")


def normalize(text: str | None) -> str:
    """Return the comparison key for a free-text ledger field."""
    if not text:
        return ""
    if not isinstance(text, str):
        text = str(text)

    text = text.translate(_FULL_WIDTH_ALNUM)
    text = to_full_width_kana(text)
    text = text.replace(IDEOGRAPHIC_SPACE, " ")
    text = _DASH_PATTERN.sub("", text)
    text = _WHITESPACE_PATTERN.sub(" ", text).strip()
    return text.lower()


def is_text_match(left: str | None, right: str | None, allow_empty: bool = False) -> bool:
    """
    Compare two fields by their normalized forms.

    Two empty keys only match when allow_empty is set; descriptions use the
    default so that blank-vs-blank never counts as agreement.
    """
    left_key = normalize(left)
    right_key = normalize(right)
    if not allow_empty and (not left_key or not right_key):
        return False
    return left_key == right_key
