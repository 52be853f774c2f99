"""Tests for text normalization."""

import pytest

from gl_reconcile.schemas.normalization import (
    HALF_WIDTH_KANA_TABLE,
    is_text_match,
    normalize,
    to_full_width_kana,
)

SAMPLES = [
    "",
    "   ",
    "保守売上",
    "ＡＢＣ１２３",
    "ABC123",
    "ｶﾞｲﾁｭｳﾋ",
    "ﾊﾟｿｺﾝ ﾘｰｽ",
    "ソフト－ウェア　保守",
    "Cloud-Service  Fee ",
    "ﾞ",
    "ｱ　ｲ\tｳ\n",
    "ﾒﾝﾃﾅﾝｽ\u2015ＳＥＲＶＩＣＥ\u20142025",
]


class TestNormalize:
    """Comparison-key normalization."""

    @pytest.mark.parametrize("text", SAMPLES)
    def test_idempotent(self, text):
        """normalize(normalize(x)) == normalize(x)."""
        once = normalize(text)
        assert normalize(once) == once

    @pytest.mark.parametrize("value", [None, "", 0])
    def test_total_on_empty(self, value):
        """Empty or missing input yields an empty key."""
        assert normalize(value) == ""

    def test_non_string_is_coerced(self):
        assert normalize(50000) == "50000"

    def test_full_width_alnum_to_half_width(self):
        assert normalize("ＡＢＣ１２３") == "abc123"

    def test_half_width_kana_to_full_width(self):
        assert normalize("ｶﾞｲﾁｭｳﾋ") == "ガイチュウヒ"

    def test_half_and_full_width_kana_compare_equal(self):
        assert normalize("ﾊﾟｿｺﾝ") == normalize("パソコン")

    def test_ideographic_space_and_whitespace_collapse(self):
        assert normalize("  保守　　売上  ") == "保守 売上"

    def test_dashes_and_long_vowel_removed(self):
        assert normalize("ソフト－ウェア") == "ソフトウェア"
        assert normalize("サーバー") == "サバ"
        assert normalize("Cloud-Service") == "cloudservice"

    def test_lower_case(self):
        assert normalize("Maintenance FEE") == "maintenance fee"


class TestToFullWidthKana:
    """Display-oriented half-width kana conversion."""

    def test_table_covers_block(self):
        """Every code point in U+FF65..U+FF9F is mapped."""
        assert set(HALF_WIDTH_KANA_TABLE) == set(range(0xFF65, 0xFFA0))

    def test_wo_and_n(self):
        assert to_full_width_kana("ｦ") == "ヲ"
        assert to_full_width_kana("ﾝ") == "ン"

    def test_voiced_marks_fold(self):
        assert to_full_width_kana("ｶﾞｷﾞﾊﾟ") == "ガギパ"

    def test_lone_voiced_mark_becomes_spacing_form(self):
        assert to_full_width_kana("ﾞ") == "゛"
        assert to_full_width_kana("ｱﾟ") == "ア゜"

    def test_leaves_other_text_alone(self):
        """Full-width alphanumerics and case are untouched."""
        assert to_full_width_kana("ＡＢＣ abc 保守") == "ＡＢＣ abc 保守"

    def test_empty(self):
        assert to_full_width_kana(None) == ""
        assert to_full_width_kana("") == ""


class TestIsTextMatch:
    def test_equal_after_normalization(self):
        assert is_text_match("ﾎｼｭ ｹｲﾔｸ", "ホシュ　ケイヤク")

    def test_empty_never_matches_by_default(self):
        assert not is_text_match("", "")
        assert not is_text_match("   ", "　")

    def test_empty_matches_when_allowed(self):
        assert is_text_match("", None, allow_empty=True)

    def test_different_text(self):
        assert not is_text_match("保守売上", "保守原価")
