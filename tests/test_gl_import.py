"""Tests for GL extract parsing and import."""

import pytest

from gl_reconcile.config import DEFAULT_TARGET_ACCOUNT_CODES, Config, IngestionConfig
from gl_reconcile.errors import DuplicatePeriodError, EncodingError, ValidationError
from gl_reconcile.ingest.gl_csv import GL_CSV_COLUMNS, GLCSVParser
from gl_reconcile.schemas.ledger_fields import parse_decimal, parse_transaction_date
from gl_reconcile.services.imports import GLImportService
from gl_reconcile.state_store import DebitCredit, ReconciliationStatus


@pytest.fixture
def parser():
    return GLCSVParser(DEFAULT_TARGET_ACCOUNT_CODES)


class TestLedgerFields:
    def test_compact_date(self):
        assert parse_transaction_date("20251015").isoformat() == "2025-10-15"

    def test_slash_date_with_single_digits(self):
        assert parse_transaction_date("2025/1/5").isoformat() == "2025-01-05"

    @pytest.mark.parametrize("value", ["2025-10-15", "251015", "2025/13/01", "20250230", ""])
    def test_invalid_dates(self, value):
        with pytest.raises(ValidationError):
            parse_transaction_date(value)

    def test_decimal_with_thousands_separator(self):
        assert str(parse_decimal("1,234,567")) == "1234567"

    @pytest.mark.parametrize("value", ["abc", "", None, "NaN", "Infinity"])
    def test_invalid_decimal(self, value):
        assert parse_decimal(value) is None


class TestGLCSVParser:
    """Row parsing and filtering."""

    def test_layout_has_22_columns(self):
        assert len(GL_CSV_COLUMNS) == 22

    def test_compact_date_yields_period(self, parser, gl_row):
        """transactionDate 20251015 -> period 2025-10, date 2025-10-15."""
        result = parser.parse(gl_row(transaction_date="20251015"))

        assert result.total_rows == 1
        assert result.imported_rows == 1
        entry = result.entries[0]
        assert entry.transaction_date == "2025-10-15"
        assert entry.period == "2025-10"
        assert result.periods == ["2025-10"]

    def test_slash_date(self, parser, gl_row):
        result = parser.parse(gl_row(transaction_date="2025/10/01"))
        assert result.entries[0].transaction_date == "2025-10-01"

    def test_account_outside_allow_list_is_skipped_not_error(self, parser, gl_row):
        result = parser.parse(gl_row(account_code="999"))

        assert result.total_rows == 1
        assert result.skipped_rows == 1
        assert result.errors == []
        assert result.imported_rows == 0

    def test_both_amounts_zero_is_skipped(self, parser, gl_row):
        result = parser.parse(gl_row(debit="0", credit=""))
        assert result.skipped_rows == 1
        assert result.errors == []

    def test_debit_side(self, parser, gl_row):
        entry = parser.parse(gl_row(debit="\"50,000\"", credit="")).entries[0]
        assert entry.debit_credit == DebitCredit.DEBIT
        assert entry.amount == "50000"

    def test_credit_side_uses_absolute_value(self, parser, gl_row):
        entry = parser.parse(gl_row(debit="", credit="-1200")).entries[0]
        assert entry.debit_credit == DebitCredit.CREDIT
        assert entry.amount == "1200"

    def test_bad_date_is_row_error_and_processing_continues(self, parser, gl_row):
        text = "\n".join(
            [
                gl_row(voucher_no="V1"),
                gl_row(voucher_no="V2", transaction_date="2025-10-15"),
                gl_row(voucher_no="V3"),
            ]
        )
        result = parser.parse(text)

        assert result.total_rows == 3
        assert result.imported_rows == 2
        assert len(result.errors) == 1
        assert result.errors[0].row == 2
        assert "2025-10-15" in result.errors[0].message

    def test_bad_amount_is_row_error(self, parser, gl_row):
        result = parser.parse(gl_row(debit="12x"))
        assert result.imported_rows == 0
        assert result.errors[0].row == 1

    def test_blank_lines_are_not_rows(self, parser, gl_row):
        result = parser.parse("\n" + gl_row() + "\n\n" + gl_row(voucher_no="V2") + "\n")
        assert result.total_rows == 2
        assert result.imported_rows == 2

    def test_account_name_converted_to_full_width_kana(self, parser, gl_row):
        entry = parser.parse(gl_row(account_name="ﾎｼｭｳﾘｱｹﾞ")).entries[0]
        assert entry.account_name == "ホシュウリアゲ"

    def test_quoted_fields(self, parser, gl_row):
        row = gl_row(description='"保守契約料, 10月分"')
        entry = parser.parse(row).entries[0]
        assert entry.description == "保守契約料, 10月分"

    def test_short_row_is_padded(self, parser):
        result = parser.parse("511,保守売上,,,,,20251015,V1,,,,,,,保守契約料,,,50000")
        assert result.imported_rows == 1


class TestGLImportService:
    """Decode + parse + all-or-nothing insert."""

    @pytest.fixture
    def service(self, store, config):
        return GLImportService(store, config)

    def test_import_shift_jis_file(self, service, store, gl_row, gl_csv_bytes):
        data = gl_csv_bytes(gl_row(voucher_no="V1"), gl_row(voucher_no="V2", account_code="999"))

        result = service.import_from_bytes(data)

        assert result.encoding == "Shift_JIS"
        assert result.total_rows == 2
        assert result.imported_rows == 1
        assert result.skipped_rows == 1
        entries = store.get_gl_entries_by_period("2025-10")
        assert len(entries) == 1
        assert entries[0].account_name == "保守売上"
        assert entries[0].description == "保守契約料"
        assert entries[0].reconciliation_status == ReconciliationStatus.UNMATCHED
        assert entries[0].match_partner is None

    def test_duplicate_period_rejected_before_any_insert(
        self, service, store, gl_row, gl_csv_bytes
    ):
        """A second file touching an existing period writes nothing."""
        service.import_from_bytes(gl_csv_bytes(gl_row(voucher_no="V1")))

        second = gl_csv_bytes(
            gl_row(voucher_no="V2", transaction_date="20251101"),
            gl_row(voucher_no="V3", transaction_date="20251020"),
        )
        with pytest.raises(DuplicatePeriodError) as exc_info:
            service.import_from_bytes(second)

        assert exc_info.value.periods == ["2025-10"]
        assert exc_info.value.status_code == 409
        assert len(store.get_gl_entries_by_period("2025-10")) == 1
        assert store.get_gl_entries_by_period("2025-11") == []

    def test_file_with_only_skipped_rows_writes_nothing(
        self, service, store, gl_row, gl_csv_bytes
    ):
        result = service.import_from_bytes(gl_csv_bytes(gl_row(account_code="100")))
        assert result.imported_rows == 0
        assert store.get_stats()["gl_periods"] == 0

    def test_explicit_encoding_fails_loudly(self, service, gl_row, gl_csv_bytes):
        with pytest.raises(EncodingError):
            service.import_from_bytes(gl_csv_bytes(gl_row()), encoding="utf-8")

    def test_configured_encoding_is_used(self, store, temp_db, gl_row):
        config = Config(
            ingestion=IngestionConfig(gl_encoding="utf-8"),
            state_db_path=temp_db,
        )
        result = GLImportService(store, config).import_from_bytes(gl_row().encode("utf-8"))
        assert result.encoding == "UTF-8"
        assert result.imported_rows == 1

    def test_custom_allow_list(self, store, temp_db, gl_row):
        config = Config(
            ingestion=IngestionConfig(target_account_codes=("999",), gl_encoding="utf-8"),
            state_db_path=temp_db,
        )
        data = "\n".join([gl_row(account_code="999"), gl_row(account_code="511")]).encode("utf-8")
        result = GLImportService(store, config).import_from_bytes(data)
        assert result.imported_rows == 1
        assert result.skipped_rows == 1

    def test_import_from_file(self, service, tmp_path, gl_row, gl_csv_bytes):
        path = tmp_path / "gl.csv"
        path.write_bytes(gl_csv_bytes(gl_row()))
        assert service.import_from_file(path).imported_rows == 1
