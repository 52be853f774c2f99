"""Tests for forecast bulk loads."""

import pytest

from gl_reconcile.errors import ValidationError
from gl_reconcile.ingest.forecast_csv import parse_forecast_csv, parse_forecast_row
from gl_reconcile.services.imports import ForecastImportService
from gl_reconcile.state_store import ReconciliationStatus


class TestParseForecastRow:
    def test_valid_row(self):
        forecast = parse_forecast_row(["P-001", "保守売上", "2025-10", "保守契約料", "50,000"])

        assert forecast.project_code == "P-001"
        assert forecast.accounting_item == "保守売上"
        assert forecast.period == "2025-10"
        assert forecast.amount == "50000"

    def test_missing_field(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_forecast_row(["P-001", "", "2025-10", "保守契約料", "100"])
        assert exc_info.value.detail == {"fields": ["accounting_item"]}

    def test_short_row_reports_missing_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_forecast_row(["P-001", "保守売上", "2025-10"])
        assert exc_info.value.detail == {"fields": ["description", "amount"]}

    @pytest.mark.parametrize("period", ["2025/10", "202510", "2025-1", "2025-13"])
    def test_bad_period(self, period):
        with pytest.raises(ValidationError):
            parse_forecast_row(["P-001", "保守売上", period, "保守契約料", "100"])

    @pytest.mark.parametrize("amount", ["0", "-100", "abc"])
    def test_amount_must_be_positive_number(self, amount):
        with pytest.raises(ValidationError):
            parse_forecast_row(["P-001", "保守売上", "2025-10", "保守契約料", amount])


class TestParseForecastCSV:
    def test_bad_rows_are_skipped_and_reported(self):
        text = "\n".join(
            [
                "P-001,保守売上,2025-10,保守契約料,50000",
                "P-002,保守売上,2025-10,保守契約料,0",
                "",
                '"P-003",ソフト売上,2025-11,"ライセンス, 年額","1,200,000"',
            ]
        )
        result = parse_forecast_csv(text)

        assert result.total_rows == 3
        assert result.imported_rows == 2
        assert result.skipped_rows == 1
        assert result.errors[0].row == 2
        assert result.forecasts[1].description == "ライセンス, 年額"
        assert result.forecasts[1].amount == "1200000"


class TestForecastImportService:
    """Decode + parse + insert."""

    @pytest.fixture
    def service(self, store, config):
        return ForecastImportService(store, config)

    def test_utf8_with_bom(self, service, store):
        data = "\ufeffP-001,保守売上,2025-10,保守契約料,50000\r\n".encode("utf-8")

        result = service.import_from_bytes(data)

        assert result.encoding == "UTF-8"
        assert result.imported_rows == 1
        assert result.periods == ["2025-10"]
        stored = store.get_order_forecasts_by_period("2025-10")
        assert len(stored) == 1
        assert stored[0].project_code == "P-001"
        assert stored[0].reconciliation_status == ReconciliationStatus.UNMATCHED
        assert stored[0].version == 1

    def test_shift_jis_fallback(self, service, store):
        data = "P-001,保守売上,2025-10,保守契約料,50000\r\n".encode("cp932")
        result = service.import_from_bytes(data)
        assert result.encoding == "Shift_JIS"
        assert store.get_order_forecasts_by_period("2025-10")[0].accounting_item == "保守売上"

    def test_repeated_loads_append(self, service, store):
        """Forecasts have no duplicate-period rule."""
        data = "P-001,保守売上,2025-10,保守契約料,50000\n".encode("utf-8")
        service.import_from_bytes(data)
        service.import_from_bytes(data)
        assert len(store.get_order_forecasts_by_period("2025-10")) == 2

    def test_errors_in_result_dict(self, service):
        result = service.import_from_bytes("P-001,保守売上,2025-10,,50000\n".encode("utf-8"))
        payload = result.to_dict()
        assert payload["imported_rows"] == 0
        assert payload["skipped_rows"] == 1
        assert payload["errors"][0]["row"] == 1
