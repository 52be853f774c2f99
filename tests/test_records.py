"""Tests for record maintenance."""

import pytest

from gl_reconcile.errors import ConflictError, NotFoundError, ValidationError
from gl_reconcile.services.records import RecordService
from gl_reconcile.state_store import ReconciliationStatus


@pytest.fixture
def records(store):
    return RecordService(store)


class TestCreateForecast:
    """Manual forecast entry."""

    def test_create(self, records):
        record = records.create_forecast(
            project_code=" P-100 ",
            accounting_period="2025-12",
            accounting_item="保守売上",
            description="保守契約料",
            amount="1,000",
            customer_name="Acme",
        )

        assert record.project_code == "P-100"
        assert record.period == "2025-12"
        assert record.amount == "1000"
        assert record.customer_name == "Acme"
        assert record.reconciliation_status == ReconciliationStatus.UNMATCHED

    def test_blank_required_field(self, records):
        with pytest.raises(ValidationError) as exc_info:
            records.create_forecast("P-1", "2025-12", "  ", "保守契約料", "100")
        assert exc_info.value.detail == {"fields": ["accounting_item"]}

    @pytest.mark.parametrize("amount", ["0", "-5", "abc"])
    def test_bad_amount(self, records, amount):
        with pytest.raises(ValidationError):
            records.create_forecast("P-1", "2025-12", "保守売上", "保守契約料", amount)

    def test_bad_period(self, records):
        with pytest.raises(ValidationError):
            records.create_forecast("P-1", "12/2025", "保守売上", "保守契約料", "100")

    def test_unknown_field(self, records):
        with pytest.raises(ValidationError):
            records.create_forecast("P-1", "2025-12", "保守売上", "保守契約料", "100", owner="x")


class TestLookupsAndDeletes:
    def test_missing_records(self, records):
        with pytest.raises(NotFoundError):
            records.get_forecast(1)
        with pytest.raises(NotFoundError):
            records.get_gl_entry(1)

    def test_matched_forecast_cannot_be_deleted(self, store, records, add_forecast, add_gl_entries):
        forecast = add_forecast()
        (entry,) = add_gl_entries({})
        store.link_pair(forecast.id, entry.id)

        with pytest.raises(ConflictError):
            records.delete_forecast(forecast.id)

        store.unlink_pair(forecast.id, entry.id)
        records.delete_forecast(forecast.id)
        assert store.get_order_forecast(forecast.id) is None

    def test_delete_gl_entry(self, store, records, add_gl_entries):
        (entry,) = add_gl_entries({})
        records.delete_gl_entry(entry.id)
        with pytest.raises(NotFoundError):
            records.delete_gl_entry(entry.id)

    def test_find_by_voucher(self, records, add_gl_entries):
        add_gl_entries({"voucher_no": "V-77"})
        assert [e.voucher_no for e in records.find_gl_by_voucher(" V-77 ")] == ["V-77"]

    def test_listing_helpers(self, store, records, add_forecast, add_gl_entries):
        forecast = add_forecast()
        add_forecast(project_code="P-002")
        (entry,) = add_gl_entries({})
        store.link_pair(forecast.id, entry.id)

        assert [f.id for f in records.list_matched_forecasts("2025-10")] == [forecast.id]
        assert len(records.list_unmatched_forecasts("2025-10")) == 1
        assert records.list_unmatched_gl_entries() == []
        assert [e.id for e in records.list_matched_gl_entries()] == [entry.id]

    def test_listing_rejects_bad_period(self, records):
        with pytest.raises(ValidationError):
            records.list_forecasts("2025-1")


class TestExclusion:
    def test_reason_is_trimmed(self, store, records, add_forecast):
        forecast = add_forecast()
        assert records.set_forecast_exclusion([forecast.id], True, "  duplicate  ") == 1
        assert store.get_order_forecast(forecast.id).exclusion_reason == "duplicate"

    def test_blank_reason_stored_as_none(self, store, records, add_gl_entries):
        (entry,) = add_gl_entries({})
        records.set_gl_exclusion([entry.id], True, "   ")
        assert store.get_gl_entry(entry.id).exclusion_reason is None


class TestStatistics:
    def test_gl_statistics(self, store, records, add_forecast, add_gl_entries):
        forecast = add_forecast()
        matched, credit, excluded = add_gl_entries(
            {},
            {"voucher_no": "V2", "debit": "", "credit": "300"},
            {"voucher_no": "V3", "debit": "20"},
        )
        store.link_pair(forecast.id, matched.id)
        store.set_gl_entry_exclusion([excluded.id], True)

        stats = records.gl_statistics("2025-10")

        assert stats["total_count"] == 3
        assert stats["matched_count"] == 1
        assert stats["unmatched_count"] == 1
        assert stats["excluded_count"] == 1
        assert stats["total_debit_amount"] == "50020"
        assert stats["total_credit_amount"] == "300"
        assert stats["matched_amount"] == "50000"

    def test_forecast_statistics(self, store, records, add_forecast, add_gl_entries):
        forecast = add_forecast()
        add_forecast(amount="12.5")
        (entry,) = add_gl_entries({})
        store.link_pair(forecast.id, entry.id)

        stats = records.forecast_statistics("2025-10")

        assert stats["total_count"] == 2
        assert stats["matched_count"] == 1
        assert stats["total_amount"] == "50012.5"
        assert stats["matched_amount"] == "50000"
