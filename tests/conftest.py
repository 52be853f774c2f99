"""Test fixtures and utilities."""

from pathlib import Path

import pytest

from gl_reconcile.config import DEFAULT_TARGET_ACCOUNT_CODES, Config
from gl_reconcile.ingest.gl_csv import GLCSVParser
from gl_reconcile.state_store import NewOrderForecast, StateStore

GL_COLUMN_COUNT = 22


def build_gl_row(
    account_code: str = "511",
    account_name: str = "保守売上",
    transaction_date: str = "20251015",
    voucher_no: str = "V0001",
    description: str = "保守契約料",
    debit: str = "50000",
    credit: str = "",
) -> str:
    """One 22-column GL extract line."""
    cells = [""] * GL_COLUMN_COUNT
    cells[0] = account_code
    cells[1] = account_name
    cells[6] = transaction_date
    cells[7] = voucher_no
    cells[14] = description
    cells[17] = debit
    cells[19] = credit
    return ",".join(cells)


@pytest.fixture
def temp_db(tmp_path) -> Path:
    """Temporary database path."""
    return tmp_path / "test_state.db"


@pytest.fixture
def config(temp_db) -> Config:
    """Default configuration pointing at the temporary database."""
    return Config(state_db_path=temp_db)


@pytest.fixture
def store(temp_db) -> StateStore:
    """Fresh state store."""
    return StateStore(temp_db)


@pytest.fixture
def gl_row():
    """Factory for GL extract lines."""
    return build_gl_row


@pytest.fixture
def gl_csv_bytes():
    """Factory: GL lines -> Shift_JIS encoded file content."""

    def _encode(*rows: str, encoding: str = "cp932") -> bytes:
        return ("\r\n".join(rows) + "\r\n").encode(encoding)

    return _encode


@pytest.fixture
def add_forecast(store):
    """Factory inserting one forecast and returning the stored record."""

    def _add(
        accounting_period: str = "2025-10",
        accounting_item: str = "保守売上",
        description: str = "保守契約料",
        amount: str = "50000",
        project_code: str = "P-001",
    ):
        return store.create_order_forecast(
            NewOrderForecast(
                project_code=project_code,
                accounting_period=accounting_period,
                accounting_item=accounting_item,
                description=description,
                amount=amount,
            )
        )

    return _add


@pytest.fixture
def add_gl_entries(store, gl_row):
    """Factory inserting GL entries built from keyword dicts; returns the period's records."""
    parser = GLCSVParser(DEFAULT_TARGET_ACCOUNT_CODES)

    def _add(*rows: dict, reject_existing_periods: bool = False):
        text = "\n".join(gl_row(**row) for row in rows)
        parsed = parser.parse(text)
        assert not parsed.errors, parsed.errors
        store.insert_gl_entries(parsed.entries, reject_existing_periods=reject_existing_periods)
        periods = parsed.periods
        return [entry for period in periods for entry in store.get_gl_entries_by_period(period)]

    return _add
