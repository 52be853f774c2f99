"""Tests for the strict matching engine."""

import pytest

from gl_reconcile.matching import GLPool, MatchingEngine, strict_match_reasons
from gl_reconcile.state_store import (
    DebitCredit,
    GLEntryRecord,
    OrderForecastRecord,
    ReconciliationStatus,
)

STAMP = "2025-10-31T00:00:00.000000Z"


def make_order(
    id=1,
    accounting_period="2025-10",
    accounting_item="保守売上",
    description="保守契約料",
    amount="50000",
    status=ReconciliationStatus.UNMATCHED,
    is_excluded=False,
    gl_match_id=None,
):
    return OrderForecastRecord(
        id=id,
        project_id=None,
        project_code=f"P-{id:03d}",
        project_name=None,
        customer_id=None,
        customer_code=None,
        customer_name=None,
        accounting_period=accounting_period,
        accounting_item=accounting_item,
        description=description,
        amount=amount,
        remarks=None,
        period=accounting_period,
        reconciliation_status=status,
        gl_match_id=gl_match_id,
        is_excluded=is_excluded,
        exclusion_reason=None,
        version=1,
        created_at=STAMP,
        updated_at=STAMP,
    )


def make_gl(
    id=1,
    transaction_date="2025-10-15",
    account_name="保守売上",
    description="保守契約料",
    amount="50000",
    status=ReconciliationStatus.UNMATCHED,
    is_excluded=False,
    order_match_id=None,
):
    return GLEntryRecord(
        id=id,
        voucher_no=f"V{id:04d}",
        transaction_date=transaction_date,
        account_code="511",
        account_name=account_name,
        amount=amount,
        debit_credit=DebitCredit.DEBIT,
        description=description,
        period=transaction_date[:7],
        reconciliation_status=status,
        order_match_id=order_match_id,
        is_excluded=is_excluded,
        exclusion_reason=None,
        created_at=STAMP,
        updated_at=STAMP,
    )


class TestStrictMatchReasons:
    """The four checks."""

    def test_all_checks_pass(self):
        assert strict_match_reasons(make_order(), make_gl()) == [
            "same_month",
            "account_match",
            "description_match",
            "amount_exact",
        ]

    def test_different_month(self):
        assert strict_match_reasons(make_order(), make_gl(transaction_date="2025-11-01")) is None

    def test_account_name_compared_after_normalization(self):
        gl = make_gl(account_name="ﾎｼｭｳﾘｱｹﾞ")
        order = make_order(accounting_item="ホシュウリアゲ")
        assert strict_match_reasons(order, gl) is not None

    def test_different_account(self):
        assert strict_match_reasons(make_order(), make_gl(account_name="ソフト売上")) is None

    def test_description_width_and_spacing_ignored(self):
        order = make_order(description="ＳＥＲＶＥＲ　保守")
        gl = make_gl(description="server 保守")
        assert strict_match_reasons(order, gl) is not None

    def test_empty_descriptions_never_match(self):
        assert strict_match_reasons(make_order(description=""), make_gl(description="")) is None
        assert strict_match_reasons(make_order(description="　"), make_gl(description=" ")) is None

    def test_amounts_compared_as_decimals(self):
        assert strict_match_reasons(make_order(amount="50000.00"), make_gl(amount="50000"))

    def test_amount_has_no_tolerance(self):
        assert strict_match_reasons(make_order(amount="50001"), make_gl(amount="50000")) is None


class TestGLPool:
    def test_claim_keeps_order(self):
        pool = GLPool([make_gl(id=1), make_gl(id=2), make_gl(id=3)])
        pool.claim(1)
        assert [entry.id for _, entry in pool.available()] == [1, 3]
        assert len(pool) == 2

    def test_double_claim_is_an_error(self):
        pool = GLPool([make_gl(id=1)])
        pool.claim(0)
        with pytest.raises(KeyError):
            pool.claim(0)


class TestMatchingEngine:
    """One strict pass."""

    @pytest.fixture
    def engine(self):
        return MatchingEngine()

    def test_single_pair(self, engine):
        outcome = engine.match([make_order()], [make_gl()])

        assert len(outcome.matched) == 1
        match = outcome.matched[0]
        assert (match.order.id, match.gl_entry.id) == (1, 1)
        assert match.score == 100
        assert match.to_dict()["reasons"][-1] == "amount_exact"
        assert outcome.unmatched_orders == []
        assert outcome.unmatched_gl == []

    def test_gl_entry_used_at_most_once(self, engine):
        """Two identical forecasts, one GL entry: the first forecast wins."""
        orders = [make_order(id=1), make_order(id=2)]
        outcome = engine.match(orders, [make_gl(id=10)])

        assert [(m.order.id, m.gl_entry.id) for m in outcome.matched] == [(1, 10)]
        assert [o.id for o in outcome.unmatched_orders] == [2]

    def test_first_available_gl_entry_is_claimed(self, engine):
        gl = [make_gl(id=10), make_gl(id=11)]
        outcome = engine.match([make_order(id=1), make_order(id=2)], gl)

        assert [(m.order.id, m.gl_entry.id) for m in outcome.matched] == [(1, 10), (2, 11)]

    def test_unmatched_gl_keeps_load_order(self, engine):
        gl = [
            make_gl(id=10, amount="1"),
            make_gl(id=11),
            make_gl(id=12, amount="2"),
        ]
        outcome = engine.match([make_order()], gl)
        assert [entry.id for entry in outcome.unmatched_gl] == [10, 12]

    def test_excluded_and_matched_are_counted_not_evaluated(self, engine):
        orders = [
            make_order(id=1, is_excluded=True, status=ReconciliationStatus.EXCLUDED),
            make_order(id=2, status=ReconciliationStatus.MATCHED, gl_match_id=99),
            make_order(id=3),
        ]
        gl = [
            make_gl(id=10, is_excluded=True, status=ReconciliationStatus.EXCLUDED),
            make_gl(id=11, status=ReconciliationStatus.MATCHED, order_match_id=2),
            make_gl(id=12),
        ]
        outcome = engine.match(orders, gl)

        assert outcome.total_orders == 3
        assert outcome.total_gl == 3
        assert outcome.excluded_orders == 1
        assert outcome.excluded_gl == 1
        assert outcome.already_matched_orders == 1
        assert outcome.already_matched_gl == 1
        assert [(m.order.id, m.gl_entry.id) for m in outcome.matched] == [(3, 12)]

    def test_empty_inputs(self, engine):
        outcome = engine.match([], [])
        assert outcome.matched == []
        assert outcome.total_orders == 0

    def test_match_period_requires_store(self, engine):
        with pytest.raises(RuntimeError):
            engine.match_period("2025-10")

    def test_match_period_reads_store(self, store, add_forecast, add_gl_entries):
        add_forecast()
        add_gl_entries({})

        outcome = MatchingEngine(store).match_period("2025-10")

        assert len(outcome.matched) == 1
        # Matching alone never writes
        assert store.get_order_forecasts_by_period("2025-10")[0].is_reconcilable
