"""Tests for the reconciliation pass against an in-memory ledger."""

import logging
from datetime import date

import httpx
import pytest

from amazon_lunchmoney.core.errors import ConfigurationError
from amazon_lunchmoney.core.reconciler import Reconciler, select_payee_purchases
from amazon_lunchmoney.core.rules import DEFAULT_RULES, RuleTable
from amazon_lunchmoney.models.config import ReconcileSettings
from amazon_lunchmoney.models.results import ExternalSuggestion, TransactionState
from amazon_lunchmoney.models.schemas import CategorySuggestion, UpdateResponse
from tests.conftest import (
    FakeLedger,
    StubSuggester,
    default_categories,
    make_category,
    make_order,
    make_transaction,
    write_orders_csv,
)


@pytest.fixture
def orders_file(tmp_path):
    return write_orders_csv(tmp_path / "orders.csv", [
        make_order("A", "42.50", date(2024, 3, 8), categories="Toys & Games›Kids"),
        make_order("B", "42.50", date(2024, 3, 9), categories="Books›Fiction"),
        make_order("C", "19.99", date(2024, 3, 2), categories="Pet Supplies›Dogs", items="Dog food; "),
        make_order("D", "5.00", date(2024, 3, 3), categories="Grocery & Gourmet Food", to="Bob"),
    ])


def make_settings(orders_file, **overrides):
    values = {"orders_file": orders_file, "default_category": "Shopping"}
    values.update(overrides)
    return ReconcileSettings(**values)


async def run(ledger, orders_file, rules=DEFAULT_RULES, suggester=None, **settings):
    reconciler = Reconciler(ledger, make_settings(orders_file, **settings), rules=rules, suggester=suggester)
    return await reconciler.run()


def by_id(report):
    return {r.transaction_id: r for r in report.results}


class TestSelectPayeePurchases:
    def test_keeps_positive_amounts_from_payee(self):
        txns = [
            make_transaction(1, "10.00"),
            make_transaction(2, "-10.00"),
            make_transaction(3, "10.00", payee="Target"),
            make_transaction(4, "0"),
        ]
        assert [t.id for t in select_payee_purchases(txns, "Amazon")] == [1]


class TestReconcile:
    async def test_categorizes_closest_order_and_writes_note(self, orders_file):
        ledger = FakeLedger(transactions=[
            make_transaction(1, "42.50", date(2024, 3, 10), notes="birthday"),
        ])
        report = await run(ledger, orders_file)

        result = by_id(report)[1]
        assert result.state == TransactionState.APPLIED
        assert result.order_id == "B"
        assert ledger.updates[0][0] == 1
        update = ledger.updates[0][1]
        assert update.category_id == 5  # Books
        assert update.notes == "#B birthday"
        assert report.orders_remaining == 3

    async def test_fetch_order_and_window(self, orders_file):
        ledger = FakeLedger()
        await run(ledger, orders_file)
        assert ledger.calls == ["get_categories", "get_transactions"]
        assert ledger.requested_range == (date(2024, 2, 24), date(2024, 3, 16))

    async def test_each_order_binds_once(self, orders_file):
        ledger = FakeLedger(transactions=[
            make_transaction(1, "42.50", date(2024, 3, 10)),
            make_transaction(2, "42.50", date(2024, 3, 10)),
            make_transaction(3, "42.50", date(2024, 3, 10)),
        ])
        report = await run(ledger, orders_file)
        results = by_id(report)

        assert [results[i].order_id for i in (1, 2)] == ["B", "A"]
        assert results[3].state == TransactionState.NO_MATCH
        assert len(report.matched_order_ids) == len(set(report.matched_order_ids))

    async def test_already_categorized_is_left_alone(self, orders_file):
        ledger = FakeLedger(transactions=[
            make_transaction(1, "42.50", date(2024, 3, 10), category_id=4),  # Groceries
            make_transaction(2, "42.50", date(2024, 3, 10)),
        ])
        report = await run(ledger, orders_file)
        results = by_id(report)

        assert results[1].state == TransactionState.ALREADY_CATEGORIZED
        # the matched order is consumed even though nothing is written
        assert results[1].order_id == "B"
        assert results[2].order_id == "A"
        assert [u[0] for u in ledger.updates] == [2]

    async def test_group_transactions_are_skipped(self, orders_file):
        ledger = FakeLedger(transactions=[
            make_transaction(1, "42.50", date(2024, 3, 10), is_group=True),
            make_transaction(2, "19.99", date(2024, 3, 3), group_id=77),
        ])
        report = await run(ledger, orders_file)
        assert {r.state for r in report.results} == {TransactionState.GROUP_SKIP}
        assert ledger.updates == []

    async def test_gift_goes_to_gifts(self, orders_file):
        ledger = FakeLedger(transactions=[make_transaction(1, "5.00", date(2024, 3, 4))])
        report = await run(ledger, orders_file, owner_names=["Alice"])
        assert report.results[0].outcome.target_name == "Gifts"
        assert ledger.updates[0][1].category_id == 3

    async def test_unresolved_still_writes_note(self, orders_file):
        ledger = FakeLedger(transactions=[make_transaction(1, "19.99", date(2024, 3, 3))])
        report = await run(ledger, orders_file)

        assert report.results[0].state == TransactionState.APPLIED
        update = ledger.updates[0][1]
        assert update.category_id is None
        assert update.notes == "#C"

    async def test_rerun_does_not_rewrite_note(self, orders_file):
        ledger = FakeLedger(transactions=[make_transaction(1, "19.99", date(2024, 3, 3), notes="#C")])
        report = await run(ledger, orders_file)
        assert report.results[0].state == TransactionState.NOTHING_TO_APPLY
        assert ledger.updates == []

    async def test_rerun_with_rule_updates_category_only(self, orders_file):
        ledger = FakeLedger(transactions=[make_transaction(1, "42.50", date(2024, 3, 10), notes="#B")])
        await run(ledger, orders_file)
        update = ledger.updates[0][1]
        assert update.category_id == 5
        assert update.notes is None

    async def test_unknown_target_category_writes_note_only(self, orders_file):
        rules = RuleTable.from_pairs([("Books", "Reading")])
        ledger = FakeLedger(transactions=[make_transaction(1, "42.50", date(2024, 3, 10))])
        report = await run(ledger, orders_file, rules=rules)

        assert report.results[0].outcome.target_name == "Reading"
        assert ledger.updates[0][1].category_id is None
        assert ledger.updates[0][1].notes == "#B"

    async def test_suggestion_used_with_summary_in_note(self, orders_file):
        suggester = StubSuggester(CategorySuggestion(id=4, summary="dog food"))
        ledger = FakeLedger(transactions=[make_transaction(1, "19.99", date(2024, 3, 3))])
        report = await run(ledger, orders_file, suggester=suggester)

        assert report.results[0].outcome == ExternalSuggestion("Groceries", "dog food", category_id=4)
        assert ledger.updates[0][1].category_id == 4
        assert ledger.updates[0][1].notes == "#C. dog food"
        items, candidates = suggester.requests[0]
        assert items == "Dog food; "
        assert {c.name for c in candidates} == {"Shopping", "Kids", "Gifts", "Groceries", "Books"}

    async def test_dry_run_never_updates(self, orders_file):
        ledger = FakeLedger(transactions=[
            make_transaction(1, "42.50", date(2024, 3, 10)),
            make_transaction(2, "19.99", date(2024, 3, 3)),
        ])
        report = await run(ledger, orders_file, dry_run=True)

        assert report.dry_run is True
        assert {r.state for r in report.results} == {TransactionState.DRY_RUN}
        assert report.results[0].update.category_id == 5
        assert ledger.updates == []
        assert not any(c.startswith("update_transaction") for c in ledger.calls)

    async def test_failed_update_does_not_stop_batch(self, orders_file):
        ledger = FakeLedger(
            transactions=[
                make_transaction(1, "42.50", date(2024, 3, 10)),
                make_transaction(2, "19.99", date(2024, 3, 3)),
            ],
            fail_updates_for={1},
        )
        report = await run(ledger, orders_file)
        results = by_id(report)

        assert results[1].state == TransactionState.APPLY_FAILED
        assert results[1].error
        assert results[2].state == TransactionState.APPLIED

    @pytest.mark.parametrize("error", [
        httpx.ConnectError("connection reset"),
        httpx.RemoteProtocolError("peer closed connection"),
        ValueError("Expecting value: line 1 column 1 (char 0)"),
    ])
    async def test_transport_failure_on_update_does_not_stop_batch(self, orders_file, error):
        class FlakyLedger(FakeLedger):
            async def update_transaction(self, transaction_id, update) -> UpdateResponse:
                if transaction_id == 1:
                    raise error
                return await super().update_transaction(transaction_id, update)

        ledger = FlakyLedger(transactions=[
            make_transaction(1, "42.50", date(2024, 3, 10)),
            make_transaction(2, "19.99", date(2024, 3, 3)),
        ])
        report = await run(ledger, orders_file)
        results = by_id(report)

        assert results[1].state == TransactionState.APPLY_FAILED
        assert type(error).__name__ in results[1].error
        assert results[2].state == TransactionState.APPLIED
        assert [u[0] for u in ledger.updates] == [2]

    async def test_suggested_id_is_written_as_is(self, orders_file):
        categories = default_categories() + [make_category("Groceries", 9, archived=True)]
        suggester = StubSuggester(CategorySuggestion(id=4, summary="dog food"))
        ledger = FakeLedger(
            categories=categories,
            transactions=[make_transaction(1, "19.99", date(2024, 3, 3))],
        )
        await run(ledger, orders_file, suggester=suggester)
        assert ledger.updates[0][1].category_id == 4

    async def test_duplicate_rule_target_uses_first_active_category(self, orders_file):
        categories = [
            make_category("Shopping", 1),
            make_category("Books", 15, archived=True),
            make_category("Books", 5),
            make_category("Books", 25),
        ]
        ledger = FakeLedger(
            categories=categories,
            transactions=[make_transaction(1, "42.50", date(2024, 3, 10))],
        )
        await run(ledger, orders_file)
        assert ledger.updates[0][1].category_id == 5

    async def test_warns_about_rule_targets_missing_from_ledger(self, orders_file, caplog):
        rules = RuleTable.from_pairs([("Books", "Reading"), ("Toys", "Kids")])
        with caplog.at_level(logging.WARNING, logger="amazon_lunchmoney"):
            await run(FakeLedger(), orders_file, rules=rules, owner_names=["Alice"])

        warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
        assert "categories used by rules but missing in Lunch Money: Reading" in warnings

    async def test_refunds_and_other_payees_ignored(self, orders_file):
        ledger = FakeLedger(transactions=[
            make_transaction(1, "-42.50", date(2024, 3, 10)),
            make_transaction(2, "42.50", date(2024, 3, 10), payee="Target"),
        ])
        report = await run(ledger, orders_file)
        assert report.results == []
        assert report.orders_remaining == 4

    async def test_custom_payee(self, orders_file):
        ledger = FakeLedger(transactions=[
            make_transaction(1, "42.50", date(2024, 3, 10), payee="AMZN Mktp"),
        ])
        report = await run(ledger, orders_file, payee="AMZN Mktp")
        assert report.results[0].state == TransactionState.APPLIED


class TestConfigurationErrors:
    async def test_unknown_default_category(self, orders_file):
        ledger = FakeLedger()
        with pytest.raises(ConfigurationError, match="Default category Travel not found"):
            await run(ledger, orders_file, default_category="Travel")
        assert ledger.calls == ["get_categories"]

    async def test_missing_orders_file(self, tmp_path):
        ledger = FakeLedger()
        with pytest.raises(ConfigurationError, match="does not exist"):
            await run(ledger, tmp_path / "missing.csv")

    async def test_no_matchable_orders(self, tmp_path):
        path = write_orders_csv(tmp_path / "orders.csv", [
            make_order("A", "0", categories="Books"),
            make_order("B", "5.00", categories=""),
        ])
        ledger = FakeLedger()
        with pytest.raises(ConfigurationError, match="No matchable orders"):
            await run(ledger, path)
        assert "get_transactions" not in ledger.calls
