"""Reconcile Amazon orders with Lunch Money transactions.

Drives a single sequential pass: load categories and orders, fetch the
Lunch Money transactions around the order dates, then match, categorize,
annotate and update one transaction at a time. Configuration problems
raise :class:`ConfigurationError` before anything is written; per
transaction failures are logged and the pass continues.
"""

import logging
from collections.abc import Sequence
from typing import Optional

import httpx

from amazon_lunchmoney.core.categorizer import Categorizer
from amazon_lunchmoney.core.errors import ApplyError, ConfigurationError, LunchMoneyError
from amazon_lunchmoney.core.matcher import OrderPool, find_matching_order
from amazon_lunchmoney.core.notes import compose_note
from amazon_lunchmoney.core.orders import (
    filter_matchable_orders,
    order_date_window,
    read_orders,
)
from amazon_lunchmoney.core.protocols import CategorySuggester, LedgerGateway
from amazon_lunchmoney.core.resolvers import (
    ResolverError,
    assignable_category_ids,
    resolve_category,
    suggestable_categories,
)
from amazon_lunchmoney.core.rules import DEFAULT_RULES, RuleTable
from amazon_lunchmoney.models.config import ReconcileSettings
from amazon_lunchmoney.models.results import (
    GIFT_CATEGORY_NAME,
    ExternalSuggestion,
    ReconcileReport,
    TransactionResult,
    TransactionState,
    Unresolved,
)
from amazon_lunchmoney.models.schemas import Category, Transaction, TransactionUpdate

logger = logging.getLogger(__name__)


def select_payee_purchases(
    transactions: Sequence[Transaction], payee: str
) -> list[Transaction]:
    """Transactions from *payee* that are charges, not refunds."""
    return [t for t in transactions if t.payee == payee and t.amount > 0]


class Reconciler:
    """One reconciliation run against a ledger."""

    def __init__(
        self,
        ledger: LedgerGateway,
        settings: ReconcileSettings,
        rules: RuleTable = DEFAULT_RULES,
        suggester: Optional[CategorySuggester] = None,
    ):
        self.ledger = ledger
        self.settings = settings
        self.rules = rules
        self.suggester = suggester

    async def run(self) -> ReconcileReport:
        categories = await self.ledger.get_categories()
        default_category_id = self._default_category_id(categories)
        logger.debug("default category match found: %s", default_category_id)

        all_orders = read_orders(self.settings.orders_file)
        orders = filter_matchable_orders(all_orders)
        logger.info(
            "Amazon orders we can match: %d (out of %d)", len(orders), len(all_orders)
        )
        if not orders:
            raise ConfigurationError(
                f"No matchable orders in {self.settings.orders_file}"
            )

        start_date, end_date = order_date_window(orders, self.settings.date_window_days)
        logger.info("matching transactions from %s to %s", start_date, end_date)

        all_transactions = await self.ledger.get_transactions(start_date, end_date)
        purchases = select_payee_purchases(all_transactions, self.settings.payee)
        pending = [t for t in purchases if t.category_id == default_category_id]
        logger.info(
            "Lunch Money transactions we can match: %d (out of %d)",
            len(pending), len(all_transactions),
        )

        categorizer = Categorizer.build(
            self.rules,
            owner_names=self.settings.owner_names,
            suggester=self.suggester,
            categories=suggestable_categories(categories),
        )
        category_ids = assignable_category_ids(categories)
        self._warn_missing_targets(category_ids)
        pool = OrderPool(orders)

        report = ReconcileReport(
            orders_considered=len(orders),
            transactions_considered=len(purchases),
            dry_run=self.settings.dry_run,
        )
        for transaction in purchases:
            result = await self._process(
                transaction, pool, categorizer, default_category_id, category_ids
            )
            report.results.append(result)

        report.orders_remaining = len(pool)
        logger.info("remaining unmatched Amazon orders: %d", len(pool))
        return report

    def _default_category_id(self, categories: Sequence[Category]) -> int:
        try:
            return resolve_category(categories, self.settings.default_category).id
        except ResolverError as e:
            raise ConfigurationError(
                f"Default category {self.settings.default_category} not found"
            ) from e

    def _warn_missing_targets(self, category_ids: dict[str, int]) -> None:
        targets = self.rules.target_names()
        if self.settings.owner_names:
            targets.add(GIFT_CATEGORY_NAME)
        missing = sorted(targets - category_ids.keys())
        logger.debug("rule table has %d rules", len(self.rules))
        if missing:
            logger.warning(
                "categories used by rules but missing in Lunch Money: %s", ", ".join(missing)
            )

    async def _process(
        self,
        transaction: Transaction,
        pool: OrderPool,
        categorizer: Categorizer,
        default_category_id: int,
        category_ids: dict[str, int],
    ) -> TransactionResult:
        order = find_matching_order(transaction, pool)
        if order is None:
            logger.warning(
                "no match\t%s\t%s\t%s\t%s\t%s",
                transaction.id, transaction.amount, transaction.payee,
                transaction.notes, transaction.date,
            )
            return TransactionResult(transaction.id, TransactionState.NO_MATCH)

        if transaction.category_id != default_category_id:
            logger.debug("already categorized, but matched %s. Skipping", order.order_id)
            return TransactionResult(
                transaction.id, TransactionState.ALREADY_CATEGORIZED, order.order_id
            )

        if transaction.is_split_or_grouped:
            logger.debug("split or grouped transaction %s. Skipping", transaction.id)
            return TransactionResult(
                transaction.id, TransactionState.GROUP_SKIP, order.order_id
            )

        outcome = await categorizer.categorize(order)
        if isinstance(outcome, Unresolved):
            logger.info("no rule\t%s\t%s", transaction.id, order.categories)

        category_id = None
        if isinstance(outcome, ExternalSuggestion):
            category_id = outcome.category_id
        elif outcome.target_name is not None:
            category_id = category_ids.get(outcome.target_name)
            if category_id is None:
                logger.error("invalid category name %s", outcome.target_name)

        logger.debug(
            "match\t%s : %s : %s : %s : %s",
            order.date, transaction.date, transaction.amount, order.total, transaction.id,
        )

        note = compose_note(transaction.notes, order.order_id, outcome.summary)
        update = TransactionUpdate(
            category_id=category_id,
            notes=note.text if note.should_write else None,
        )
        result = TransactionResult(
            transaction.id, TransactionState.NOTHING_TO_APPLY, order.order_id, outcome, update
        )
        if update.is_empty:
            logger.debug("nothing to update on transaction %s", transaction.id)
            return result

        logger.info("updating transaction %s", transaction.id)
        logger.debug("content of update %s", update.model_dump(exclude_none=True))

        if self.settings.dry_run:
            result.state = TransactionState.DRY_RUN
            return result

        try:
            await self._apply(transaction.id, update)
        except ApplyError as e:
            logger.error("%s", e)
            result.state = TransactionState.APPLY_FAILED
            result.error = e.detail
        else:
            result.state = TransactionState.APPLIED
        return result

    async def _apply(self, transaction_id: int, update: TransactionUpdate) -> None:
        try:
            response = await self.ledger.update_transaction(transaction_id, update)
        except LunchMoneyError as e:
            raise ApplyError(transaction_id, e.detail) from e
        except (httpx.HTTPError, ValueError) as e:
            # ValueError covers undecodable bodies and pydantic ValidationError
            raise ApplyError(transaction_id, f"{type(e).__name__}: {e}") from e
        if not response.updated:
            raise ApplyError(transaction_id, "update was not applied")
