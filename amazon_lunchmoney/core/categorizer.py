"""Category assignment for matched Amazon orders.

Strategies are tried in order and the first one with an answer wins:
gift detection, then the prefix rule table, then (optionally) an external
suggester. An order nobody can place is :class:`Unresolved`.
"""

import logging
from collections.abc import Iterable, Sequence
from typing import Optional, Protocol

from amazon_lunchmoney.core.protocols import CategorySuggester
from amazon_lunchmoney.core.rules import RuleTable
from amazon_lunchmoney.models.results import (
    CategorizationOutcome,
    ExternalSuggestion,
    Gift,
    RuleMatch,
    Unresolved,
)
from amazon_lunchmoney.models.schemas import AmazonOrder, Category

logger = logging.getLogger(__name__)

# Order history scrapers write "0" when the recipient is unknown.
_UNKNOWN_RECIPIENTS = {"", "0"}


def is_gift(order: AmazonOrder, owner_names: Iterable[str]) -> bool:
    """True when the order shipped to someone other than the account owners."""
    owners = {name.strip().casefold() for name in owner_names if name and name.strip()}
    recipient = (order.to or "").strip()
    if not owners or recipient in _UNKNOWN_RECIPIENTS:
        return False
    return recipient.casefold() not in owners


class CategorizationStrategy(Protocol):
    async def categorize(self, order: AmazonOrder) -> Optional[CategorizationOutcome]:
        ...


class GiftStrategy:
    def __init__(self, owner_names: Sequence[str]):
        self.owner_names = tuple(owner_names)

    async def categorize(self, order: AmazonOrder) -> Optional[CategorizationOutcome]:
        if is_gift(order, self.owner_names):
            logger.debug("identified gift %s for %r", order.order_id, order.to)
            return Gift()
        return None


class RuleTableStrategy:
    def __init__(self, table: RuleTable):
        self.table = table

    async def categorize(self, order: AmazonOrder) -> Optional[CategorizationOutcome]:
        hit = self.table.match(order.categories)
        if hit is None:
            return None
        prefix, target = hit
        return RuleMatch(target_name=target, prefix=prefix)


class SuggestionStrategy:
    """Ask an external suggester, restricted to *categories*."""

    def __init__(self, suggester: CategorySuggester, categories: Sequence[Category]):
        self.suggester = suggester
        self.categories = list(categories)
        self._by_id = {c.id: c for c in self.categories}

    async def categorize(self, order: AmazonOrder) -> Optional[CategorizationOutcome]:
        suggestion = await self.suggester.suggest(order.items, self.categories)
        if suggestion is None:
            return None

        summary = suggestion.summary.strip()
        picked = self._by_id.get(suggestion.id) if suggestion.id is not None else None
        if picked is None:
            logger.info(
                "suggested category %s for %s is not eligible", suggestion.id, order.order_id
            )
            return ExternalSuggestion(target_name=None, summary=summary)
        return ExternalSuggestion(
            target_name=picked.name, summary=summary, category_id=picked.id
        )


class Categorizer:
    """Runs categorization strategies in precedence order."""

    def __init__(self, strategies: Sequence[CategorizationStrategy]):
        self.strategies = list(strategies)

    @classmethod
    def build(
        cls,
        table: RuleTable,
        owner_names: Sequence[str] = (),
        suggester: Optional[CategorySuggester] = None,
        categories: Sequence[Category] = (),
    ) -> "Categorizer":
        strategies: list[CategorizationStrategy] = [
            GiftStrategy(owner_names),
            RuleTableStrategy(table),
        ]
        if suggester is not None:
            strategies.append(SuggestionStrategy(suggester, categories))
        return cls(strategies)

    async def categorize(self, order: AmazonOrder) -> CategorizationOutcome:
        for strategy in self.strategies:
            outcome = await strategy.categorize(order)
            if outcome is not None:
                return outcome
        return Unresolved()
