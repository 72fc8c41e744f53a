"""Greedy one-to-one matching of Lunch Money transactions to Amazon orders.

Amount is the only reliable key: card charge dates can trail the order date
by days, so orders are first filtered by amount and only then ranked by how
close their date is. A matched order leaves the pool for good.
"""

import logging
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from amazon_lunchmoney.models.schemas import AmazonOrder, Transaction

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")


def normalize_amount(amount: Decimal) -> str:
    """Format an amount with exactly two decimals, as the payments column does."""
    return str(amount.quantize(_CENTS, rounding=ROUND_HALF_UP))


def is_candidate(order: AmazonOrder, amount: Decimal, normalized: str) -> bool:
    # Orders charged in several payments list each charge in the payments column.
    return order.total == amount or normalized in order.payments


class OrderPool:
    """Orders still available for matching.

    Owns its list; :meth:`take` is the only way an order leaves it.
    """

    def __init__(self, orders: Iterable[AmazonOrder]):
        self._orders: list[AmazonOrder] = list(orders)

    def __len__(self) -> int:
        return len(self._orders)

    def __contains__(self, order_id: object) -> bool:
        return any(o.order_id == order_id for o in self._orders)

    def candidates(self, transaction: Transaction) -> list[AmazonOrder]:
        """Orders whose amount could account for *transaction*, in pool order."""
        normalized = normalize_amount(transaction.amount)
        return [o for o in self._orders if is_candidate(o, transaction.amount, normalized)]

    def take(self, order: AmazonOrder) -> AmazonOrder:
        for idx, existing in enumerate(self._orders):
            if existing.order_id == order.order_id:
                return self._orders.pop(idx)
        raise KeyError(order.order_id)


def find_matching_order(
    transaction: Transaction, pool: OrderPool
) -> Optional[AmazonOrder]:
    """Match *transaction* to the closest-dated order of the same amount.

    Ties on date distance keep pool order. The chosen order is removed from
    *pool*; ``None`` leaves the pool untouched.
    """
    possible = pool.candidates(transaction)
    if not possible:
        return None

    # sorted() is stable, so equally distant orders keep their pool order
    possible = sorted(possible, key=lambda o: abs((transaction.date - o.date).days))
    match = possible[0]

    logger.debug("removing match %s", match.order_id)
    return pool.take(match)
