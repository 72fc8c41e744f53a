"""Amazon order history loading.

Reads the CSV produced by Amazon order-history exporters and turns each row
into an :class:`AmazonOrder`. Header tokens have their whitespace removed and
are lowercased, so ``"Order ID"`` and ``"orderid"`` both land on the same
field.
"""

import csv
import logging
import re
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from pathlib import Path

from pydantic import ValidationError

from amazon_lunchmoney.core.errors import ConfigurationError
from amazon_lunchmoney.models.schemas import AmazonOrder

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s")


def normalize_header(header: str) -> str:
    return _WHITESPACE.sub("", header).lower()


def parse_orders(rows: Iterable[dict[str, str]]) -> list[AmazonOrder]:
    """Build orders from CSV rows, skipping rows that cannot be parsed."""
    orders: list[AmazonOrder] = []
    for line_no, row in enumerate(rows, start=2):
        if not any((v or "").strip() for v in row.values() if isinstance(v, str)):
            continue
        normalized = {normalize_header(k): v for k, v in row.items() if k is not None}
        try:
            orders.append(AmazonOrder(**normalized))
        except ValidationError as e:
            logger.warning(
                "skipping unreadable order row %d (%s): %d validation error(s)",
                line_no, normalized.get("orderid", "?"), e.error_count(),
            )
    return orders


def read_orders(path: Path) -> list[AmazonOrder]:
    """Read every order in an Amazon order history CSV file."""
    if not path.is_file():
        raise ConfigurationError(f"File {path} does not exist")

    try:
        with path.open(encoding="utf-8-sig", newline="") as f:
            return parse_orders(csv.DictReader(f))
    except (OSError, csv.Error) as e:
        raise ConfigurationError(f"Could not read {path}: {e}") from e


def filter_matchable_orders(orders: Sequence[AmazonOrder]) -> list[AmazonOrder]:
    """Drop orders that can never match a card charge.

    Zero-total orders were paid with gift card balance, and orders without a
    category path are digital or cancelled purchases the exporter could not
    classify.
    """
    return [o for o in orders if o.total != 0 and o.categories]


def order_date_window(
    orders: Sequence[AmazonOrder], padding_days: int
) -> tuple[date, date]:
    """Date range covering every order, widened by *padding_days* on both ends."""
    if not orders:
        raise ConfigurationError("No dates found in order history")
    dates = [o.date for o in orders]
    padding = timedelta(days=padding_days)
    return min(dates) - padding, max(dates) + padding
