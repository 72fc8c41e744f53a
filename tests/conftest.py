"""Shared test fixtures for amazon-lunchmoney tests."""

import csv
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Optional

import pytest

from amazon_lunchmoney.models.schemas import (
    AmazonOrder,
    Category,
    CategorySuggestion,
    Transaction,
    TransactionUpdate,
    UpdateResponse,
)

ORDER_CSV_HEADERS = [
    "order id", "items", "categories", "to", "date", "total", "shipping",
    "shipping_refund", "gift", "tax", "refund", "payments",
]


def make_order(
    order_id: str = "111-0000001-0000001",
    total: str = "42.50",
    order_date: date = date(2024, 3, 8),
    categories: str = "Toys & Games›Kids",
    items: str = "Wooden puzzle; ",
    to: str = "",
    payments: str | None = None,
) -> AmazonOrder:
    if payments is None:
        payments = f"{order_date.isoformat()}: ${total}; "
    return AmazonOrder(
        order_id=order_id,
        items=items,
        categories=categories,
        to=to,
        date=order_date,
        total=total,
        payments=payments,
    )


def make_transaction(
    id: int = 1001,
    amount: str = "42.5000",
    txn_date: date = date(2024, 3, 10),
    payee: str = "Amazon",
    category_id: Optional[int] = 1,
    notes: Optional[str] = None,
    is_group: bool = False,
    group_id: Optional[int] = None,
) -> Transaction:
    return Transaction(
        id=id,
        date=txn_date,
        payee=payee,
        amount=Decimal(amount),
        currency="usd",
        category_id=category_id,
        notes=notes,
        is_group=is_group,
        group_id=group_id,
    )


def make_category(
    name: str = "Shopping",
    id: int = 1,
    description: str | None = None,
    is_income: bool = False,
    archived: bool = False,
    exclude_from_budget: bool = False,
    is_group: bool = False,
) -> Category:
    return Category(
        id=id,
        name=name,
        description=description,
        is_income=is_income,
        archived=archived,
        exclude_from_budget=exclude_from_budget,
        is_group=is_group,
    )


def default_categories() -> list[Category]:
    return [
        make_category("Shopping", 1),
        make_category("Kids", 2),
        make_category("Gifts", 3),
        make_category("Groceries", 4),
        make_category("Books", 5),
        make_category("Salary", 6, is_income=True),
        make_category("Household", 7, is_group=True),
    ]


def write_orders_csv(path: Path, orders: list[AmazonOrder]) -> Path:
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(ORDER_CSV_HEADERS)
        for o in orders:
            writer.writerow([
                o.order_id, o.items, o.categories, o.to, o.date.isoformat(),
                str(o.total), "0", "0", "0", "0", "0", o.payments,
            ])
    return path


class FakeLedger:
    """In-memory ledger implementing the LedgerGateway protocol."""

    def __init__(
        self,
        categories: list[Category] | None = None,
        transactions: list[Transaction] | None = None,
        fail_updates_for: set[int] | None = None,
    ):
        self.categories = categories if categories is not None else default_categories()
        self.transactions = transactions or []
        self.fail_updates_for = fail_updates_for or set()
        self.calls: list[str] = []
        self.updates: list[tuple[int, TransactionUpdate]] = []
        self.requested_range: tuple[date, date] | None = None

    async def get_categories(self) -> list[Category]:
        self.calls.append("get_categories")
        return list(self.categories)

    async def get_transactions(self, start_date: date, end_date: date) -> list[Transaction]:
        self.calls.append("get_transactions")
        self.requested_range = (start_date, end_date)
        return [t for t in self.transactions if start_date <= t.date <= end_date]

    async def update_transaction(
        self, transaction_id: int, update: TransactionUpdate
    ) -> UpdateResponse:
        self.calls.append(f"update_transaction:{transaction_id}")
        self.updates.append((transaction_id, update))
        return UpdateResponse(updated=transaction_id not in self.fail_updates_for)


class StubSuggester:
    """Returns canned suggestions and records what it was asked."""

    def __init__(self, suggestion: CategorySuggestion | None):
        self.suggestion = suggestion
        self.requests: list[tuple[str, list[Category]]] = []

    async def suggest(self, items_text, categories):
        self.requests.append((items_text, list(categories)))
        return self.suggestion


@pytest.fixture
def fake_ledger():
    return FakeLedger()
