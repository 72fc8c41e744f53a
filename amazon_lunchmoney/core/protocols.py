"""Protocol definitions for the collaborators the reconciler talks to.

The Lunch Money client and the OpenAI suggester satisfy these; tests use
in-memory stand-ins implementing the same methods.
"""

from collections.abc import Sequence
from datetime import date
from typing import Optional, Protocol

from amazon_lunchmoney.models.schemas import (
    Category,
    CategorySuggestion,
    Transaction,
    TransactionUpdate,
    UpdateResponse,
)


class LedgerGateway(Protocol):
    """Read and update transactions in the ledger."""

    async def get_categories(self) -> list[Category]:
        """Fetch all categories."""
        ...

    async def get_transactions(self, start_date: date, end_date: date) -> list[Transaction]:
        """Fetch every transaction in the date range."""
        ...

    async def update_transaction(
        self, transaction_id: int, update: TransactionUpdate
    ) -> UpdateResponse:
        """Write category and/or notes to a transaction."""
        ...


class CategorySuggester(Protocol):
    """Suggest a category for free-text item descriptions."""

    async def suggest(
        self, items_text: str, categories: Sequence[Category]
    ) -> Optional[CategorySuggestion]:
        """Return a suggestion, or None when the response could not be used."""
        ...
