"""Lunch Money API client wrapper.

Async HTTP client for the Lunch Money REST API (https://dev.lunchmoney.app/v1).
Handles authentication, error handling and offset pagination of transactions.
"""

from collections.abc import AsyncIterator
from datetime import date
from typing import Any, Optional

import httpx

from amazon_lunchmoney.core.errors import LunchMoneyError
from amazon_lunchmoney.models.schemas import (
    Category,
    Transaction,
    TransactionUpdate,
    UpdateResponse,
)

BASE_URL = "https://dev.lunchmoney.app/v1"
DEFAULT_TIMEOUT = 30.0
PAGE_SIZE = 1000


def _error_detail(body: Any, fallback: str) -> str:
    """Pull a readable message out of a Lunch Money error body.

    The API is inconsistent: ``{"error": "..."}``, ``{"error": [...]}``,
    ``{"errors": [...]}`` and ``{"message": "..."}`` all occur.
    """
    if not isinstance(body, dict):
        return fallback
    for key in ("error", "errors", "message"):
        value = body.get(key)
        if not value:
            continue
        if isinstance(value, list):
            return "; ".join(str(v) for v in value)
        return str(value)
    return fallback


class LunchMoneyClient:
    """Async client for the Lunch Money API."""

    def __init__(self, api_token: str, page_size: int = PAGE_SIZE):
        self.api_token = api_token
        self.page_size = page_size
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=BASE_URL,
                headers={"Authorization": f"Bearer {self.api_token}"},
                timeout=DEFAULT_TIMEOUT,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "LunchMoneyClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json_data: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Make an authenticated request to the Lunch Money API."""
        try:
            response = await self.client.request(
                method=method,
                url=path,
                params=params,
                json=json_data,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            try:
                body = e.response.json() if e.response.content else {}
            except ValueError:
                body = {}
            raise LunchMoneyError(
                status_code=e.response.status_code,
                detail=_error_detail(body, str(e)),
            ) from e
        except httpx.TimeoutException as e:
            raise LunchMoneyError(
                status_code=408,
                detail="Request to Lunch Money API timed out. Please try again.",
            ) from e
        except httpx.TransportError as e:
            raise LunchMoneyError(
                status_code=503,
                detail=f"Cannot reach Lunch Money API: {e}",
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise LunchMoneyError(
                status_code=response.status_code,
                detail="Lunch Money API returned a response that is not JSON",
            ) from e
        # Some validation failures come back as 200 with an error payload.
        if isinstance(data, dict) and ("error" in data or "errors" in data):
            raise LunchMoneyError(
                status_code=response.status_code,
                detail=_error_detail(data, "unknown error"),
            )
        return data

    # --- Categories ---

    async def get_categories(self) -> list[Category]:
        """Get all categories, including category groups."""
        data = await self._request("GET", "/categories")
        return [Category(**c) for c in data.get("categories", [])]

    # --- Transactions ---

    async def iter_transaction_pages(
        self, start_date: date, end_date: date
    ) -> AsyncIterator[list[Transaction]]:
        """Yield pages of transactions in a date range, one request at a time.

        Each call starts again from offset 0.
        """
        offset = 0
        while True:
            data = await self._request(
                "GET",
                "/transactions",
                params={
                    "start_date": start_date.isoformat(),
                    "end_date": end_date.isoformat(),
                    "limit": self.page_size,
                    "offset": offset,
                },
            )
            yield [Transaction(**t) for t in data.get("transactions", [])]

            if not data.get("has_more"):
                break
            offset += self.page_size

    async def get_transactions(
        self, start_date: date, end_date: date
    ) -> list[Transaction]:
        """Get every transaction between two dates (inclusive)."""
        transactions: list[Transaction] = []
        async for page in self.iter_transaction_pages(start_date, end_date):
            transactions.extend(page)
        return transactions

    async def update_transaction(
        self, transaction_id: int, update: TransactionUpdate
    ) -> UpdateResponse:
        """Update category and/or notes on an existing transaction."""
        data = await self._request(
            "PUT",
            f"/transactions/{transaction_id}",
            json_data={"transaction": update.model_dump(exclude_none=True)},
        )
        return UpdateResponse(**data)
