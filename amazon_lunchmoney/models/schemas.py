"""Pydantic models for Lunch Money API data and Amazon order history rows."""

import datetime
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_NOTE_LENGTH = 350

_CURRENCY_CHARS = re.compile(r"[$,\s]")


def parse_money(value: Any) -> Decimal:
    """Parse an amount that may carry a currency symbol or thousands separators.

    Blank values parse as zero, since the Amazon export leaves unused
    sub-amounts empty.
    """
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    text = _CURRENCY_CHARS.sub("", str(value))
    if not text:
        return Decimal("0")
    try:
        return Decimal(text)
    except InvalidOperation as e:
        raise ValueError(f"not a monetary amount: {value!r}") from e


# --- Lunch Money response models ---

class Category(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    description: Optional[str] = None
    is_income: bool = False
    exclude_from_budget: bool = False
    exclude_from_totals: bool = False
    archived: bool = False
    is_group: bool = False
    group_id: Optional[int] = None


class Transaction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    date: datetime.date
    payee: str = ""
    amount: Decimal  # positive for expenses, negative for credits
    currency: Optional[str] = None
    category_id: Optional[int] = None
    notes: Optional[str] = None
    status: Optional[str] = None
    is_group: bool = False
    group_id: Optional[int] = None
    parent_id: Optional[int] = None

    @field_validator("payee", mode="before")
    @classmethod
    def _none_payee(cls, v):
        return v or ""

    @property
    def is_split_or_grouped(self) -> bool:
        return self.is_group or self.group_id is not None


class UpdateResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    updated: bool = False
    split: Optional[list[int]] = None


# --- Input models ---

class TransactionUpdate(BaseModel):
    """Fields written back to a Lunch Money transaction."""
    model_config = ConfigDict(str_strip_whitespace=True)

    category_id: Optional[int] = Field(None, description="New category ID")
    notes: Optional[str] = Field(None, description="Transaction notes", max_length=MAX_NOTE_LENGTH)

    @property
    def is_empty(self) -> bool:
        return self.category_id is None and self.notes is None


# --- Amazon order history ---

class AmazonOrder(BaseModel):
    """One row of an Amazon order history export.

    Field names follow the normalized CSV headers (whitespace stripped,
    lowercased), so ``"Order ID"`` arrives as ``orderid``.
    """
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    order_id: str = Field(..., alias="orderid")
    items: str = ""
    categories: str = ""
    to: str = ""
    date: datetime.date
    total: Decimal
    shipping: Decimal = Decimal("0")
    shipping_refund: Decimal = Decimal("0")
    gift: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    refund: Decimal = Decimal("0")
    payments: str = ""

    @field_validator("total", "shipping", "shipping_refund", "gift", "tax", "refund", mode="before")
    @classmethod
    def _money(cls, v):
        return parse_money(v)

    @field_validator("items", "categories", "to", "payments", mode="before")
    @classmethod
    def _none_text(cls, v):
        return "" if v is None else v


# --- External categorizer contract ---

class CategorySuggestion(BaseModel):
    """Response expected from the external category suggester."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    summary: str = ""
