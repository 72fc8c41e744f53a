"""Result dataclasses for categorization and reconciliation outputs.

These are internal types consumed by the reconciler and CLI formatters:
lightweight dataclasses rather than Pydantic models since they don't need
validation.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from amazon_lunchmoney.models.schemas import TransactionUpdate

GIFT_CATEGORY_NAME = "Gifts"


# --- Categorization outcomes ---

@dataclass(frozen=True)
class Gift:
    """Order was bought for someone other than the account owners."""
    target_name: str = GIFT_CATEGORY_NAME
    summary: Optional[str] = None


@dataclass(frozen=True)
class RuleMatch:
    """A rule table prefix matched the order's category path."""
    target_name: str
    prefix: str = ""
    summary: Optional[str] = None


@dataclass(frozen=True)
class ExternalSuggestion:
    """The external suggester answered.

    category_id is the id the suggester picked; it and target_name are None
    when that id was not eligible.
    """
    target_name: Optional[str]
    summary: str = ""
    category_id: Optional[int] = None


@dataclass(frozen=True)
class Unresolved:
    target_name: None = None
    summary: None = None


CategorizationOutcome = Union[Gift, RuleMatch, ExternalSuggestion, Unresolved]


@dataclass(frozen=True)
class ComposedNote:
    text: str
    should_write: bool


# --- Reconciliation ---

class TransactionState(str, Enum):
    NO_MATCH = "no_match"
    ALREADY_CATEGORIZED = "already_categorized"
    GROUP_SKIP = "group_skip"
    NOTHING_TO_APPLY = "nothing_to_apply"
    DRY_RUN = "dry_run"
    APPLIED = "applied"
    APPLY_FAILED = "apply_failed"


@dataclass
class TransactionResult:
    """Terminal state reached by one Lunch Money transaction."""
    transaction_id: int
    state: TransactionState
    order_id: str | None = None
    outcome: CategorizationOutcome | None = None
    update: TransactionUpdate | None = None
    error: str | None = None


@dataclass
class ReconcileReport:
    """Everything a single reconciliation pass did."""
    results: list[TransactionResult] = field(default_factory=list)
    orders_considered: int = 0
    transactions_considered: int = 0
    orders_remaining: int = 0
    dry_run: bool = False

    def count(self, state: TransactionState) -> int:
        return sum(1 for r in self.results if r.state == state)

    @property
    def state_counts(self) -> dict[TransactionState, int]:
        return dict(Counter(r.state for r in self.results))

    @property
    def matched_order_ids(self) -> list[str]:
        return [r.order_id for r in self.results if r.order_id]
