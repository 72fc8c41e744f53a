"""Entity resolution helpers for Lunch Money categories.

Pure functions that resolve category names to Lunch Money category objects.
No I/O; they operate on already-fetched data.
"""

from __future__ import annotations

from collections.abc import Sequence

from amazon_lunchmoney.models.schemas import Category


class ResolverError(Exception):
    """Raised when a category cannot be resolved by name."""

    def __init__(
        self,
        entity_type: str,
        query: str,
        available: list[str] | None = None,
    ):
        self.entity_type = entity_type
        self.query = query
        self.available = available or []
        detail = f"No {entity_type} found matching '{query}'."
        if self.available:
            detail += f" Available: {', '.join(self.available)}"
        super().__init__(detail)


def resolve_category(categories: Sequence[Category], name: str) -> Category:
    """Find a non-group category by exact name.

    Category groups share the name space with categories but can't be
    assigned to a transaction, so they are skipped.

    Raises :class:`ResolverError` if nothing matches.
    """
    for cat in categories:
        if not cat.is_group and cat.name == name:
            return cat
    raise ResolverError(
        "category",
        name,
        available=sorted(c.name for c in categories if not c.is_group and not c.archived),
    )


def suggestable_categories(categories: Sequence[Category]) -> list[Category]:
    """Categories an external suggester may pick from.

    Excludes income, archived, budget-excluded and group categories.
    """
    return [
        c for c in categories
        if not (c.is_income or c.archived or c.exclude_from_budget or c.is_group)
    ]


def assignable_category_ids(categories: Sequence[Category]) -> dict[str, int]:
    """Map category names to ids for categories a transaction can be moved to.

    Groups and archived categories are left out. When names repeat, the
    first category wins, matching :func:`resolve_category`.
    """
    ids: dict[str, int] = {}
    for cat in categories:
        if cat.is_group or cat.archived:
            continue
        ids.setdefault(cat.name, cat.id)
    return ids
