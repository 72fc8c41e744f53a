"""Amazon category path -> Lunch Money category rule table.

A rule table is an ordered list of ``(prefix, category name)`` pairs. The
first prefix that an order's category path starts with wins, so broad
prefixes must come after the more specific ones they would shadow.
"""

import json
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from amazon_lunchmoney.core.errors import ConfigurationError


@dataclass(frozen=True)
class RuleTable:
    """Immutable, order-significant prefix rules."""
    rules: tuple[tuple[str, str], ...] = ()

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, str]]) -> "RuleTable":
        return cls(tuple((str(prefix), str(target)) for prefix, target in pairs))

    def match(self, category_path: str) -> Optional[tuple[str, str]]:
        """Return the first ``(prefix, target)`` whose prefix starts *category_path*."""
        if not category_path:
            return None
        for prefix, target in self.rules:
            if category_path.startswith(prefix):
                return prefix, target
        return None

    def target_names(self) -> set[str]:
        return {target for _, target in self.rules}

    def __len__(self) -> int:
        return len(self.rules)


DEFAULT_RULES = RuleTable.from_pairs([
    ("Tools & Home Improvement", "House Maintenance"),
    ("Patio, Lawn & Garden", "House Maintenance"),
    ("Power & Hand Tools", "House Maintenance"),
    ("Home & Kitchen›Furniture", "House Maintenance"),

    ("Baby Products", "Kids"),
    ("Toys & Games›Kids", "Kids"),
    ("Toys & Games›Stuffed Animals & Plush Toys", "Kids"),
    ("Toys & Games›Dress Up & Pretend Play", "Kids"),
    ("Toys & Games›Sports & Outdoor Play", "Kids"),

    ("Health & Household›Health Care", "Health Expenses"),
    ("Health & Household›Vitamins, Minerals & Supplements", "Health Expenses"),
    ("Health & Household›Medical Supplies & Equipment", "Health Expenses"),

    ("Automotive", "Auto Service"),

    ("Kindle Store", "Books"),
    ("Books", "Books"),

    ("Grocery & Gourmet Food", "Groceries"),

    ("Clothing, Shoes & Jewelry", "Clothing"),
    ("Beauty & Personal Care", "Personal Care"),

    ("Sports & Outdoors›Sports", "Entertainment"),
    ("Sports & Outdoors›Outdoor Recreation", "Entertainment"),
    ("Sports & Outdoors›Exercise & Fitness", "Gym"),
])


def load_rule_table(path: Path) -> RuleTable:
    """Load a rule table from a flat JSON object, keeping its key order."""
    if not path.is_file():
        raise ConfigurationError(f"Mapping file {path} does not exist")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigurationError(f"Could not read mapping file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Mapping file {path} must contain a JSON object")
    bad = [k for k, v in data.items() if not isinstance(v, str) or not v.strip()]
    if bad:
        raise ConfigurationError(
            f"Mapping file {path} has non-string targets for: {', '.join(bad)}"
        )
    return RuleTable.from_pairs(data.items())
