"""Run configuration for a reconciliation pass."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PAYEE = "Amazon"
DEFAULT_SUGGESTION_MODEL = "gpt-4o-mini"
# Cards can take days to settle and Amazon does not always charge right away.
DATE_WINDOW_DAYS = 7


class ReconcileSettings(BaseModel):
    """Options that stay fixed for the whole run."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    orders_file: Path = Field(..., description="Amazon order history CSV export")
    default_category: str = Field(
        ..., min_length=1,
        description="Category Lunch Money assigns to Amazon purchases before reconciliation",
    )
    mapping_file: Optional[Path] = Field(None, description="JSON rule table overriding the bundled one")
    owner_names: list[str] = Field(
        default_factory=list, description="Account owners; orders shipped to anyone else are gifts"
    )
    payee: str = Field(default=DEFAULT_PAYEE, min_length=1)
    dry_run: bool = False
    date_window_days: int = Field(default=DATE_WINDOW_DAYS, ge=0)

    @field_validator("owner_names")
    @classmethod
    def _drop_blank_owners(cls, v: list[str]) -> list[str]:
        return [name.strip() for name in v if name and name.strip()]
