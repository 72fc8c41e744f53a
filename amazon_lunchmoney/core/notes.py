"""Notes written back to matched Lunch Money transactions."""

from typing import Optional

from amazon_lunchmoney.models.results import ComposedNote
from amazon_lunchmoney.models.schemas import MAX_NOTE_LENGTH


def compose_note(
    existing: Optional[str], order_id: str, summary: Optional[str] = None
) -> ComposedNote:
    """Prefix the order id to the existing notes, plus an optional summary.

    ``should_write`` is False once the notes already mention the order, so
    repeated runs leave them alone.
    """
    existing = existing or ""
    text = f"#{order_id} {existing}".strip()
    if summary:
        text = f"{text}. {summary}"
    return ComposedNote(
        text=text[:MAX_NOTE_LENGTH],
        should_write=order_id not in existing,
    )
