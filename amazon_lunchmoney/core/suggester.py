"""OpenAI-backed category suggestions for Amazon orders.

The model receives the order's item text plus the candidate Lunch Money
categories and answers with a raw JSON object ``{"id": <number>,
"summary": "<string>"}``. Anything that does not parse into that shape is
reported as ``None``; there are no retries.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from amazon_lunchmoney.models.config import DEFAULT_SUGGESTION_MODEL
from amazon_lunchmoney.models.schemas import Category, CategorySuggestion

logger = logging.getLogger(__name__)

INSTRUCTIONS = (
    "You categorize Amazon purchases for a personal budget. Pick exactly one "
    "category id from the provided list that best fits the purchased items, and "
    "write a summary of what was bought in a few words. Respond with a raw JSON "
    'object only, no code fences: {"id": <category id>, "summary": "<summary>"}'
)


def build_user_content(items_text: str, categories: Sequence[Category]) -> str:
    candidates = [
        {"id": c.id, "name": c.name, "description": c.description or ""}
        for c in categories
    ]
    return (
        f"Items purchased:\n{items_text.strip()}\n\n"
        f"Categories:\n{json.dumps(candidates, ensure_ascii=False)}"
    )


def _extract_output_text(resp: Any) -> str | None:
    """Find the text output of a Responses API result.

    Prefers ``resp.output_text``; falls back to
    ``resp.output[0].content[0].text``.
    """
    text = getattr(resp, "output_text", None)
    if isinstance(text, str) and text:
        return text
    output = getattr(resp, "output", None) or []
    if not output:
        return None
    content = getattr(output[0], "content", None) or []
    if not content:
        return None
    text = getattr(content[0], "text", None)
    return text if isinstance(text, str) else None


def parse_suggestion(text: str | None) -> CategorySuggestion | None:
    """Decode the model's JSON answer; ``None`` when it is not the expected shape."""
    if not text:
        return None
    try:
        decoded = json.loads(text.strip())
    except json.JSONDecodeError:
        logger.warning("category suggestion was not valid JSON: %.200s", text)
        return None
    if not isinstance(decoded, dict):
        logger.warning("category suggestion was not a JSON object: %.200s", text)
        return None
    try:
        return CategorySuggestion.model_validate(decoded)
    except ValidationError as e:
        logger.warning("category suggestion failed validation: %d error(s)", e.error_count())
        return None


class OpenAISuggester:
    """Suggest Lunch Money categories with the OpenAI Responses API."""

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str = DEFAULT_SUGGESTION_MODEL,
    ):
        self._client = client
        self.model = model

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI()
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()

    async def suggest(
        self, items_text: str, categories: Sequence[Category]
    ) -> CategorySuggestion | None:
        if not items_text.strip() or not categories:
            return None

        try:
            resp = await self.client.responses.create(
                model=self.model,
                instructions=INSTRUCTIONS,
                input=build_user_content(items_text, categories),
            )
        except openai.OpenAIError as e:
            logger.warning("category suggestion request failed: %s: %s", type(e).__name__, e)
            return None

        return parse_suggestion(_extract_output_text(resp))
