"""Command line entry point for ``amazon-lunchmoney``.

Environment variables (``LUNCH_MONEY_API_KEY``, ``OPENAI_API_KEY``,
``LOG_LEVEL``) are loaded from a local ``.env`` with python-dotenv before the
options are resolved. The reconciliation itself lives in
:mod:`amazon_lunchmoney.core.reconciler`.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv

from amazon_lunchmoney.cli.error_handling import exit_on_error
from amazon_lunchmoney.cli.formatters import format_report
from amazon_lunchmoney.core.errors import ConfigurationError
from amazon_lunchmoney.core.lunch_money_client import LunchMoneyClient
from amazon_lunchmoney.core.reconciler import Reconciler
from amazon_lunchmoney.core.rules import DEFAULT_RULES, RuleTable, load_rule_table
from amazon_lunchmoney.core.suggester import OpenAISuggester
from amazon_lunchmoney.logging_setup import configure_logging
from amazon_lunchmoney.models.config import (
    DEFAULT_PAYEE,
    DEFAULT_SUGGESTION_MODEL,
    ReconcileSettings,
)
from amazon_lunchmoney.models.results import ReconcileReport

logger = logging.getLogger("amazon_lunchmoney.cli")

app = typer.Typer(add_completion=False, help="Categorize Lunch Money Amazon transactions from order history.")


def split_owner_names(values: list[str] | None) -> list[str]:
    """Accept both ``-n Alice -n Bob`` and ``-n "Alice,Bob"``."""
    names: list[str] = []
    for value in values or []:
        names.extend(part.strip() for part in value.split(","))
    return [n for n in names if n]


async def reconcile(
    settings: ReconcileSettings,
    api_key: str,
    rules: RuleTable,
    suggester: Optional[OpenAISuggester] = None,
) -> ReconcileReport:
    async with LunchMoneyClient(api_token=api_key) as client:
        try:
            return await Reconciler(client, settings, rules=rules, suggester=suggester).run()
        finally:
            if suggester is not None:
                await suggester.close()


@app.command()
@exit_on_error
def main(
    file: Annotated[Path, typer.Option("--file", "-f", help="Amazon order history CSV")],
    default_category: Annotated[
        str,
        typer.Option(
            "--default-category", "-c",
            help="Category Lunch Money assigns to Amazon transactions before they are sorted",
        ),
    ],
    lunch_money_key: Annotated[
        Optional[str],
        typer.Option("--lunch-money-key", "-m", help="Lunch Money API key (or LUNCH_MONEY_API_KEY)"),
    ] = None,
    mapping_file: Annotated[
        Optional[Path],
        typer.Option("--mapping-file", help="JSON object of Amazon category prefix -> Lunch Money category"),
    ] = None,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", "-d", help="Log the updates without applying them")
    ] = False,
    owner_names: Annotated[
        Optional[list[str]],
        typer.Option(
            "--owner-names", "-n",
            help="Account owner name; orders shipped to anyone else are gifts. Repeatable.",
        ),
    ] = None,
    payee: Annotated[
        str, typer.Option("--payee", help="Lunch Money payee to reconcile")
    ] = DEFAULT_PAYEE,
    suggest: Annotated[
        bool,
        typer.Option("--suggest/--no-suggest", help="Ask OpenAI when no rule matches (needs OPENAI_API_KEY)"),
    ] = False,
    model: Annotated[
        Optional[str], typer.Option("--model", help="OpenAI model for suggestions (or OPENAI_MODEL)")
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Output verbose logs")
    ] = False,
) -> None:
    """Match Lunch Money transactions to Amazon orders, then categorize and annotate them."""
    configure_logging("DEBUG" if verbose else None)

    api_key = lunch_money_key or os.getenv("LUNCH_MONEY_API_KEY")
    if not api_key:
        raise ConfigurationError("Lunch Money API key not set")

    settings = ReconcileSettings(
        orders_file=file,
        default_category=default_category,
        mapping_file=mapping_file,
        owner_names=split_owner_names(owner_names),
        payee=payee,
        dry_run=dry_run,
    )
    if not settings.orders_file.is_file():
        raise ConfigurationError(f"File {settings.orders_file} does not exist")

    rules = load_rule_table(settings.mapping_file) if settings.mapping_file else DEFAULT_RULES

    suggester = None
    if suggest:
        if not os.getenv("OPENAI_API_KEY"):
            raise ConfigurationError("OPENAI_API_KEY is not set; required for --suggest")
        suggester = OpenAISuggester(model=model or os.getenv("OPENAI_MODEL") or DEFAULT_SUGGESTION_MODEL)

    if settings.dry_run:
        logger.info("dry run: no transactions will be updated")

    report = asyncio.run(reconcile(settings, api_key, rules, suggester))
    typer.echo(format_report(report, verbose=verbose))


def run() -> None:
    load_dotenv()
    app()


if __name__ == "__main__":
    run()
