"""Plain-text formatters for CLI output.

Pure functions that take reconciliation results and return strings.
"""

from __future__ import annotations

from amazon_lunchmoney.models.results import (
    ReconcileReport,
    TransactionResult,
    TransactionState,
)

_STATE_LABELS = {
    TransactionState.APPLIED: "updated",
    TransactionState.DRY_RUN: "would update",
    TransactionState.APPLY_FAILED: "failed",
    TransactionState.NOTHING_TO_APPLY: "unchanged",
    TransactionState.ALREADY_CATEGORIZED: "already categorized",
    TransactionState.GROUP_SKIP: "split/grouped",
    TransactionState.NO_MATCH: "no match",
}


def format_result(result: TransactionResult) -> str:
    parts = [str(result.transaction_id), _STATE_LABELS[result.state]]
    if result.order_id:
        parts.append(f"#{result.order_id}")
    if result.outcome is not None and result.outcome.target_name:
        parts.append(f"-> {result.outcome.target_name}")
    if result.error:
        parts.append(f"({result.error})")
    return "\t".join(parts)


def format_summary(report: ReconcileReport) -> str:
    counts = report.state_counts
    pieces = [
        f"{counts[state]} {label}"
        for state, label in _STATE_LABELS.items()
        if counts.get(state)
    ]
    prefix = "[dry run] " if report.dry_run else ""
    body = ", ".join(pieces) if pieces else "nothing to do"
    return (
        f"{prefix}{report.transactions_considered} transactions, "
        f"{report.orders_considered} orders: {body}. "
        f"{report.orders_remaining} orders left unmatched."
    )


def format_report(report: ReconcileReport, verbose: bool = False) -> str:
    lines = []
    if verbose:
        lines.extend(format_result(r) for r in report.results)
    lines.append(format_summary(report))
    return "\n".join(lines)
