"""Text summaries of reconciliation statistics for operational review."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from gipfelsync.domain.reconciliation.contracts import (
        CollectionStats,
        OperationCounts,
        ReconciliationReport,
    )

log = logging.getLogger(__name__)

_OPERATIONS: Final[tuple[str, ...]] = ("inserted", "updated", "replaced", "skipped", "failed")
_RULE: Final[str] = "═" * 97


def render_collection_summary(stats: CollectionStats) -> list[str]:
    counts = stats.counts
    lines = [
        f"Collection {stats.collection.value} Summary:",
        "┌─────────────┬───────┐",
        "│ Operation   │ Count │",
        "├─────────────┼───────┤",
    ]
    lines.extend(
        f"│ {name.capitalize():<11} │ {getattr(counts, name):>5} │" for name in _OPERATIONS
    )
    lines.extend(
        [
            "├─────────────┼───────┤",
            f"│ {'Total':<11} │ {counts.total:>5} │",
            "└─────────────┴───────┘",
        ]
    )
    return lines


def _row(collection: str, source: str, counts: OperationCounts) -> str:
    cells = [f" {getattr(counts, name):>7} " for name in _OPERATIONS]
    cells.append(f" {counts.total:>7} ")
    return f"│ {collection:<11} │ {source:<19} │" + "│".join(cells) + "│"


def _border(left: str, middle: str, right: str) -> str:
    return left + "─" * 13 + middle + "─" * 21 + (middle + "─" * 9) * 6 + right


def render_report(report: ReconciliationReport) -> list[str]:
    lines = [
        _RULE,
        f"{'EXPORT SUMMARY':^97}",
        _RULE,
        _border("┌", "┬", "┐"),
        "│ Collection  │ Data Source         │ Insert  │ Update  │ Replace "
        "│ Skipped │ Failed  │  Total  │",
        _border("├", "┼", "┤"),
    ]
    for collection, stats in report.collections.items():
        first = True
        for source, counts in stats.sources.items():
            lines.append(_row(collection.value if first else "", source, counts))
            first = False
        if len(stats.sources) != 1:
            label = collection.value if first else ""
            lines.append(_row(label, "(collection total)", stats.counts))
        lines.append(_border("├", "┼", "┤"))
    lines.append(_row("TOTAL", "ALL COLLECTIONS", report.totals))
    lines.append(_border("└", "┴", "┘"))
    lines.append(f"Mode: {report.mode.value} | Database: {report.database}")
    return lines


def log_collection_summary(stats: CollectionStats) -> None:
    for line in render_collection_summary(stats):
        log.info(line)


def log_report(report: ReconciliationReport) -> None:
    for line in render_report(report):
        log.info(line)
