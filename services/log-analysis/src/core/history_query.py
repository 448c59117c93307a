"""
BugSage - History Queries
=========================

Search, sort and CSV export over a user's saved analyses.
"""

from typing import Iterable, Optional
import csv
import io

from shared.constants import HISTORY_CSV_COLUMNS
from src.api.schemas import AnalysisHistoryItem, SortField, SortOrder


def matches_search(item: AnalysisHistoryItem, search: str) -> bool:
    """Case-insensitive substring match over logs, analysis and context."""
    needle = search.lower()
    return any(
        needle in field.lower()
        for field in (
            item.logs,
            item.analysis,
            item.context.frontend,
            item.context.backend,
            item.context.platform,
        )
    )


def search_history(
    items: Iterable[AnalysisHistoryItem],
    search: Optional[str] = None
) -> list[AnalysisHistoryItem]:
    if not search:
        return list(items)
    return [item for item in items if matches_search(item, search)]


def sort_history(
    items: Iterable[AnalysisHistoryItem],
    sort_by: SortField = SortField.DATE,
    order: SortOrder = SortOrder.DESC
) -> list[AnalysisHistoryItem]:
    """
    Sort by save time or by frontend hint.

    Sorting is stable, so items with equal keys keep the store's order.
    """
    if sort_by == SortField.CONTEXT:
        key = lambda item: item.context.frontend.casefold()
    else:
        key = lambda item: item.created_at

    return sorted(items, key=key, reverse=(order == SortOrder.DESC))


def query_history(
    items: Iterable[AnalysisHistoryItem],
    search: Optional[str] = None,
    sort_by: SortField = SortField.DATE,
    order: SortOrder = SortOrder.DESC
) -> list[AnalysisHistoryItem]:
    return sort_history(search_history(items, search), sort_by, order)


def export_history_csv(items: Iterable[AnalysisHistoryItem]) -> str:
    """
    Serialize analyses as CSV.

    Columns: Date, Frontend, Backend, Platform, Logs, Analysis. Every
    value is quoted and embedded quotes are doubled.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")

    writer.writerow(HISTORY_CSV_COLUMNS)
    for item in items:
        writer.writerow((
            item.created_at.isoformat(),
            item.context.frontend,
            item.context.backend,
            item.context.platform,
            item.logs,
            item.analysis,
        ))

    return buffer.getvalue()
