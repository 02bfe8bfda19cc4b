"""Derive the visible page of transactions from the records and a query state.

Stages run in a fixed order, each narrowing the previous output: search,
date range, categories, tags, then a stable sort and the page slice. Every
function here is pure.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from datetime import date, datetime
from typing import Any

from shared.models import (
    DateRange,
    FilterOptions,
    QueryState,
    SortField,
    SortOrder,
    SortState,
    Transaction,
    VisibleRows,
    as_aware,
)
from shared.text_utils import has_search_text


def matches_search(transaction: Transaction, search: str) -> bool:
    """Case-insensitive substring match on name, category or any tag.

    Blank search matches everything; otherwise the text is used as typed,
    surrounding spaces included.
    """
    if not has_search_text(search):
        return True
    needle = search.lower()
    return (
        needle in transaction.name.lower()
        or needle in transaction.category.lower()
        or any(needle in tag.lower() for tag in transaction.tags)
    )


def _after_start(value: datetime, bound: datetime | date) -> bool:
    if isinstance(bound, datetime):
        return as_aware(value) >= bound
    return value.date() >= bound


def _before_end(value: datetime, bound: datetime | date) -> bool:
    if isinstance(bound, datetime):
        return as_aware(value) <= bound
    return value.date() <= bound


def matches_date_range(transaction: Transaction, date_range: DateRange) -> bool:
    """Inclusive on both ends; an unset bound does not constrain."""
    if date_range.start_date is not None and not _after_start(
        transaction.transaction_date, date_range.start_date
    ):
        return False
    if date_range.end_date is not None and not _before_end(
        transaction.transaction_date, date_range.end_date
    ):
        return False
    return True


def matches_categories(transaction: Transaction, selected_categories: Sequence[str]) -> bool:
    if not selected_categories:
        return True
    return transaction.category in selected_categories


def matches_tags(transaction: Transaction, selected_tags: Sequence[str]) -> bool:
    if not selected_tags:
        return True
    return not set(transaction.tags).isdisjoint(selected_tags)


def filter_transactions(records: Sequence[Transaction], query: QueryState) -> list[Transaction]:
    """Apply the search, date, category and tag stages, keeping record order."""
    rows = list(records)
    if has_search_text(query.search):
        rows = [row for row in rows if matches_search(row, query.search)]
    if not query.date_range.is_open():
        rows = [row for row in rows if matches_date_range(row, query.date_range)]
    if query.selected_categories:
        rows = [row for row in rows if matches_categories(row, query.selected_categories)]
    if query.selected_tags:
        rows = [row for row in rows if matches_tags(row, query.selected_tags)]
    return rows


_SORT_KEYS: dict[SortField, Callable[[Transaction], Any]] = {
    SortField.NAME: lambda row: row.name,
    SortField.TRANSACTION_DATE: lambda row: as_aware(row.transaction_date),
    SortField.TYPE: lambda row: row.type.value,
    SortField.CATEGORY: lambda row: row.category,
    SortField.AMOUNT: lambda row: row.amount,
}


def sort_transactions(rows: Sequence[Transaction], sort: SortState) -> list[Transaction]:
    """Stable sort: equal keys keep their collection order in both directions."""
    if sort.field is None:
        return list(rows)
    # sorted(reverse=True) preserves the relative order of equal elements.
    return sorted(rows, key=_SORT_KEYS[sort.field], reverse=sort.order == SortOrder.DESC)


def paginate(rows: Sequence[Transaction], page: int, page_size: int) -> list[Transaction]:
    start = page * page_size
    if start >= len(rows):
        return []
    return list(rows[start : start + page_size])


def page_count(total_matched: int, page_size: int) -> int:
    if total_matched <= 0:
        return 0
    return math.ceil(total_matched / page_size)


def visible_rows(records: Sequence[Transaction], query: QueryState) -> VisibleRows:
    matched = filter_transactions(records, query)
    ordered = sort_transactions(matched, query.sort)
    return VisibleRows(
        rows=paginate(ordered, query.page, query.page_size),
        total_matched=len(matched),
        page_count=page_count(len(matched), query.page_size),
    )


def available_categories(records: Sequence[Transaction]) -> list[str]:
    return sorted({row.category for row in records})


def available_tags(records: Sequence[Transaction]) -> list[str]:
    return sorted({tag for row in records for tag in row.tags})


def filter_options(records: Sequence[Transaction]) -> FilterOptions:
    return FilterOptions(categories=available_categories(records), tags=available_tags(records))
