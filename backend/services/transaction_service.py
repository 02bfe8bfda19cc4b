"""Transaction service: the single writer of the record store and query state.

Every mutation and every query-state change goes through this service, which
keeps the page-reset invariants and recomputes the visible rows synchronously
before returning.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime
from typing import Any
from uuid import uuid4

from backend.errors import ValidationError
from backend.repositories.categories_repository import CategoriesRepository
from backend.repositories.transactions_repository import TransactionsRepository
from backend.services import query_engine
from shared.models import (
    DEFAULT_PAGE_SIZE,
    PAGE_SIZE_OPTIONS,
    DateRange,
    FilterOptions,
    QueryState,
    QueryStateUpdateRequest,
    SortField,
    SortOrder,
    SortState,
    Transaction,
    TransactionFormData,
    TransactionUpdateRequest,
    VisibleRows,
)


logger = logging.getLogger(__name__)

VisibleRowsListener = Callable[[VisibleRows], None]


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


class TransactionService:
    """Coordinates record mutations, query-state changes and recomputation."""

    def __init__(
        self,
        *,
        transactions_repository: TransactionsRepository,
        categories_repository: CategoriesRepository,
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        if default_page_size not in PAGE_SIZE_OPTIONS:
            raise ValidationError(
                f"Page size must be one of {list(PAGE_SIZE_OPTIONS)}", field="page_size"
            )
        self._transactions = transactions_repository
        self._categories = categories_repository
        self._default_page_size = default_page_size
        self._query = QueryState(page_size=default_page_size)
        self._listeners: list[VisibleRowsListener] = []
        self._visible_rows = VisibleRows()
        self._transactions.subscribe(self._recompute)
        self._recompute()

    # -- read side -------------------------------------------------------

    @property
    def query_state(self) -> QueryState:
        return self._query.model_copy(deep=True)

    @property
    def visible_rows(self) -> VisibleRows:
        return self._visible_rows

    def list_transactions(self) -> list[Transaction]:
        return self._transactions.list_transactions()

    def get_transaction(self, transaction_id: str) -> Transaction | None:
        return self._transactions.get_transaction(transaction_id)

    def list_categories(self) -> list[str]:
        return self._categories.list_categories()

    def filter_options(self) -> FilterOptions:
        return query_engine.filter_options(self._transactions.list_transactions())

    def subscribe(self, listener: VisibleRowsListener) -> Callable[[], None]:
        """Call `listener` with the fresh visible rows after every recompute."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _recompute(self) -> None:
        self._publish(
            query_engine.visible_rows(self._transactions.list_transactions(), self._query)
        )

    def _publish(self, rows: VisibleRows) -> None:
        self._visible_rows = rows
        for listener in list(self._listeners):
            listener(self._visible_rows)

    # -- record mutations ------------------------------------------------

    def create_transaction(
        self,
        form_data: TransactionFormData | Mapping[str, Any],
        transaction_id: str | None = None,
        now: datetime | None = None,
    ) -> Transaction:
        """Insert a new record; the query state is left as is."""
        transaction = self._transactions.create(form_data, transaction_id or str(uuid4()), now)
        if transaction.category.strip():
            self._categories.register_category(transaction.category)
        return transaction

    def update_transaction(
        self,
        transaction_id: str,
        fields: TransactionUpdateRequest | Mapping[str, Any],
        now: datetime | None = None,
    ) -> Transaction | None:
        transaction = self._transactions.update(transaction_id, fields, now)
        if transaction is not None and transaction.category.strip():
            self._categories.register_category(transaction.category)
        return transaction

    def delete_transaction(self, transaction_id: str) -> bool:
        deleted = self._transactions.delete(transaction_id)
        if deleted:
            self._clamp_page()
        return deleted

    def replace_transactions(self, records: Iterable[Transaction | Mapping[str, Any]]) -> None:
        self._transactions.replace_all(records)
        self._clamp_page()

    def register_category(self, name: str) -> bool:
        return self._categories.register_category(name)

    def _clamp_page(self) -> None:
        last_page = max(self._visible_rows.page_count - 1, 0)
        if self._query.page > last_page:
            logger.info("query_page_clamped page=%s last_page=%s", self._query.page, last_page)
            self._apply({"page": last_page}, reset_page=False)

    # -- query state -----------------------------------------------------

    def _apply(self, changes: dict[str, Any], *, reset_page: bool = True) -> QueryState:
        if reset_page:
            changes = {**changes, "page": 0}
        query = self._query.model_copy(update=changes)
        # The query is committed only once its rows are derived.
        rows = query_engine.visible_rows(self._transactions.list_transactions(), query)
        self._query = query
        logger.debug("query_state_changed fields=%s", sorted(changes))
        self._publish(rows)
        return self.query_state

    def set_search(self, search: str) -> QueryState:
        return self._apply({"search": search})

    def set_date_range(
        self,
        start_date: datetime | date | None = None,
        end_date: datetime | date | None = None,
    ) -> QueryState:
        return self._apply({"date_range": DateRange(start_date=start_date, end_date=end_date)})

    def set_selected_categories(self, categories: Iterable[str]) -> QueryState:
        return self._apply({"selected_categories": _unique(categories)})

    def set_selected_tags(self, tags: Iterable[str]) -> QueryState:
        return self._apply({"selected_tags": _unique(tags)})

    def set_sort_field(self, field: SortField | str | None) -> QueryState:
        sort = self._query.sort.model_copy(update={"field": _parse_sort_field(field)})
        return self._apply({"sort": sort})

    def set_sort_order(self, order: SortOrder | str) -> QueryState:
        sort = self._query.sort.model_copy(update={"order": _parse_sort_order(order)})
        return self._apply({"sort": sort})

    def set_sort(self, field: SortField | str | None, order: SortOrder | str) -> QueryState:
        sort = SortState(field=_parse_sort_field(field), order=_parse_sort_order(order))
        return self._apply({"sort": sort})

    def set_page_size(self, page_size: int) -> QueryState:
        if page_size not in PAGE_SIZE_OPTIONS:
            raise ValidationError(
                f"Page size must be one of {list(PAGE_SIZE_OPTIONS)}", field="page_size"
            )
        return self._apply({"page_size": page_size})

    def set_page(self, page: int) -> QueryState:
        """Move to `page`; pages past the end are allowed and show no rows."""
        if page < 0:
            raise ValidationError("Page must be a non-negative integer", field="page")
        return self._apply({"page": page}, reset_page=False)

    def clear_filters(self) -> QueryState:
        """Reset search, date range and multi-select filters; sort is kept."""
        return self._apply(
            {
                "search": "",
                "date_range": DateRange(),
                "selected_categories": [],
                "selected_tags": [],
            }
        )

    def clear_sort(self) -> QueryState:
        return self._apply({"sort": SortState()})

    def update_query(self, request: QueryStateUpdateRequest) -> QueryState:
        """Apply a partial query-state change in one step.

        An explicit `page` is honoured only when nothing else changes, since
        every other field resets the page.
        """
        changes: dict[str, Any] = {}
        if request.search is not None:
            changes["search"] = request.search
        if request.date_range is not None:
            changes["date_range"] = request.date_range
        if request.selected_categories is not None:
            changes["selected_categories"] = _unique(request.selected_categories)
        if request.selected_tags is not None:
            changes["selected_tags"] = _unique(request.selected_tags)
        if request.sort_field is not None or request.sort_order is not None:
            changes["sort"] = self._query.sort.model_copy(
                update={
                    key: value
                    for key, value in (("field", request.sort_field), ("order", request.sort_order))
                    if value is not None
                }
            )
        if request.page_size is not None:
            if request.page_size not in PAGE_SIZE_OPTIONS:
                raise ValidationError(
                    f"Page size must be one of {list(PAGE_SIZE_OPTIONS)}", field="page_size"
                )
            changes["page_size"] = request.page_size

        if changes:
            return self._apply(changes)
        if request.page is not None:
            return self.set_page(request.page)
        return self.query_state

    def reset(self) -> None:
        """Drop every record and restore the default query state."""
        self._query = QueryState(page_size=self._default_page_size)
        self._transactions.replace_all([])
        logger.info("transaction_service_reset")


def _parse_sort_field(field: SortField | str | None) -> SortField | None:
    if field is None or field == "":
        return None
    try:
        return SortField(field)
    except ValueError as exc:
        raise ValidationError(
            f"Sort field must be one of {[member.value for member in SortField]}", field="sort"
        ) from exc


def _parse_sort_order(order: SortOrder | str) -> SortOrder:
    try:
        return SortOrder(order)
    except ValueError as exc:
        raise ValidationError("Sort order must be 'asc' or 'desc'", field="sort") from exc
