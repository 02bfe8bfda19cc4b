"""Tests for the transaction service: page resets, recompute and filters."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from backend.errors import ValidationError
from backend.repositories.categories_repository import InMemoryCategoriesRepository
from backend.repositories.transactions_repository import InMemoryTransactionsRepository
from backend.services.transaction_service import TransactionService
from shared.models import (
    DateRange,
    QueryStateUpdateRequest,
    SortField,
    SortOrder,
    TransactionUpdateRequest,
)
from tests.fakes import FIXED_NOW, make_form, make_transaction, numbered_transactions


def _service(records=None, *, categories=()) -> TransactionService:
    return TransactionService(
        transactions_repository=InMemoryTransactionsRepository(records),
        categories_repository=InMemoryCategoriesRepository(categories),
    )


def _on_page(service: TransactionService, page: int) -> TransactionService:
    service.set_page(page)
    assert service.query_state.page == page
    return service


@pytest.mark.parametrize(
    "change",
    [
        lambda service: service.set_search("item"),
        lambda service: service.set_date_range(start_date=FIXED_NOW - timedelta(days=40)),
        lambda service: service.set_selected_categories(["Food"]),
        lambda service: service.set_selected_tags(["daily"]),
        lambda service: service.set_sort_field(SortField.AMOUNT),
        lambda service: service.set_sort_order(SortOrder.ASC),
        lambda service: service.set_sort("name", "asc"),
        lambda service: service.set_page_size(50),
        lambda service: service.clear_filters(),
        lambda service: service.clear_sort(),
        lambda service: service.update_query(QueryStateUpdateRequest(search="item", page=1)),
    ],
)
def test_query_changes_reset_page_to_zero(change) -> None:
    service = _on_page(_service(numbered_transactions(60)), 2)

    change(service)

    assert service.query_state.page == 0


def test_set_page_moves_without_resetting_and_accepts_out_of_range() -> None:
    service = _service(numbered_transactions(30))

    service.set_page(1)
    assert [len(service.visible_rows.rows), service.visible_rows.page_count] == [5, 2]

    service.set_page(9)
    assert service.visible_rows.rows == []
    assert service.visible_rows.total_matched == 30


def test_negative_page_and_unsupported_page_size_are_rejected() -> None:
    service = _service()

    with pytest.raises(ValidationError):
        service.set_page(-1)
    with pytest.raises(ValidationError):
        service.set_page_size(30)
    with pytest.raises(ValidationError):
        service.set_sort_field("notes")

    assert service.query_state.page == 0
    assert service.query_state.page_size == 25


def test_create_recomputes_without_touching_query_state() -> None:
    service = _service(numbered_transactions(30))
    service.set_page(1)
    before = service.query_state

    created = service.create_transaction(make_form(name="Fresh"), "new-1", FIXED_NOW)

    assert service.query_state == before
    assert service.visible_rows.total_matched == 31
    assert service.list_transactions()[0].id == created.id


def test_create_generates_uuid_and_registers_category() -> None:
    service = _service(categories=["Food"])

    created = service.create_transaction(make_form(category="Pets"))

    assert len(created.id) == 36
    assert service.list_categories() == ["Food", "Pets"]


def test_update_is_visible_immediately_in_filtered_view() -> None:
    service = _service([make_transaction("tx-1", category="Food"), make_transaction("tx-2", category="Food")])
    service.set_selected_categories(["Food"])

    service.update_transaction("tx-1", TransactionUpdateRequest(category="Travel"), FIXED_NOW + timedelta(hours=1))

    assert [row.id for row in service.visible_rows.rows] == ["tx-2"]
    assert "Travel" in service.list_categories()


def test_update_and_delete_of_missing_id_are_noops() -> None:
    service = _service([make_transaction("tx-1")])

    assert service.update_transaction("missing", {"amount": Decimal("1")}) is None
    assert service.delete_transaction("missing") is False
    assert [row.id for row in service.list_transactions()] == ["tx-1"]


def test_delete_clamps_page_back_into_range() -> None:
    service = _on_page(_service(numbered_transactions(26)), 1)
    assert len(service.visible_rows.rows) == 1

    service.delete_transaction("tx-025")

    assert service.query_state.page == 0
    assert len(service.visible_rows.rows) == 25


def test_replace_with_empty_collection_clamps_page_to_zero() -> None:
    service = _on_page(_service(numbered_transactions(60)), 2)

    service.replace_transactions([])

    assert service.query_state.page == 0
    assert service.visible_rows.page_count == 0


def test_clear_filters_keeps_sort_and_clear_sort_keeps_filters() -> None:
    service = _service(numbered_transactions(5))
    service.set_sort(SortField.AMOUNT, SortOrder.ASC)
    service.set_search("item")
    service.set_date_range(end_date=FIXED_NOW)
    service.set_selected_categories(["Food", "Food"])
    service.set_selected_tags(["daily"])

    state = service.clear_filters()

    assert state.search == ""
    assert state.date_range == DateRange()
    assert state.selected_categories == []
    assert state.selected_tags == []
    assert (state.sort.field, state.sort.order) == (SortField.AMOUNT, SortOrder.ASC)

    service.set_selected_categories(["Food"])
    state = service.clear_sort()

    assert state.sort.field is None
    assert state.sort.order is SortOrder.DESC
    assert state.selected_categories == ["Food"]


def test_selected_filters_are_deduplicated() -> None:
    service = _service()

    state = service.set_selected_tags(["daily", "daily", "cafe"])

    assert state.selected_tags == ["daily", "cafe"]


def test_update_query_applies_sort_fields_partially() -> None:
    service = _service(numbered_transactions(3))
    service.set_sort(SortField.NAME, SortOrder.DESC)

    state = service.update_query(QueryStateUpdateRequest(sort_order=SortOrder.ASC))

    assert (state.sort.field, state.sort.order) == (SortField.NAME, SortOrder.ASC)
    assert [row.id for row in service.visible_rows.rows] == ["tx-000", "tx-001", "tx-002"]


def test_update_query_with_only_page_moves_page() -> None:
    service = _service(numbered_transactions(60))

    state = service.update_query(QueryStateUpdateRequest(page=2))

    assert state.page == 2
    assert len(service.visible_rows.rows) == 10


def test_subscribers_receive_fresh_rows_synchronously() -> None:
    service = _service()
    seen: list[int] = []
    unsubscribe = service.subscribe(lambda result: seen.append(result.total_matched))

    service.create_transaction(make_form(), "tx-1", FIXED_NOW)
    service.set_search("nothing matches this")
    unsubscribe()
    service.clear_filters()

    assert seen == [1, 0]


def test_query_state_is_a_read_only_copy() -> None:
    service = _service()

    state = service.query_state
    state.selected_tags.append("sneaky")

    assert service.query_state.selected_tags == []


def test_reset_restores_defaults_and_empties_store() -> None:
    service = _service(numbered_transactions(40))
    service.set_page_size(100)
    service.set_search("item")

    service.reset()

    assert service.list_transactions() == []
    assert service.query_state.page_size == 25
    assert service.query_state.search == ""
    assert service.visible_rows.total_matched == 0


def test_filter_options_reflect_current_records() -> None:
    service = _service(
        [
            make_transaction("tx-1", category="Food", tags=["daily"]),
            make_transaction("tx-2", category="Bills", tags=["monthly", "daily"]),
        ]
    )

    options = service.filter_options()

    assert options.categories == ["Bills", "Food"]
    assert options.tags == ["daily", "monthly"]


def test_date_sort_stays_live_when_naive_and_aware_records_mix() -> None:
    service = _service()
    service.create_transaction(make_form(name="Naive", transaction_date=datetime(2025, 1, 3, 9, 0)), "naive")
    service.set_sort(SortField.TRANSACTION_DATE, SortOrder.ASC)

    service.create_transaction(
        make_form(name="Aware", transaction_date=datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)), "aware"
    )
    service.clear_filters()

    assert [row.id for row in service.visible_rows.rows] == ["aware", "naive"]
    assert service.visible_rows.total_matched == 2
