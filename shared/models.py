"""Pydantic contracts shared across the backend core and the HTTP API."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.text_utils import dedupe_labels


PageSize = Literal[25, 50, 100]
PAGE_SIZE_OPTIONS: tuple[int, ...] = (25, 50, 100)
DEFAULT_PAGE_SIZE = 25


def as_aware(value: datetime | None) -> datetime | None:
    """Read naive timestamps as UTC so every stored timestamp is comparable."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class TransactionType(str, Enum):
    """Direction of a transaction; amounts are stored as magnitudes."""

    INCOME = "income"
    EXPENSE = "expense"


class SortField(str, Enum):
    """Fields the transactions table can be sorted by."""

    NAME = "name"
    TRANSACTION_DATE = "transaction_date"
    TYPE = "type"
    CATEGORY = "category"
    AMOUNT = "amount"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class TransactionFormData(BaseModel):
    """Field data submitted by the entry form, without bookkeeping fields."""

    model_config = ConfigDict(extra="forbid")

    name: str
    amount: Decimal
    account: str = ""
    type: TransactionType
    category: str = ""
    transaction_date: datetime
    notes: str = ""
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, value: list[str]) -> list[str]:
        return dedupe_labels(value)

    @field_validator("transaction_date")
    @classmethod
    def aware_transaction_date(cls, value: datetime) -> datetime:
        return as_aware(value)


class Transaction(TransactionFormData):
    """A stored transaction record."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def aware_timestamps(cls, value: datetime) -> datetime:
        return as_aware(value)


class TransactionUpdateRequest(BaseModel):
    """Partial update; fields left unset keep their stored value."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    amount: Decimal | None = None
    account: str | None = None
    type: TransactionType | None = None
    category: str | None = None
    transaction_date: datetime | None = None
    notes: str | None = None
    tags: list[str] | None = None

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return value
        return dedupe_labels(value)

    @field_validator("transaction_date")
    @classmethod
    def aware_transaction_date(cls, value: datetime | None) -> datetime | None:
        return as_aware(value)


class TransactionCreateRequest(TransactionFormData):
    """Form data plus an optional caller-generated identifier."""

    id: str | None = None


class DateRange(BaseModel):
    """Inclusive date range; either bound may be left open.

    A bound given as a plain date matches the whole calendar day.
    """

    model_config = ConfigDict(extra="forbid")

    start_date: datetime | date | None = None
    end_date: datetime | date | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def aware_bounds(cls, value: datetime | date | None) -> datetime | date | None:
        if isinstance(value, datetime):
            return as_aware(value)
        return value

    def is_open(self) -> bool:
        return self.start_date is None and self.end_date is None


class SortState(BaseModel):
    model_config = ConfigDict(extra="forbid")

    field: SortField | None = None
    order: SortOrder = SortOrder.DESC

    @field_validator("field", mode="before")
    @classmethod
    def empty_field_means_unsorted(cls, value: object) -> object:
        if value == "":
            return None
        return value


class QueryState(BaseModel):
    """Search, filter, sort and pagination parameters of the transactions view."""

    model_config = ConfigDict(extra="forbid")

    search: str = ""
    date_range: DateRange = Field(default_factory=DateRange)
    selected_categories: list[str] = Field(default_factory=list)
    selected_tags: list[str] = Field(default_factory=list)
    sort: SortState = Field(default_factory=SortState)
    page_size: PageSize = DEFAULT_PAGE_SIZE
    page: int = Field(default=0, ge=0)


class QueryStateUpdateRequest(BaseModel):
    """Partial query-state change sent by the presentation layer."""

    model_config = ConfigDict(extra="forbid")

    search: str | None = None
    date_range: DateRange | None = None
    selected_categories: list[str] | None = None
    selected_tags: list[str] | None = None
    sort_field: SortField | None = None
    sort_order: SortOrder | None = None
    page_size: PageSize | None = None
    page: int | None = None


class PageRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    page: int


class VisibleRows(BaseModel):
    """Ordered page of transactions produced from the current query state."""

    model_config = ConfigDict(extra="forbid")

    rows: list[Transaction] = Field(default_factory=list)
    total_matched: int = 0
    page_count: int = 0


class FilterOptions(BaseModel):
    """Distinct categories and tags present in the collection, sorted."""

    model_config = ConfigDict(extra="forbid")

    categories: list[str]
    tags: list[str]


class CategoryRegisterRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str


class CategoriesListResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    items: list[str]
