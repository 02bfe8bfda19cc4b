"""Transactions repository adapters.

The in-memory repository is the canonical record store of the ledger. Records
are kept most-recent-first: `create` inserts at the head, and that order is
the tie-break used by the query engine when sorting.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Protocol

from pydantic import ValidationError as PydanticValidationError

from backend.errors import ValidationError
from shared.models import (
    Transaction,
    TransactionFormData,
    TransactionType,
    TransactionUpdateRequest,
    as_aware,
)


logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class TransactionsRepository(Protocol):
    def list_transactions(self) -> list[Transaction]:
        """Return all records in collection order."""

    def get_transaction(self, transaction_id: str) -> Transaction | None:
        """Return one record or None when absent."""

    def replace_all(self, records: Iterable[Transaction | Mapping[str, Any]]) -> None:
        """Overwrite the collection wholesale."""

    def create(
        self,
        form_data: TransactionFormData | Mapping[str, Any],
        transaction_id: str,
        now: datetime | None = None,
    ) -> Transaction:
        """Validate and insert a record at the head of the collection."""

    def update(
        self,
        transaction_id: str,
        fields: TransactionUpdateRequest | Mapping[str, Any],
        now: datetime | None = None,
    ) -> Transaction | None:
        """Merge fields into a record; None when the id is unknown."""

    def delete(self, transaction_id: str) -> bool:
        """Remove a record; False when the id is unknown."""

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener and return its unsubscribe function."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _coerce(model: type[Any], payload: Any) -> Any:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        first_error = exc.errors()[0]
        location = first_error.get("loc") or ()
        field = str(location[0]) if location else None
        raise ValidationError(f"Invalid transaction data: {first_error.get('msg')}", field=field) from exc


def check_transaction_rules(*, name: str, amount: Decimal, type_: object) -> None:
    """Raise ValidationError when a record would break the ledger invariants."""
    if not name or not name.strip():
        raise ValidationError("Transaction name must not be empty", field="name")
    if amount < 0:
        raise ValidationError("Transaction amount must be non-negative", field="amount")
    if type_ not in set(TransactionType):
        raise ValidationError(
            f"Transaction type must be one of {[member.value for member in TransactionType]}",
            field="type",
        )


class InMemoryTransactionsRepository:
    """Process-local record store; all state is lost on restart."""

    def __init__(self, records: Iterable[Transaction | Mapping[str, Any]] | None = None) -> None:
        self._transactions: list[Transaction] = []
        self._listeners: list[Listener] = []
        if records is not None:
            self._transactions = [_coerce(Transaction, record) for record in records]

    def _index_of(self, transaction_id: str) -> int | None:
        for index, transaction in enumerate(self._transactions):
            if transaction.id == transaction_id:
                return index
        return None

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def list_transactions(self) -> list[Transaction]:
        return list(self._transactions)

    def get_transaction(self, transaction_id: str) -> Transaction | None:
        index = self._index_of(transaction_id)
        return self._transactions[index] if index is not None else None

    def replace_all(self, records: Iterable[Transaction | Mapping[str, Any]]) -> None:
        self._transactions = [_coerce(Transaction, record) for record in records]
        logger.info("transactions_replaced count=%s", len(self._transactions))
        self._notify()

    def create(
        self,
        form_data: TransactionFormData | Mapping[str, Any],
        transaction_id: str,
        now: datetime | None = None,
    ) -> Transaction:
        data = _coerce(TransactionFormData, form_data)
        check_transaction_rules(name=data.name, amount=data.amount, type_=data.type)
        if self._index_of(transaction_id) is not None:
            raise ValidationError(f"Transaction id already exists: {transaction_id}", field="id")

        timestamp = now or _utcnow()
        transaction = Transaction(
            **data.model_dump(include=set(TransactionFormData.model_fields)),
            id=transaction_id,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self._transactions.insert(0, transaction)
        logger.info("transaction_created id=%s type=%s", transaction.id, transaction.type.value)
        self._notify()
        return transaction

    def update(
        self,
        transaction_id: str,
        fields: TransactionUpdateRequest | Mapping[str, Any],
        now: datetime | None = None,
    ) -> Transaction | None:
        index = self._index_of(transaction_id)
        if index is None:
            logger.info("transaction_update_skipped_missing id=%s", transaction_id)
            return None
        changes = _coerce(TransactionUpdateRequest, fields)

        current = self._transactions[index]
        timestamp = as_aware(now) or _utcnow()
        # updated_at never moves backwards, so it stays >= created_at.
        if timestamp < current.updated_at:
            timestamp = current.updated_at

        updated = current.model_copy(
            update={**changes.model_dump(exclude_none=True), "updated_at": timestamp}
        )
        check_transaction_rules(name=updated.name, amount=updated.amount, type_=updated.type)

        self._transactions[index] = updated
        logger.info("transaction_updated id=%s", transaction_id)
        self._notify()
        return updated

    def delete(self, transaction_id: str) -> bool:
        kept_transactions = [
            transaction for transaction in self._transactions if transaction.id != transaction_id
        ]
        if len(kept_transactions) == len(self._transactions):
            logger.info("transaction_delete_skipped_missing id=%s", transaction_id)
            return False

        self._transactions = kept_transactions
        logger.info("transaction_deleted id=%s", transaction_id)
        self._notify()
        return True
