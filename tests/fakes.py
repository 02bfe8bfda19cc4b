"""Deterministic record builders for ledger tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from shared.models import Transaction, TransactionFormData, TransactionType


FIXED_NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def make_form(
    *,
    name: str = "Coffee",
    amount: str | int = "4.50",
    type: TransactionType | str = TransactionType.EXPENSE,
    category: str = "Food",
    tags: list[str] | None = None,
    transaction_date: datetime | None = None,
    account: str = "Checking",
    notes: str = "",
) -> TransactionFormData:
    return TransactionFormData(
        name=name,
        amount=Decimal(str(amount)),
        account=account,
        type=type,
        category=category,
        transaction_date=transaction_date or FIXED_NOW,
        notes=notes,
        tags=tags or [],
    )


def make_transaction(transaction_id: str, **fields: object) -> Transaction:
    created_at = fields.pop("created_at", FIXED_NOW)
    form = make_form(**fields)
    return Transaction(
        **form.model_dump(),
        id=transaction_id,
        created_at=created_at,
        updated_at=created_at,
    )


def numbered_transactions(count: int) -> list[Transaction]:
    """Return `count` records dated one day apart, newest first."""
    return [
        make_transaction(
            f"tx-{index:03d}",
            name=f"Item {index:03d}",
            amount=index,
            transaction_date=FIXED_NOW - timedelta(days=index),
        )
        for index in range(count)
    ]
