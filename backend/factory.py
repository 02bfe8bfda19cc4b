"""Composition root for backend services."""

from __future__ import annotations

from backend.repositories.categories_repository import (
    DEFAULT_CATEGORIES,
    InMemoryCategoriesRepository,
)
from backend.repositories.transactions_repository import InMemoryTransactionsRepository
from backend.services.transaction_service import TransactionService
from shared import config


def build_transaction_service() -> TransactionService:
    """Build the transaction service over in-process repositories.

    Nothing is persisted: every process starts with an empty ledger.
    """

    categories = DEFAULT_CATEGORIES if config.seed_default_categories() else ()
    return TransactionService(
        transactions_repository=InMemoryTransactionsRepository(),
        categories_repository=InMemoryCategoriesRepository(categories),
        default_page_size=config.default_page_size(),
    )
