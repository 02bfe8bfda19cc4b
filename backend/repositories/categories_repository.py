"""Registry of known transaction categories.

Categories are advisory labels: transactions may carry any category text, and
the registry only remembers names so the entry form can offer them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Protocol

from backend.errors import ValidationError
from shared.text_utils import normalize_category_name


logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES: tuple[str, ...] = (
    "Food & Dining",
    "Transportation",
    "Shopping",
    "Entertainment",
    "Bills & Utilities",
    "Healthcare",
    "Education",
    "Travel",
    "Personal Care",
    "Gifts & Donations",
    "Investments",
    "Business",
    "Other",
)


class CategoriesRepository(Protocol):
    def list_categories(self) -> list[str]:
        """Return known category names in registration order."""

    def register_category(self, name: str) -> bool:
        """Remember a category name; return False when it is already known."""

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a change listener and return its unsubscribe function."""


class InMemoryCategoriesRepository:
    """Insertion-ordered category names, de-duplicated on their normalized form."""

    def __init__(self, categories: Iterable[str] = ()) -> None:
        # normalized name -> display name as first registered
        self._categories: dict[str, str] = {}
        self._listeners: list[Callable[[], None]] = []
        for name in categories:
            self._add(name)

    def _add(self, name: str) -> bool:
        display_name = name.strip()
        if not display_name:
            raise ValidationError("Category name must not be empty", field="name")
        key = normalize_category_name(display_name)
        if key in self._categories:
            return False
        self._categories[key] = display_name
        return True

    def list_categories(self) -> list[str]:
        return list(self._categories.values())

    def has_category(self, name: str) -> bool:
        return normalize_category_name(name) in self._categories

    def register_category(self, name: str) -> bool:
        added = self._add(name)
        if added:
            logger.info("category_registered name=%s", name.strip())
            for listener in list(self._listeners):
                listener()
        return added

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
