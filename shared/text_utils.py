"""Text helpers shared by repositories, the query engine and the API."""

from __future__ import annotations

from collections.abc import Iterable


def normalize_category_name(s: str) -> str:
    """Normalize category names for reliable comparisons."""
    return " ".join(s.strip().lower().split())


def has_search_text(s: str | None) -> bool:
    """Return whether a search string contains anything besides whitespace."""
    return bool((s or "").strip())


def dedupe_labels(values: Iterable[str]) -> list[str]:
    """Trim labels, drop blanks and duplicates while keeping first-seen order."""
    seen: set[str] = set()
    labels: list[str] = []
    for value in values:
        label = value.strip()
        if not label or label in seen:
            continue
        seen.add(label)
        labels.append(label)
    return labels
