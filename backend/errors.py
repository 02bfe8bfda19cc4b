"""Domain errors raised by the transactions core."""

from __future__ import annotations


class ValidationError(ValueError):
    """Raised when a record or query change breaks a business rule.

    Raised before anything is mutated, so the store never holds an invalid
    record.
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field
