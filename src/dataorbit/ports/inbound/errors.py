"""Error taxonomy for the document store.

Every failure surfaced by the public API derives from DataOrbitError so
embedding applications can catch the whole family at once.

Atomicity contract:
    - ValidationError and UniquenessError are raised before any mutation.
    - SaveError is raised after the in-memory mutation was applied; memory
      and disk disagree until the next successful save.
    - LoadError and ConfigurationError abort store construction.
"""

from __future__ import annotations

from typing import Any


class DataOrbitError(Exception):
    """Base class for all document store errors."""


class ConfigurationError(DataOrbitError):
    """Required configuration is missing or invalid."""


class LoadError(DataOrbitError):
    """The data file could not be read, decrypted or parsed."""


class SaveError(DataOrbitError):
    """The data file could not be written after an in-memory mutation."""


class ValidationError(DataOrbitError):
    """A document violates its table schema."""

    def __init__(self, message: str, table: str | None = None, field: str | None = None) -> None:
        super().__init__(message)
        self.table = table
        self.field = field


class UniquenessError(DataOrbitError):
    """A unique-constrained field value is already taken."""

    def __init__(self, table: str, field: str, value: Any) -> None:
        super().__init__(
            f"Unique constraint violated on {table}.{field}: {value!r} already exists"
        )
        self.table = table
        self.field = field
        self.value = value


class NotFoundError(DataOrbitError):
    """A required target (e.g. a backup file) does not exist."""


class InvalidQueryError(DataOrbitError):
    """A query, pipeline stage or accumulator is malformed or unknown."""
