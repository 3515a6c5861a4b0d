"""Hash Index Manager for per-table, per-field equality lookups.

Each index maps a frozen field value to the sorted positions of the
documents holding that value. Positions are offsets into the table's
document list, so the manager must be told about every structural change:

- append / update: patched incrementally (add, remove)
- delete, restore, import, reset, rollback: rebuilt for the whole table,
  because removal shifts the position of every later document
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import Any, Hashable, Iterable

from dataorbit.domain.entities import Document
from dataorbit.domain.value_objects import freeze_value
from dataorbit.domain.services.query_engine import MISSING, resolve_field


@dataclass
class IndexStats:
    """Statistics for index monitoring."""

    num_indexes: int
    total_entries: int
    lookup_count: int


@dataclass
class HashIndex:
    """Hash index over one field of one table."""

    table_name: str
    field_name: str
    entries: dict[Hashable, list[int]] = field(default_factory=dict)

    def add(self, document: Document, position: int) -> None:
        key = self._key(document)
        positions = self.entries.setdefault(key, [])
        if position not in positions:
            bisect.insort(positions, position)

    def remove(self, document: Document, position: int) -> None:
        key = self._key(document)
        positions = self.entries.get(key)
        if not positions:
            return
        if position in positions:
            positions.remove(position)
        if not positions:
            del self.entries[key]

    def lookup(self, value: Any) -> list[int]:
        return list(self.entries.get(freeze_value(value), ()))

    def rebuild(self, documents: Iterable[Document]) -> None:
        self.entries = {}
        for position, document in enumerate(documents):
            self.add(document, position)

    @property
    def num_entries(self) -> int:
        return sum(len(positions) for positions in self.entries.values())

    def _key(self, document: Document) -> Hashable:
        # Missing fields are indexed as None, matching query equality.
        value = resolve_field(document, self.field_name)
        return freeze_value(None if value is MISSING else value)


class HashIndexManager:
    """Owns every hash index, keyed by table then field.

    Usage:
        indexes = HashIndexManager()
        indexes.create_index("users", "email", documents)
        positions = indexes.lookup("users", "email", "a@example.com")
    """

    def __init__(self) -> None:
        self._indexes: dict[str, dict[str, HashIndex]] = {}
        self._lookup_count = 0

    def create_index(
        self, table_name: str, field_name: str, documents: Iterable[Document] = ()
    ) -> bool:
        """Create and populate an index.

        Returns:
            True if created, False if the index already exists.
        """
        table_indexes = self._indexes.setdefault(table_name, {})
        if field_name in table_indexes:
            return False
        index = HashIndex(table_name=table_name, field_name=field_name)
        index.rebuild(documents)
        table_indexes[field_name] = index
        return True

    def drop_index(self, table_name: str, field_name: str) -> bool:
        table_indexes = self._indexes.get(table_name, {})
        return table_indexes.pop(field_name, None) is not None

    def get_index(self, table_name: str, field_name: str) -> HashIndex | None:
        return self._indexes.get(table_name, {}).get(field_name)

    def indexed_fields(self, table_name: str) -> list[str]:
        return list(self._indexes.get(table_name, {}))

    def table_names(self) -> list[str]:
        return list(self._indexes)

    def lookup(self, table_name: str, field_name: str, value: Any) -> list[int] | None:
        """Positions of documents whose field equals value.

        Returns:
            Sorted positions, or None if the field is not indexed.
        """
        index = self.get_index(table_name, field_name)
        if index is None:
            return None
        self._lookup_count += 1
        return index.lookup(value)

    def add_document(self, table_name: str, document: Document, position: int) -> None:
        """Patch every index of a table with a document at position."""
        for index in self._indexes.get(table_name, {}).values():
            index.add(document, position)

    def remove_document(self, table_name: str, document: Document, position: int) -> None:
        """Remove a document's entries from every index of a table."""
        for index in self._indexes.get(table_name, {}).values():
            index.remove(document, position)

    def rebuild_table(self, table_name: str, documents: list[Document]) -> None:
        """Recompute every index of a table from its current documents."""
        for index in self._indexes.get(table_name, {}).values():
            index.rebuild(documents)

    def drop_table(self, table_name: str) -> None:
        self._indexes.pop(table_name, None)

    def clear(self) -> None:
        self._indexes.clear()

    def get_stats(self) -> IndexStats:
        """Return index manager statistics for monitoring."""
        all_indexes = [
            index for table in self._indexes.values() for index in table.values()
        ]
        return IndexStats(
            num_indexes=len(all_indexes),
            total_entries=sum(index.num_entries for index in all_indexes),
            lookup_count=self._lookup_count,
        )
