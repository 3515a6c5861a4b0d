"""Primary-Key Allocator: monotonic per-table integer keys."""

from __future__ import annotations

from typing import Any, Iterable

from dataorbit.domain.entities import Document


def _integer_key(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


class PrimaryKeyAllocator:
    """Hands out strictly increasing integer keys per table.

    Keys are never reused within the life of an allocator, even after the
    document holding the highest key is deleted. Explicitly supplied integer
    keys advance the counter so later automatic keys cannot collide.
    """

    def __init__(self) -> None:
        self._next: dict[str, int] = {}

    def next_key(self, table_name: str) -> int:
        key = self._next.get(table_name, 1)
        self._next[table_name] = key + 1
        return key

    def peek(self, table_name: str) -> int:
        """The key the next call to next_key would return."""
        return self._next.get(table_name, 1)

    def observe(self, table_name: str, key: Any) -> None:
        """Advance past an explicitly supplied key."""
        integer = _integer_key(key)
        if integer is not None and integer >= self.peek(table_name):
            self._next[table_name] = integer + 1

    def rebuild_table(
        self,
        table_name: str,
        primary_key: str,
        documents: Iterable[Document],
        keep_progress: bool = False,
    ) -> None:
        """Recalculate a table's counter as max(integer keys) + 1.

        Args:
            table_name: The table.
            primary_key: Primary key field name.
            documents: The table's current documents.
            keep_progress: Never move the counter backwards (used after a
                rollback, so keys handed out inside it stay burned).
        """
        highest = 0
        for document in documents:
            integer = _integer_key(document.get(primary_key))
            if integer is not None and integer > highest:
                highest = integer
        candidate = highest + 1
        if keep_progress:
            candidate = max(candidate, self.peek(table_name))
        self._next[table_name] = candidate

    def drop_table(self, table_name: str) -> None:
        self._next.pop(table_name, None)

    def clear(self) -> None:
        self._next.clear()

    def snapshot(self) -> dict[str, int]:
        return dict(self._next)

    def merge_snapshot(self, saved: dict[str, int]) -> None:
        """Take the larger of each saved and current counter."""
        for table_name, next_key in saved.items():
            self._next[table_name] = max(next_key, self.peek(table_name))
