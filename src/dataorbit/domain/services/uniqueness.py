"""Uniqueness Registry for unique-constrained fields.

Tracks, per table and field, the set of values currently held by live
documents. Null and absent values are exempt from the constraint.

Checks (``check_insert``, ``check_update``, ``find_violation``) never
mutate; callers run them before touching any state so a violation leaves
the store exactly as it was.
"""

from __future__ import annotations

from typing import Any, Hashable, Iterable

from dataorbit.domain.entities import Document
from dataorbit.domain.services.query_engine import MISSING, resolve_field, values_equal
from dataorbit.domain.value_objects import freeze_value
from dataorbit.ports.inbound.errors import UniquenessError


def _constrained_value(document: Document, field_name: str) -> Any:
    value = resolve_field(document, field_name)
    if value is MISSING or value is None:
        return MISSING
    return value


class UniquenessRegistry:
    """Occupied values for every unique field of every table."""

    def __init__(self) -> None:
        self._values: dict[str, dict[str, set[Hashable]]] = {}

    def unique_fields(self, table_name: str) -> list[str]:
        return list(self._values.get(table_name, {}))

    def contains(self, table_name: str, field_name: str, value: Any) -> bool:
        occupied = self._values.get(table_name, {}).get(field_name, set())
        return freeze_value(value) in occupied

    def check_insert(self, table_name: str, document: Document) -> None:
        """Raise UniquenessError if the document would collide.

        Raises:
            UniquenessError: On the first occupied unique value.
        """
        for field_name, occupied in self._values.get(table_name, {}).items():
            value = _constrained_value(document, field_name)
            if value is not MISSING and freeze_value(value) in occupied:
                raise UniquenessError(table_name, field_name, value)

    def check_update(self, table_name: str, old: Document, new: Document) -> None:
        """Raise UniquenessError if a changed unique field collides."""
        for field_name, occupied in self._values.get(table_name, {}).items():
            old_value = _constrained_value(old, field_name)
            new_value = _constrained_value(new, field_name)
            if new_value is MISSING or values_equal(old_value, new_value):
                continue
            if freeze_value(new_value) in occupied:
                raise UniquenessError(table_name, field_name, new_value)

    def add(self, table_name: str, document: Document) -> None:
        for field_name, occupied in self._values.get(table_name, {}).items():
            value = _constrained_value(document, field_name)
            if value is not MISSING:
                occupied.add(freeze_value(value))

    def remove(self, table_name: str, document: Document) -> None:
        for field_name, occupied in self._values.get(table_name, {}).items():
            value = _constrained_value(document, field_name)
            if value is not MISSING:
                occupied.discard(freeze_value(value))

    def replace(self, table_name: str, old: Document, new: Document) -> None:
        """Move registry entries for fields whose value actually changed."""
        for field_name, occupied in self._values.get(table_name, {}).items():
            old_value = _constrained_value(old, field_name)
            new_value = _constrained_value(new, field_name)
            if values_equal(old_value, new_value):
                continue
            if old_value is not MISSING:
                occupied.discard(freeze_value(old_value))
            if new_value is not MISSING:
                occupied.add(freeze_value(new_value))

    def rebuild_table(
        self, table_name: str, fields: Iterable[str], documents: Iterable[Document]
    ) -> None:
        """Recompute a table's registry from its documents."""
        self._values[table_name] = {field_name: set() for field_name in fields}
        for document in documents:
            self.add(table_name, document)

    def drop_table(self, table_name: str) -> None:
        self._values.pop(table_name, None)

    def clear(self) -> None:
        self._values.clear()

    @staticmethod
    def find_violation(
        table_name: str, fields: Iterable[str], documents: Iterable[Document]
    ) -> UniquenessError | None:
        """First duplicate among documents, without touching any registry."""
        seen: dict[str, set[Hashable]] = {field_name: set() for field_name in fields}
        for document in documents:
            for field_name, occupied in seen.items():
                value = _constrained_value(document, field_name)
                if value is MISSING:
                    continue
                key = freeze_value(value)
                if key in occupied:
                    return UniquenessError(table_name, field_name, value)
                occupied.add(key)
        return None
