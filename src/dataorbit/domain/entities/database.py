"""The Database aggregate: every table and its ordered documents.

The Database is the only state that is persisted. Indexes, the uniqueness
registry and primary-key counters are projections of it and are rebuilt
from it whenever positions may have shifted.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator, Mapping

Document = dict[str, Any]
"""One record: a field-name to value mapping."""

CREATED_AT = "created_at"
UPDATED_AT = "updated_at"
METADATA_FIELDS = (CREATED_AT, UPDATED_AT)


def utc_timestamp() -> str:
    """Current time as ISO-8601 text."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Database:
    """Mapping of table name to an ordered list of documents."""

    tables: dict[str, list[Document]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Database:
        """Build a Database from decoded JSON, checking its shape.

        Raises:
            ValueError: If the root is not an object of arrays of objects.
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Database root must be an object, got {type(data).__name__}")

        tables: dict[str, list[Document]] = {}
        for name, documents in data.items():
            if not isinstance(documents, list):
                raise ValueError(f"Table '{name}' must be an array of documents")
            for position, document in enumerate(documents):
                if not isinstance(document, dict):
                    raise ValueError(
                        f"Table '{name}' entry {position} is not an object"
                    )
            tables[str(name)] = list(documents)
        return cls(tables=tables)

    def to_dict(self) -> dict[str, list[Document]]:
        return self.tables

    def has_table(self, name: str) -> bool:
        return name in self.tables

    def table(self, name: str) -> list[Document]:
        """Documents of a table (empty if the table does not exist)."""
        return self.tables.get(name, [])

    def ensure_table(self, name: str) -> bool:
        """Create an empty table. Returns True if it was created."""
        if name in self.tables:
            return False
        self.tables[name] = []
        return True

    def drop_table(self, name: str) -> bool:
        return self.tables.pop(name, None) is not None

    def table_names(self) -> list[str]:
        return list(self.tables)

    def snapshot(self) -> dict[str, list[Document]]:
        """Deep copy of every table, for rollback."""
        return copy.deepcopy(self.tables)

    def restore(self, snapshot: dict[str, list[Document]]) -> None:
        """Replace all tables with a snapshot taken earlier."""
        self.tables = snapshot

    def total_documents(self) -> int:
        return sum(len(documents) for documents in self.tables.values())

    def __iter__(self) -> Iterator[tuple[str, list[Document]]]:
        return iter(self.tables.items())

    def __len__(self) -> int:
        return len(self.tables)
