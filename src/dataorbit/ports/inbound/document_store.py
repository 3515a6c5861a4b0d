"""Document Store port: the call interface offered to embedding applications.

The store is an explicitly owned object; every operation acts on the
instance it is called on and there is no module-level default store.

Mutations persist before returning. Reads return deep copies, so callers
can never change stored documents behind the store's back.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Mapping, Protocol, Sequence, TypeVar

if TYPE_CHECKING:
    from dataorbit.infrastructure.config import TableConfig

T = TypeVar("T")

Document = dict[str, Any]
Query = Mapping[str, Any]


class DocumentStore(Protocol):
    """Protocol for the embedded document store."""

    @abstractmethod
    def create_table(self, name: str, config: TableConfig | Mapping[str, Any] | None = None) -> bool:
        """Create a table. Returns False if it already exists."""
        ...

    @abstractmethod
    def drop_table(self, name: str) -> bool:
        """Drop a table with its indexes and counters."""
        ...

    @abstractmethod
    def insert(self, table: str, document: Mapping[str, Any]) -> Document:
        """Insert a document and return the stored copy.

        Raises:
            ValidationError: Schema violation (nothing is changed).
            UniquenessError: Unique or primary key collision (nothing is changed).
            SaveError: The write failed after the insert was applied in memory.
        """
        ...

    @abstractmethod
    def update(self, table: str, key: Any, patch: Mapping[str, Any]) -> Document | None:
        """Merge a patch into a document. Returns None if the key is unknown."""
        ...

    @abstractmethod
    def delete(self, table: str, key: Any) -> bool:
        """Delete a document. Returns False if the key is unknown."""
        ...

    @abstractmethod
    def find_all(self, table: str) -> list[Document]:
        ...

    @abstractmethod
    def find(self, table: str, query: Query | None = None) -> list[Document]:
        ...

    @abstractmethod
    def find_one(self, table: str, query: Query | None = None) -> Document | None:
        ...

    @abstractmethod
    def find_by_id(self, table: str, key: Any) -> Document | None:
        ...

    @abstractmethod
    def get_all_columns(self, table: str, column: str) -> list[Any]:
        ...

    @abstractmethod
    def count(self, table: str, query: Query | None = None) -> int:
        ...

    @abstractmethod
    def create_index(self, table: str, field: str) -> bool:
        ...

    @abstractmethod
    def drop_index(self, table: str, field: str) -> bool:
        ...

    @abstractmethod
    def aggregate(self, table: str, pipeline: Sequence[Any]) -> list[Document]:
        ...

    @abstractmethod
    def transaction(self, fn: Callable[..., T]) -> T:
        ...

    @abstractmethod
    def stats(self) -> dict[str, Any]:
        ...

    @abstractmethod
    def reset(self) -> None:
        ...

    @abstractmethod
    def backup(self) -> Path:
        ...

    @abstractmethod
    def restore(self, backup_file: str | Path) -> None:
        ...

    @abstractmethod
    def import_from_json(self, path: str | Path, mode: str = "merge", overwrite: bool = False) -> Any:
        ...

    @abstractmethod
    def export_to_json(
        self,
        path: str | Path,
        tables: Sequence[str] | None = None,
        exclude_metadata: bool = False,
    ) -> dict[str, int]:
        ...
