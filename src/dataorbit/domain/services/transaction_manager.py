"""Transaction Manager: all-or-nothing execution of caller code.

A transaction snapshots the Database, runs the caller's function with
per-operation persistence suspended, and then either persists once
(success) or restores the snapshot without touching disk (failure).

Rollback restores document content and then asks the owner to rebuild
the derived projections (indexes, uniqueness registry) from the restored
content, so they never point at documents that no longer exist.
Primary-key counters are never rewound: keys handed out inside a failed
transaction stay consumed, and counters discarded inside it (a dropped
table) are merged back from the snapshot.

Usage:
    txn_mgr = TransactionManager(database, rebuild_derived, persist, keys)
    result = txn_mgr.run(lambda: store.insert("users", {...}))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, TypeVar

from dataorbit.domain.entities import Database
from dataorbit.domain.services.key_allocator import PrimaryKeyAllocator

T = TypeVar("T")


@dataclass
class TransactionStats:
    """Statistics for transaction monitoring."""

    depth: int
    committed_total: int
    rolled_back_total: int


class TransactionManager:
    """Snapshot-based rollback around a caller-supplied operation."""

    def __init__(
        self,
        database: Database,
        rebuild_derived: Callable[[], None],
        persist: Callable[[], None],
        keys: PrimaryKeyAllocator | None = None,
    ) -> None:
        """Initialize the transaction manager.

        Args:
            database: The aggregate to snapshot and restore.
            rebuild_derived: Rebuilds indexes and registries after a rollback.
            persist: Writes the Database to disk; called once per outermost
                successful transaction.
            keys: Primary-key allocator whose counters survive a rollback.
        """
        self._database = database
        self._rebuild_derived = rebuild_derived
        self._persist = persist
        self._keys = keys
        self._depth = 0
        self._committed_total = 0
        self._rolled_back_total = 0

    @property
    def in_transaction(self) -> bool:
        """True while any transaction body is running."""
        return self._depth > 0

    def run(self, fn: Callable[[], T]) -> T:
        """Run fn atomically.

        Nested calls take their own snapshot; only the outermost call
        persists.

        Returns:
            Whatever fn returns.

        Raises:
            Any exception raised by fn, after the rollback. SaveError if the
            final write fails (in-memory changes are kept in that case).
        """
        snapshot = self._database.snapshot()
        key_snapshot = self._keys.snapshot() if self._keys is not None else None
        self._depth += 1
        try:
            result = fn()
        except BaseException:
            self._depth -= 1
            self._database.restore(snapshot)
            if key_snapshot is not None:
                self._keys.merge_snapshot(key_snapshot)
            self._rebuild_derived()
            self._rolled_back_total += 1
            raise

        self._depth -= 1
        self._committed_total += 1
        if self._depth == 0:
            self._persist()
        return result

    def get_stats(self) -> TransactionStats:
        return TransactionStats(
            depth=self._depth,
            committed_total=self._committed_total,
            rolled_back_total=self._rolled_back_total,
        )
