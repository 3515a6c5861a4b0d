"""Snapshot Store port: persistence of the whole Database as one blob.

There is no incremental write path. Every save replaces the complete
file; every load reads the complete file.
"""

from __future__ import annotations

import threading
from abc import abstractmethod
from pathlib import Path
from typing import Any, Protocol


class SnapshotStore(Protocol):
    """Protocol for whole-database persistence."""

    @property
    @abstractmethod
    def path(self) -> Path:
        """Location of the live data file."""
        ...

    @property
    @abstractmethod
    def lock(self) -> threading.RLock:
        """Lock held by every write or copy of the live file."""
        ...

    @abstractmethod
    def exists(self) -> bool:
        ...

    @abstractmethod
    def size(self) -> int:
        ...

    @abstractmethod
    def load(self) -> dict[str, list[dict[str, Any]]]:
        """Read, decrypt and parse the data file.

        Returns:
            The tables; empty if the file is missing or blank.

        Raises:
            LoadError: If the file is unreadable or cannot be decoded.
        """
        ...

    @abstractmethod
    def save(self, tables: dict[str, list[dict[str, Any]]]) -> int:
        """Serialize, encrypt and rewrite the data file.

        Returns:
            Number of bytes written.

        Raises:
            SaveError: If the write fails.
        """
        ...

    @abstractmethod
    def decode_file(self, path: Path) -> dict[str, list[dict[str, Any]]]:
        """Decode an arbitrary file in the data-file format (e.g. a backup)."""
        ...

    @abstractmethod
    def is_legacy_file(self) -> bool:
        """True if the live file still uses the legacy scheme."""
        ...

    @abstractmethod
    def write_raw(self, raw: bytes) -> None:
        """Replace the live file with already-encoded bytes."""
        ...


class BackupStore(Protocol):
    """Protocol for verbatim copies of the data file."""

    @property
    @abstractmethod
    def backup_dir(self) -> Path:
        ...

    @abstractmethod
    def backup(self, source: Path) -> Path:
        """Copy source into the backup location and return the new file."""
        ...

    @abstractmethod
    def list_backups(self) -> list[Path]:
        ...
