"""File-based backups of the (already encrypted) data file.

Backups are verbatim byte copies; nothing is decrypted or re-encrypted.
Each copy is named ``<epoch milliseconds>_backup.json`` inside the backup
directory, with a numeric suffix if two backups land in the same
millisecond.
"""

from __future__ import annotations

import shutil
import threading
import time
from pathlib import Path

from dataorbit.infrastructure.logging import get_logger
from dataorbit.ports.inbound.errors import NotFoundError, SaveError

BACKUP_SUFFIX = "_backup.json"

logger = get_logger(__name__)


class FileBackupManager:
    """BackupStore implementation writing into a local directory."""

    def __init__(self, backup_dir: str | Path, lock: threading.RLock | None = None) -> None:
        """Initialize the backup manager.

        Args:
            backup_dir: Directory backups are written to (created on demand).
            lock: Lock shared with the live file's writer, held while copying.
        """
        self._backup_dir = Path(backup_dir)
        self._lock = lock or threading.RLock()

    @property
    def backup_dir(self) -> Path:
        return self._backup_dir

    def backup(self, source: Path) -> Path:
        """Copy source verbatim into a new timestamp-named backup file.

        Raises:
            NotFoundError: If the source file does not exist.
            SaveError: If the copy fails.
        """
        with self._lock:
            if not source.exists():
                raise NotFoundError(f"Nothing to back up: {source} does not exist")
            try:
                self._backup_dir.mkdir(parents=True, exist_ok=True)
                target = self._next_backup_path()
                shutil.copyfile(source, target)
            except OSError as e:
                raise SaveError(f"Backup of {source} failed: {e}") from e

        logger.info("backup_created", source=str(source), backup=str(target))
        return target

    def list_backups(self) -> list[Path]:
        """Backup files, oldest first."""
        if not self._backup_dir.exists():
            return []
        return sorted(
            self._backup_dir.glob(f"*{BACKUP_SUFFIX}"),
            key=lambda path: self._sort_key(path),
        )

    def _next_backup_path(self) -> Path:
        stamp = int(time.time() * 1000)
        candidate = self._backup_dir / f"{stamp}{BACKUP_SUFFIX}"
        sequence = 1
        while candidate.exists():
            candidate = self._backup_dir / f"{stamp}-{sequence}{BACKUP_SUFFIX}"
            sequence += 1
        return candidate

    @staticmethod
    def _sort_key(path: Path) -> tuple[int, int, str]:
        stem = path.name[: -len(BACKUP_SUFFIX)]
        stamp, _, sequence = stem.partition("-")
        try:
            return (int(stamp), int(sequence or 0), path.name)
        except ValueError:
            return (0, 0, path.name)
