"""Adapters layer - concrete implementations of ports.

Outbound adapters implement SnapshotStore (encrypted single file) and
BackupStore (verbatim file copies), plus plain JSON import/export files.
"""

from dataorbit.adapters.outbound import (
    EncryptedFileStore,
    FileBackupManager,
    read_tables,
    write_tables,
)

__all__ = [
    "EncryptedFileStore",
    "FileBackupManager",
    "read_tables",
    "write_tables",
]
