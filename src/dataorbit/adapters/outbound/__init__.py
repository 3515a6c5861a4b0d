"""Outbound adapters - filesystem implementations of the outbound ports."""

from dataorbit.adapters.outbound.encrypted_file_store import EncryptedFileStore
from dataorbit.adapters.outbound.file_backup_manager import FileBackupManager
from dataorbit.adapters.outbound.json_transfer import read_tables, write_tables

__all__ = [
    "EncryptedFileStore",
    "FileBackupManager",
    "read_tables",
    "write_tables",
]
