"""Application layer for the document store.

The application layer wires the domain services and the outbound adapters
together behind the public store API.

Exports:
    DataOrbit:
        - DataOrbit: Main entry point for the document store
        - ImportResult: Counts returned by import_from_json
    Backups:
        - BackupService: Periodic backup timers
"""

from dataorbit.application.backup_service import BackupService
from dataorbit.application.document_store import DataOrbit, ImportResult

__all__ = [
    "DataOrbit",
    "ImportResult",
    "BackupService",
]
