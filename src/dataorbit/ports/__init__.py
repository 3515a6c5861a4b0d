"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts:
- Inbound ports: APIs offered to clients (DocumentStore) and the error taxonomy
- Outbound ports: Dependencies on external systems (SnapshotStore, BackupStore)

Adapters implement these ports with concrete functionality.
"""

from dataorbit.ports.inbound import (
    ConfigurationError,
    DataOrbitError,
    DocumentStore,
    InvalidQueryError,
    LoadError,
    NotFoundError,
    SaveError,
    UniquenessError,
    ValidationError,
)
from dataorbit.ports.outbound import BackupStore, SnapshotStore

__all__ = [
    "ConfigurationError",
    "DataOrbitError",
    "DocumentStore",
    "InvalidQueryError",
    "LoadError",
    "NotFoundError",
    "SaveError",
    "UniquenessError",
    "ValidationError",
    "BackupStore",
    "SnapshotStore",
]
