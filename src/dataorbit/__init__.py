"""
DataOrbit - Embedded encrypted document store

A single-file, AES-encrypted document database with per-table hash
indexes, unique constraints, a query predicate language, an aggregation
pipeline, snapshot transactions, and backup/restore/import/export.
"""

__version__ = "0.1.0"
__author__ = "Systems Engineering Portfolio"

from dataorbit.application import DataOrbit, ImportResult
from dataorbit.infrastructure.observability import setup_observability
from dataorbit.ports.inbound.errors import (
    ConfigurationError,
    DataOrbitError,
    InvalidQueryError,
    LoadError,
    NotFoundError,
    SaveError,
    UniquenessError,
    ValidationError,
)

__all__ = [
    "DataOrbit",
    "ImportResult",
    "setup_observability",
    "ConfigurationError",
    "DataOrbitError",
    "InvalidQueryError",
    "LoadError",
    "NotFoundError",
    "SaveError",
    "UniquenessError",
    "ValidationError",
]
