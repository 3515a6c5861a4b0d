"""Inbound ports - the API contract offered to embedding applications."""

from dataorbit.ports.inbound.document_store import DocumentStore
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
    "DocumentStore",
    "ConfigurationError",
    "DataOrbitError",
    "InvalidQueryError",
    "LoadError",
    "NotFoundError",
    "SaveError",
    "UniquenessError",
    "ValidationError",
]
