"""Domain entities for the document store.

Exports:
    - Database: Root aggregate of tables and documents
    - Document: Type alias for one record
    - CREATED_AT, UPDATED_AT, METADATA_FIELDS: Timestamp field names
    - utc_timestamp: ISO-8601 timestamp factory
"""

from dataorbit.domain.entities.database import (
    CREATED_AT,
    METADATA_FIELDS,
    UPDATED_AT,
    Database,
    Document,
    utc_timestamp,
)

__all__ = [
    "CREATED_AT",
    "METADATA_FIELDS",
    "UPDATED_AT",
    "Database",
    "Document",
    "utc_timestamp",
]
