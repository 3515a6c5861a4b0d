"""Domain services for the document store.

Exports:
    - HashIndexManager, HashIndex, IndexStats: Equality indexes
    - UniquenessRegistry: Unique-constraint bookkeeping
    - PrimaryKeyAllocator: Monotonic per-table keys
    - TransactionManager, TransactionStats: Snapshot rollback
    - compile_query, filter_documents, Predicate: Query evaluation
    - run_pipeline, parse_pipeline and the stage classes: Aggregation
    - validate_document, normalize_document: Schema checks
"""

from dataorbit.domain.services.aggregation import (
    Accumulator,
    Group,
    Limit,
    Match,
    Project,
    Skip,
    Sort,
    Stage,
    parse_pipeline,
    run_pipeline,
)
from dataorbit.domain.services.index_manager import HashIndex, HashIndexManager, IndexStats
from dataorbit.domain.services.key_allocator import PrimaryKeyAllocator
from dataorbit.domain.services.query_engine import (
    MISSING,
    Predicate,
    compile_query,
    filter_documents,
    matches,
    resolve_field,
)
from dataorbit.domain.services.schema_validator import normalize_document, validate_document
from dataorbit.domain.services.transaction_manager import TransactionManager, TransactionStats
from dataorbit.domain.services.uniqueness import UniquenessRegistry

__all__ = [
    "Accumulator",
    "Group",
    "Limit",
    "Match",
    "Project",
    "Skip",
    "Sort",
    "Stage",
    "parse_pipeline",
    "run_pipeline",
    "HashIndex",
    "HashIndexManager",
    "IndexStats",
    "PrimaryKeyAllocator",
    "MISSING",
    "Predicate",
    "compile_query",
    "filter_documents",
    "matches",
    "resolve_field",
    "normalize_document",
    "validate_document",
    "TransactionManager",
    "TransactionStats",
    "UniquenessRegistry",
]
