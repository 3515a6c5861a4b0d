"""Value objects for the document store domain.

Exports:
    Enumerations:
        - FieldType: Schema value kinds (text, number, boolean, ...)
        - QueryOperator: Comparison operators ($gt, $in, ...)
        - AccumulatorOp: Group accumulators ($sum, $avg, ...)
        - SortDirection: Ascending / descending
    Frozen values:
        - freeze_value: Hashable form of a document value
        - is_container: Whether a value is an object, array or set
"""

from dataorbit.domain.value_objects.field_types import (
    AccumulatorOp,
    FieldType,
    QueryOperator,
    SortDirection,
)
from dataorbit.domain.value_objects.frozen import freeze_value, is_container

__all__ = [
    "AccumulatorOp",
    "FieldType",
    "QueryOperator",
    "SortDirection",
    "freeze_value",
    "is_container",
]
