"""Document validation against a table's field schema."""

from __future__ import annotations

import os
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Callable, Mapping

from dataorbit.domain.entities import Document
from dataorbit.domain.value_objects import FieldType
from dataorbit.ports.inbound.errors import ValidationError

if TYPE_CHECKING:
    from dataorbit.infrastructure.config import FieldSchema


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_date(value: Any) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    if not isinstance(value, str):
        return False
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


def _is_existing_path(value: Any) -> bool:
    return isinstance(value, (str, os.PathLike)) and os.path.exists(value)


_CHECKS: dict[FieldType, Callable[[Any], bool]] = {
    FieldType.TEXT: lambda value: isinstance(value, str),
    FieldType.NUMBER: _is_number,
    FieldType.BOOLEAN: lambda value: isinstance(value, bool),
    FieldType.DATE: _is_date,
    FieldType.OBJECT: lambda value: isinstance(value, dict),
    FieldType.ARRAY: lambda value: isinstance(value, (list, tuple)),
    FieldType.PATH: _is_existing_path,
}


def validate_document(
    table_name: str,
    document: Document,
    schema: Mapping[str, FieldSchema],
) -> None:
    """Type-check a document and enforce required fields.

    Fields not named in the schema are accepted as-is. A present ``None``
    counts as missing for ``required`` and skips the type check otherwise.

    Raises:
        ValidationError: On the first violated rule.
    """
    for field_name, rule in schema.items():
        value = document.get(field_name)
        if value is None:
            if rule.required:
                raise ValidationError(
                    f"Field '{field_name}' is required in table '{table_name}'",
                    table=table_name,
                    field=field_name,
                )
            continue

        if not _CHECKS[rule.type](value):
            if rule.type is FieldType.PATH:
                message = f"Field '{field_name}' must reference an existing path, got {value!r}"
            else:
                message = (
                    f"Field '{field_name}' expects type {rule.type.value}, "
                    f"got {type(value).__name__}"
                )
            raise ValidationError(message, table=table_name, field=field_name)


def normalize_document(document: Document) -> Document:
    """Convert values JSON cannot carry (dates, paths, tuples) to JSON forms."""
    return {key: _normalize_value(value) for key, value in document.items()}


def _normalize_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, os.PathLike):
        return os.fspath(value)
    if isinstance(value, tuple):
        return [_normalize_value(item) for item in value]
    if isinstance(value, list):
        return [_normalize_value(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_value(item) for key, item in value.items()}
    return value
