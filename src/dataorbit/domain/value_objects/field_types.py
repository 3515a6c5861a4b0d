"""Closed enumerations used by schemas, queries and pipelines.

Each enumeration parses its external tag through ``parse`` and rejects
anything it does not know, so a typo in a query never degrades into a
silently ignored constraint.
"""

from __future__ import annotations

from enum import Enum

from dataorbit.ports.inbound.errors import InvalidQueryError


class FieldType(Enum):
    """Value kinds a table schema can require for a field."""

    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    OBJECT = "object"
    ARRAY = "array"
    PATH = "path"

    @classmethod
    def parse(cls, tag: str | FieldType) -> FieldType:
        """Parse a type tag case-insensitively ("Text", "string", "NUMBER"...)."""
        if isinstance(tag, FieldType):
            return tag
        normalized = str(tag).strip().lower()
        normalized = _FIELD_TYPE_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown field type '{tag}'") from None


_FIELD_TYPE_ALIASES = {
    "string": "text",
    "str": "text",
    "int": "number",
    "float": "number",
    "bool": "boolean",
    "datetime": "date",
    "dict": "object",
    "list": "array",
}


class QueryOperator(Enum):
    """Comparison operators accepted inside a query operator object."""

    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"
    NE = "$ne"
    IN = "$in"
    NIN = "$nin"

    @classmethod
    def parse(cls, tag: str) -> QueryOperator:
        try:
            return cls(tag)
        except ValueError:
            raise InvalidQueryError(f"Unknown query operator '{tag}'") from None

    @property
    def takes_collection(self) -> bool:
        return self in (QueryOperator.IN, QueryOperator.NIN)


class AccumulatorOp(Enum):
    """Accumulators available to the group stage."""

    SUM = "$sum"
    AVG = "$avg"
    MIN = "$min"
    MAX = "$max"
    PUSH = "$push"

    @classmethod
    def parse(cls, tag: str) -> AccumulatorOp:
        key = tag if tag.startswith("$") else f"${tag}"
        try:
            return cls(key.lower())
        except ValueError:
            raise InvalidQueryError(f"Unknown accumulator '{tag}'") from None


class SortDirection(Enum):
    """Sort order for a single sort key."""

    ASC = 1
    DESC = -1

    @classmethod
    def parse(cls, value: int | str | SortDirection) -> SortDirection:
        if isinstance(value, SortDirection):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("asc", "ascending"):
                return cls.ASC
            if lowered in ("desc", "descending"):
                return cls.DESC
        elif value in (1, -1) and not isinstance(value, bool):
            return cls(value)
        raise InvalidQueryError(f"Unknown sort direction {value!r}")
