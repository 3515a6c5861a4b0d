"""Query predicate evaluation.

A query maps field names to either a literal (equality) or an operator
object such as ``{"$gte": 18, "$lt": 65}``. All constraints are ANDed,
across fields and within one field's operator object. There is no OR and
no negation of sub-queries.

Queries are compiled once into a ``Predicate`` so that unknown operators
are rejected before any document is examined.

Example:
    >>> predicate = compile_query({"age": {"$gte": 18}, "city": "Lima"})
    >>> predicate.matches({"age": 30, "city": "Lima"})
    True
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from dataorbit.domain.value_objects import QueryOperator, freeze_value, is_container
from dataorbit.ports.inbound.errors import InvalidQueryError


class _Missing:
    """Sentinel for a field absent from a document."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def resolve_field(document: Mapping[str, Any], path: str) -> Any:
    """Read a field, following dotted paths into nested objects.

    Returns:
        The value, or MISSING if any segment is absent.
    """
    if path in document:
        return document[path]
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return MISSING
        current = current[part]
    return current


def values_equal(left: Any, right: Any) -> bool:
    """Equality that keeps booleans distinct from 0 and 1, also inside containers."""
    if is_container(left) or is_container(right):
        return freeze_value(left) == freeze_value(right)
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _compare(op: QueryOperator, actual: Any, expected: Any) -> bool:
    if op is QueryOperator.NE:
        return not values_equal(actual, expected)
    if op is QueryOperator.IN:
        return any(values_equal(actual, candidate) for candidate in expected)
    if op is QueryOperator.NIN:
        return not any(values_equal(actual, candidate) for candidate in expected)

    # Ordering comparisons never match null or incomparable values.
    if actual is None or expected is None:
        return False
    try:
        if op is QueryOperator.GT:
            return actual > expected
        if op is QueryOperator.GTE:
            return actual >= expected
        if op is QueryOperator.LT:
            return actual < expected
        if op is QueryOperator.LTE:
            return actual <= expected
    except TypeError:
        return False
    raise InvalidQueryError(f"Unhandled query operator {op}")


@dataclass(frozen=True)
class Condition:
    """One operator applied to one field."""

    field: str
    op: QueryOperator | None
    value: Any

    @property
    def is_equality(self) -> bool:
        return self.op is None

    def holds(self, document: Mapping[str, Any]) -> bool:
        actual = resolve_field(document, self.field)
        if actual is MISSING:
            actual = None
        if self.op is None:
            return values_equal(actual, self.value)
        return _compare(self.op, actual, self.value)


@dataclass(frozen=True)
class Predicate:
    """Conjunction of conditions compiled from a query."""

    conditions: tuple[Condition, ...] = ()

    def matches(self, document: Mapping[str, Any]) -> bool:
        return all(condition.holds(document) for condition in self.conditions)

    def single_equality(self) -> Condition | None:
        """The condition, if this is a single-field literal equality query."""
        if len(self.conditions) == 1 and self.conditions[0].is_equality:
            return self.conditions[0]
        return None


def _is_operator_object(value: Any) -> bool:
    if not isinstance(value, Mapping) or not value:
        return False
    dollar_keys = [key for key in value if isinstance(key, str) and key.startswith("$")]
    if not dollar_keys:
        return False
    if len(dollar_keys) != len(value):
        raise InvalidQueryError(
            f"Operator object mixes operators and plain fields: {sorted(map(str, value))}"
        )
    return True


def compile_query(query: Mapping[str, Any] | Predicate | None) -> Predicate:
    """Compile a query mapping into a Predicate.

    Raises:
        InvalidQueryError: On unknown operators, non-collection $in/$nin
            operands, or a query that is not a mapping.
    """
    if query is None:
        return Predicate()
    if isinstance(query, Predicate):
        return query
    if not isinstance(query, Mapping):
        raise InvalidQueryError(f"Query must be a mapping, got {type(query).__name__}")

    conditions: list[Condition] = []
    for field_name, constraint in query.items():
        if not isinstance(field_name, str):
            raise InvalidQueryError(f"Query field names must be strings: {field_name!r}")
        if not _is_operator_object(constraint):
            conditions.append(Condition(field_name, None, constraint))
            continue
        for tag, operand in constraint.items():
            op = QueryOperator.parse(tag)
            if op.takes_collection:
                if not isinstance(operand, (list, tuple, set, frozenset)):
                    raise InvalidQueryError(f"{tag} on '{field_name}' requires a list")
                operand = tuple(operand)
            conditions.append(Condition(field_name, op, operand))
    return Predicate(tuple(conditions))


def matches(document: Mapping[str, Any], query: Mapping[str, Any] | None) -> bool:
    """Check a single document against a query."""
    return compile_query(query).matches(document)


def filter_documents(
    documents: list[dict[str, Any]], query: Mapping[str, Any] | Predicate | None
) -> list[dict[str, Any]]:
    """Documents matching a query, in their original order."""
    predicate = compile_query(query)
    if not predicate.conditions:
        return list(documents)
    return [document for document in documents if predicate.matches(document)]
