"""Aggregation pipeline execution.

A pipeline is an ordered list of stages applied to a running list of
documents that starts as the full contents of a table:

    Match   filter with the query grammar of query_engine
    Project keep only the named fields
    Group   partition by a field and fold accumulators per group
    Sort    stable multi-key ordering
    Limit   keep the first n documents
    Skip    drop the first n documents

Stages run strictly in the order given; nothing is reordered.

Stages may be built directly or parsed from mappings:

    pipeline = [
        {"$match": {"region": "west"}},
        {"$group": {"by": "rep", "total": {"$sum": "amount"}}},
        {"$sort": {"total": -1}},
    ]
"""

from __future__ import annotations

import copy
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Hashable, Iterable, Mapping, Sequence

from dataorbit.domain.entities import Document
from dataorbit.domain.services.query_engine import (
    MISSING,
    Predicate,
    compile_query,
    resolve_field,
)
from dataorbit.domain.value_objects import AccumulatorOp, SortDirection, freeze_value
from dataorbit.ports.inbound.errors import InvalidQueryError


class Stage(ABC):
    """Base class for pipeline stages."""

    @abstractmethod
    def apply(self, documents: list[Document]) -> list[Document]:
        """Transform the running result list."""


@dataclass(frozen=True)
class Match(Stage):
    query: Mapping[str, Any]
    _predicate: Predicate = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_predicate", compile_query(self.query))

    def apply(self, documents: list[Document]) -> list[Document]:
        return [document for document in documents if self._predicate.matches(document)]


@dataclass(frozen=True)
class Project(Stage):
    fields: tuple[str, ...]

    def apply(self, documents: list[Document]) -> list[Document]:
        return [
            {name: document[name] for name in self.fields if name in document}
            for document in documents
        ]


@dataclass(frozen=True)
class Accumulator:
    """One output field of a group: op applied to a source field."""

    op: AccumulatorOp
    source: str


class _GroupState:
    """Running fold of every accumulator for one group."""

    def __init__(self, key_value: Any, accumulators: Mapping[str, Accumulator]) -> None:
        self.key_value = key_value
        self.sums: dict[str, float] = {name: 0 for name in accumulators}
        self.counts: dict[str, int] = {name: 0 for name in accumulators}
        self.extremes: dict[str, Any] = {name: None for name in accumulators}
        self.pushed: dict[str, list[Any]] = {name: [] for name in accumulators}

    def fold(self, document: Document, accumulators: Mapping[str, Accumulator]) -> None:
        for name, accumulator in accumulators.items():
            value = resolve_field(document, accumulator.source)
            if value is MISSING or value is None:
                continue
            op = accumulator.op
            if op is AccumulatorOp.PUSH:
                self.pushed[name].append(copy.deepcopy(value))
            elif op in (AccumulatorOp.SUM, AccumulatorOp.AVG):
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    continue
                self.sums[name] += value
                self.counts[name] += 1
            elif op is AccumulatorOp.MIN:
                current = self.extremes[name]
                if current is None or _sort_key(value) < _sort_key(current):
                    self.extremes[name] = value
            elif op is AccumulatorOp.MAX:
                current = self.extremes[name]
                if current is None or _sort_key(value) > _sort_key(current):
                    self.extremes[name] = value

    def finalize(self, name: str, accumulator: Accumulator) -> Any:
        op = accumulator.op
        if op is AccumulatorOp.SUM:
            return self.sums[name]
        if op is AccumulatorOp.AVG:
            # A group with no numeric values has no average.
            if self.counts[name] == 0:
                return None
            return self.sums[name] / self.counts[name]
        if op in (AccumulatorOp.MIN, AccumulatorOp.MAX):
            return self.extremes[name]
        if op is AccumulatorOp.PUSH:
            return self.pushed[name]
        raise InvalidQueryError(f"Unhandled accumulator {op}")


@dataclass(frozen=True)
class Group(Stage):
    """Group by a field (or into one implicit group when ``by`` is None)."""

    by: str | None
    accumulators: Mapping[str, Accumulator]

    def apply(self, documents: list[Document]) -> list[Document]:
        groups: dict[Hashable, _GroupState] = {}
        for document in documents:
            if self.by is None:
                key_value = None
            else:
                key_value = resolve_field(document, self.by)
                if key_value is MISSING:
                    key_value = None
            frozen = freeze_value(key_value)
            state = groups.get(frozen)
            if state is None:
                state = _GroupState(copy.deepcopy(key_value), self.accumulators)
                groups[frozen] = state
            state.fold(document, self.accumulators)

        results: list[Document] = []
        for state in groups.values():
            result: Document = {}
            if self.by is not None:
                result[self.by] = state.key_value
            for name, accumulator in self.accumulators.items():
                result[name] = state.finalize(name, accumulator)
            results.append(result)
        return results


@dataclass(frozen=True)
class Sort(Stage):
    keys: tuple[tuple[str, SortDirection], ...]

    def apply(self, documents: list[Document]) -> list[Document]:
        ordered = list(documents)
        # Python's sort is stable, so sorting by the least significant key
        # first yields a multi-key order that keeps ties in input order.
        for field_name, direction in reversed(self.keys):
            ordered.sort(
                key=lambda document: _sort_key(resolve_field(document, field_name)),
                reverse=direction is SortDirection.DESC,
            )
        return ordered


@dataclass(frozen=True)
class Limit(Stage):
    count: int

    def __post_init__(self) -> None:
        if self.count < 0:
            raise InvalidQueryError(f"limit must be non-negative, got {self.count}")

    def apply(self, documents: list[Document]) -> list[Document]:
        return documents[: self.count]


@dataclass(frozen=True)
class Skip(Stage):
    count: int

    def __post_init__(self) -> None:
        if self.count < 0:
            raise InvalidQueryError(f"skip must be non-negative, got {self.count}")

    def apply(self, documents: list[Document]) -> list[Document]:
        return documents[self.count :]


def _sort_key(value: Any) -> tuple[int, Any]:
    """Total order over mixed document values: null, numbers, text, rest."""
    if value is MISSING or value is None:
        return (0, 0)
    if isinstance(value, (bool, int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    return (3, json.dumps(value, sort_keys=True, default=str))


def _require_int(tag: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQueryError(f"{tag} requires an integer, got {value!r}")
    return value


def _parse_project(spec: Any) -> Project:
    if isinstance(spec, str):
        return Project((spec,))
    if isinstance(spec, Mapping):
        return Project(tuple(name for name, include in spec.items() if include))
    if isinstance(spec, (list, tuple)):
        return Project(tuple(spec))
    raise InvalidQueryError(f"project expects a list or mapping of fields, got {spec!r}")


def _parse_group(spec: Any) -> Group:
    if not isinstance(spec, Mapping):
        raise InvalidQueryError(f"group expects a mapping, got {spec!r}")
    by = spec.get("by", spec.get("_id"))
    if by is not None and not isinstance(by, str):
        raise InvalidQueryError(f"group key must be a field name, got {by!r}")
    if isinstance(by, str):
        by = by.lstrip("$")

    accumulators: dict[str, Accumulator] = {}
    for name, definition in spec.items():
        if name in ("by", "_id"):
            continue
        if isinstance(definition, Accumulator):
            accumulators[name] = definition
            continue
        if not isinstance(definition, Mapping) or len(definition) != 1:
            raise InvalidQueryError(
                f"Accumulator '{name}' must be a single-entry mapping like {{'$sum': 'field'}}"
            )
        ((tag, source),) = definition.items()
        if not isinstance(source, str):
            raise InvalidQueryError(f"Accumulator '{name}' source must be a field name")
        accumulators[name] = Accumulator(AccumulatorOp.parse(tag), source.lstrip("$"))
    return Group(by, accumulators)


def _parse_sort(spec: Any) -> Sort:
    if isinstance(spec, str):
        return Sort(((spec, SortDirection.ASC),))
    if isinstance(spec, Mapping):
        items: Iterable[Any] = spec.items()
    elif isinstance(spec, (list, tuple)):
        items = spec
    else:
        raise InvalidQueryError(f"sort expects a mapping or list of keys, got {spec!r}")

    keys: list[tuple[str, SortDirection]] = []
    for item in items:
        if isinstance(item, str):
            keys.append((item, SortDirection.ASC))
        elif (
            isinstance(item, (list, tuple)) and len(item) == 2 and isinstance(item[0], str)
        ):
            name, direction = item
            keys.append((name, SortDirection.parse(direction)))
        else:
            raise InvalidQueryError(
                f"sort key must be a field name or a (field, direction) pair, got {item!r}"
            )
    return Sort(tuple(keys))


_STAGE_PARSERS = {
    "match": lambda spec: Match(spec),
    "project": _parse_project,
    "group": _parse_group,
    "sort": _parse_sort,
    "limit": lambda spec: Limit(_require_int("limit", spec)),
    "skip": lambda spec: Skip(_require_int("skip", spec)),
}


def parse_stage(stage: Stage | Mapping[str, Any]) -> Stage:
    """Parse a ``{"$tag": spec}`` mapping into a Stage.

    Raises:
        InvalidQueryError: On unknown tags or malformed specs.
    """
    if isinstance(stage, Stage):
        return stage
    if not isinstance(stage, Mapping) or len(stage) != 1:
        raise InvalidQueryError(f"A pipeline stage must be a single-entry mapping: {stage!r}")
    ((tag, spec),) = stage.items()
    parser = _STAGE_PARSERS.get(str(tag).lstrip("$").lower())
    if parser is None:
        raise InvalidQueryError(f"Unknown pipeline stage '{tag}'")
    return parser(spec)


def parse_pipeline(pipeline: Sequence[Stage | Mapping[str, Any]]) -> list[Stage]:
    if isinstance(pipeline, (str, bytes)) or not isinstance(pipeline, Sequence):
        raise InvalidQueryError("A pipeline must be a list of stages")
    return [parse_stage(stage) for stage in pipeline]


def run_pipeline(
    documents: list[Document], pipeline: Sequence[Stage | Mapping[str, Any]]
) -> list[Document]:
    """Run every stage in order over a copy of the documents."""
    stages = parse_pipeline(pipeline)
    results = copy.deepcopy(documents)
    for stage in stages:
        results = stage.apply(results)
    return results
