"""Hashable keys for document values.

Hash indexes and the uniqueness registry key their entries by field value.
Document values may be unhashable (objects, arrays), and Python treats
``True == 1``, so values are frozen before they are used as keys. Two
values freeze to equal keys exactly when query equality holds for them:
numbers compare by value (``1 == 1.0``), booleans never equal numbers at
any depth, and objects ignore key order.
"""

from __future__ import annotations

from typing import Any, Hashable, Mapping


def freeze_value(value: Any) -> Hashable:
    """Return a hashable key that is equal only for equal document values.

    Example:
        >>> freeze_value(True) == freeze_value(1)
        False
        >>> freeze_value({"b": 1, "a": 2}) == freeze_value({"a": 2.0, "b": 1})
        True
        >>> freeze_value([True]) == freeze_value([1])
        False
    """
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, Mapping):
        return (
            "object",
            frozenset((key, freeze_value(item)) for key, item in value.items()),
        )
    if isinstance(value, (list, tuple)):
        return ("array", tuple(freeze_value(item) for item in value))
    if isinstance(value, (set, frozenset)):
        return ("set", frozenset(freeze_value(item) for item in value))
    return value


def is_container(value: Any) -> bool:
    """True for values that freeze_value turns into tagged tuples."""
    return isinstance(value, (Mapping, list, tuple, set, frozenset))
