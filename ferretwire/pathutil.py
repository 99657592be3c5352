"""Access and update values nested in documents and arrays by path."""

from __future__ import annotations

import re
from typing import Any

from .bsontypes import Array, Document, TypesError, _type_name

_ATOI = re.compile(r"[+-]?[0-9]+")


def get_by_path(obj: Any, *args: str) -> Any:
    """Return the value at a path of indexes and keys in a document or array."""
    if isinstance(obj, (Array, Document)):
        return obj.get_by_path(*args)
    raise TypesError(f"can't access {_type_name(obj)} by path")


def _index(part: str) -> int:
    if not _ATOI.fullmatch(part):
        raise TypesError(f'strconv.Atoi: parsing "{part}": invalid syntax')
    return int(part)


def set_by_path(obj: Any, value: Any, *args: str) -> None:
    """Set the value at an existing path of indexes and keys."""
    if not args:
        raise ValueError("path is empty")

    current = obj
    last = len(args) - 1
    for i, part in enumerate(args):
        if isinstance(current, Array):
            index = _index(part)
            container, current = current, current.get(index)
            if i == last:
                container.set(index, value)
        elif isinstance(current, Document):
            container, current = current, current.get(part)
            if i == last:
                container.set(part, value)
        else:
            raise TypesError(f"can't access {_type_name(current)} by path \"{part}\"")


def compare_and_set_by_path(expected: Any, actual: Any, delta: float, *args: str) -> None:
    """Check that values at the same path are of one type and within delta,
    then copy the actual value into expected."""
    expected_value = get_by_path(expected, *args)
    actual_value = get_by_path(actual, *args)
    if type(expected_value) is not type(actual_value):
        raise AssertionError(
            f"types differ: {type(expected_value).__name__} != {type(actual_value).__name__}"
        )
    difference = abs(float(expected_value) - float(actual_value))
    if not difference <= delta:
        raise AssertionError(
            f"difference {difference} between {expected_value!r} and "
            f"{actual_value!r} exceeds {delta}"
        )
    set_by_path(expected, actual_value, *args)