"""Value types for BSON data and the ordered Document container."""

from __future__ import annotations

import datetime as _dt
import enum
import json
import re
from dataclasses import dataclass
from typing import Any, Iterator, Mapping

_INT32_MIN, _INT32_MAX = -(2**31), 2**31 - 1
_INT64_MIN, _INT64_MAX = -(2**63), 2**63 - 1
_UINT64_MAX = 2**64 - 1


class TypesError(ValueError):
    """Raised for invalid documents, keys, values and paths."""


def _q(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


class BinarySubtype(enum.IntEnum):
    """BSON binary subtypes."""

    GENERIC = 0x00
    FUNCTION = 0x01
    GENERIC_OLD = 0x02
    UUID_OLD = 0x03
    UUID = 0x04
    MD5 = 0x05
    ENCRYPTED = 0x06
    USER = 0x80

    def __str__(self) -> str:
        return self.name.lower().replace("_", "-")


@dataclass(frozen=True)
class Binary:
    """BSON binary data with a subtype."""

    subtype: BinarySubtype
    data: bytes


@dataclass(frozen=True)
class ObjectID:
    """A 12-byte BSON ObjectId."""

    data: bytes

    def __post_init__(self) -> None:
        if len(self.data) != 12:
            raise TypesError(f"types.ObjectID: expected 12 bytes, got {len(self.data)}")


@dataclass(frozen=True)
class Regex:
    """A BSON regular expression."""

    pattern: str
    options: str = ""


class Timestamp(int):
    """A BSON timestamp (unsigned 64-bit)."""


class Int64(int):
    """A BSON 64-bit integer; plain ints are 32-bit."""


_TYPE_NAMES = {
    bool: "bool",
    float: "float64",
    str: "string",
    int: "int32",
    Int64: "int64",
    Timestamp: "types.Timestamp",
    type(None): "<nil>",
}


def _type_name(value: Any) -> str:
    return _TYPE_NAMES.get(type(value), f"types.{type(value).__name__}")


def _is_valid_key(key: Any) -> bool:
    if not isinstance(key, str) or key == "":
        return False
    try:
        key.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def validate_value(value: Any) -> None:
    """Raise TypesError if value is not a supported BSON value."""
    if isinstance(value, Document):
        value.validate()
        return
    if isinstance(value, Timestamp):
        if not 0 <= value <= _UINT64_MAX:
            raise TypesError(f"types.validateValue: timestamp out of range: {int(value)}")
        return
    if isinstance(value, Int64):
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise TypesError(f"types.validateValue: int64 out of range: {int(value)}")
        return
    if isinstance(value, bool):
        return
    if isinstance(value, int):
        if not _INT32_MIN <= value <= _INT32_MAX:
            raise TypesError(f"types.validateValue: int32 out of range: {value}")
        return
    if value is None or isinstance(
        value, (float, str, Array, Binary, ObjectID, _dt.datetime, Regex)
    ):
        return
    raise TypesError(f"types.validateValue: unsupported type: {type(value).__name__}")


class Array(list):
    """A BSON array."""

    def get(self, index: int) -> Any:
        if not 0 <= index < len(self):
            raise TypesError(
                f"types.Array.Get: index {index} is out of bounds [0-{len(self)})"
            )
        return self[index]

    def set(self, index: int, value: Any) -> None:
        if not 0 <= index < len(self):
            raise TypesError(
                f"types.Array.Set: index {index} is out of bounds [0-{len(self)})"
            )
        try:
            validate_value(value)
        except TypesError as e:
            raise TypesError(f"types.Array.Set: {e}") from e
        self[index] = value

    def get_by_path(self, *args: str) -> Any:
        return get_by_path(self, *args)


class Document:
    """An ordered BSON document without duplicate keys.

    The constructor stores what it is given as is; use make_document or
    convert_document for a validated document.
    """

    def __init__(self, values: Mapping[str, Any] | None = None, keys: list[str] | None = None):
        self._m: dict[str, Any] = dict(values) if values is not None else {}
        self._keys: list[str] = list(keys) if keys is not None else list(self._m)

    def validate(self) -> None:
        if len(self._m) != len(self._keys):
            raise TypesError(
                "types.Document.validate: keys and values count mismatch: "
                f"{len(self._m)} != {len(self._keys)}"
            )
        seen: set[str] = set()
        for key in self._keys:
            if not _is_valid_key(key):
                raise TypesError(f"types.Document.validate: invalid key: {_q(str(key))}")
            if key not in self._m:
                raise TypesError(f"types.Document.validate: key not found: {_q(key)}")
            if key in seen:
                raise TypesError(f"types.Document.validate: duplicate key: {_q(key)}")
            seen.add(key)
            try:
                validate_value(self._m[key])
            except TypesError as e:
                raise TypesError(f"types.Document.validate: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        return dict(self._m)

    def keys(self) -> list[str]:
        return list(self._keys)

    def command(self) -> str:
        """Return the first key in lower case, usually a command name."""
        if not self._keys:
            raise TypesError("types.Document.Command: document is empty")
        return self._keys[0].lower()

    def _add(self, key: str, value: Any) -> None:
        if key in self._m:
            raise TypesError(f"types.Document.add: key already present: {_q(key)}")
        if not _is_valid_key(key):
            raise TypesError(f"types.Document.add: invalid key: {_q(key)}")
        try:
            validate_value(value)
        except TypesError as e:
            raise TypesError(f"types.Document.validate: {e}") from e
        self._keys.append(key)
        self._m[key] = value

    def get(self, key: str) -> Any:
        try:
            return self._m[key]
        except KeyError:
            raise TypesError(f"types.Document.Get: key not found: {_q(key)}") from None

    def get_by_path(self, *args: str) -> Any:
        return get_by_path(self, *args)

    def set(self, key: str, value: Any) -> None:
        if not _is_valid_key(key):
            raise TypesError(f"types.Document.Set: invalid key: {_q(str(key))}")
        try:
            validate_value(value)
        except TypesError as e:
            raise TypesError(f"types.Document.validate: {e}") from e
        if key not in self._m:
            self._keys.append(key)
        self._m[key] = value

    def remove(self, key: str) -> None:
        """Remove key; do nothing if it is absent."""
        if key not in self._m:
            return
        del self._m[key]
        self._keys.remove(key)

    def __contains__(self, key: object) -> bool:
        return key in self._m

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._keys))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Document):
            return NotImplemented
        return self._keys == other._keys and self._m == other._m

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self._m.get(k)!r}" for k in self._keys)
        return f"Document({{{items}}})"


def make_document(*args: Any) -> Document:
    """Build a validated Document from alternating keys and values."""
    if len(args) % 2:
        raise TypesError(f"types.MakeDocument: invalid number of arguments: {len(args)}")
    doc = Document()
    for key, value in zip(args[::2], args[1::2]):
        if not isinstance(key, str):
            raise TypesError(f"types.MakeDocument: invalid key type: {type(key).__name__}")
        try:
            doc._add(key, value)
        except TypesError as e:
            raise TypesError(f"types.MakeDocument: {e}") from e
    return doc


def convert_document(source: Any) -> Document:
    """Make a validated Document from a mapping or an object with to_dict() and keys()."""
    if source is None:
        raise TypesError("types.ConvertDocument: source is None")
    if hasattr(source, "to_dict"):
        doc = Document(source.to_dict(), list(source.keys()))
    else:
        doc = Document(dict(source), list(source.keys()))
    try:
        doc.validate()
    except TypesError as e:
        raise TypesError(f"types.ConvertDocument: {e}") from e
    return doc


_ATOI = re.compile(r"[+-]?[0-9]+")


def get_by_path(value: Any, *args: str) -> Any:
    """Follow a path of array indexes and document keys."""
    for part in args:
        if isinstance(value, Array):
            if not _ATOI.fullmatch(part):
                raise TypesError(
                    f"types.getByPath: strconv.Atoi: parsing {_q(part)}: invalid syntax"
                )
            try:
                value = value.get(int(part))
            except TypesError as e:
                raise TypesError(f"types.getByPath: {e}") from e
        elif isinstance(value, Document):
            try:
                value = value.get(part)
            except TypesError as e:
                raise TypesError(f"types.getByPath: {e}") from e
        else:
            raise TypesError(
                f"types.getByPath: can't access {_type_name(value)} by path {_q(part)}"
            )
    return value