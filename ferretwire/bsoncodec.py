"""Binary BSON encoding and decoding of bsontypes values."""

from __future__ import annotations

import datetime as _dt
import io
import struct
from typing import Any, BinaryIO

from .bsontypes import (
    Array,
    Binary,
    BinarySubtype,
    Document,
    Int64,
    ObjectID,
    Regex,
    Timestamp,
    TypesError,
)

_EPOCH = _dt.datetime(1970, 1, 1, tzinfo=_dt.timezone.utc)
_MS = _dt.timedelta(milliseconds=1)


class CodecError(ValueError):
    """Raised for malformed BSON data or values that cannot be encoded."""


def _read_exact(stream: BinaryIO, n: int) -> bytes:
    data = stream.read(n)
    if len(data) != n:
        raise CodecError(f"expected {n} bytes, read {len(data)}")
    return data


def read_cstring(stream: BinaryIO) -> str:
    """Read a NUL-terminated UTF-8 string."""
    out = bytearray()
    while True:
        b = stream.read(1)
        if not b:
            raise CodecError("unexpected end of data in cstring")
        if b == b"\x00":
            break
        out += b
    try:
        return out.decode("utf-8")
    except UnicodeDecodeError as e:
        raise CodecError(f"invalid UTF-8 in cstring: {e}") from e


def write_cstring(stream: BinaryIO, value: str) -> None:
    """Write a NUL-terminated UTF-8 string."""
    if "\x00" in value:
        raise CodecError(f"cstring contains NUL: {value!r}")
    stream.write(value.encode("utf-8") + b"\x00")


def _encode_string(value: str) -> bytes:
    raw = value.encode("utf-8") + b"\x00"
    return struct.pack("<i", len(raw)) + raw


def _encode_elements(items) -> bytes:
    buf = io.BytesIO()
    for key, value in items:
        tag, payload = _encode_value(value)
        buf.write(bytes([tag]))
        write_cstring(buf, key)
        buf.write(payload)
    body = buf.getvalue()
    return struct.pack("<i", len(body) + 5) + body + b"\x00"


def _encode_value(value: Any) -> tuple[int, bytes]:
    if isinstance(value, Document):
        return 0x03, to_bson(value)
    if isinstance(value, Array):
        return 0x04, _encode_elements((str(i), v) for i, v in enumerate(value))
    if isinstance(value, bool):
        return 0x08, b"\x01" if value else b"\x00"
    if isinstance(value, Timestamp):
        return 0x11, struct.pack("<Q", value)
    if isinstance(value, Int64):
        return 0x12, struct.pack("<q", value)
    if isinstance(value, int):
        try:
            return 0x10, struct.pack("<i", value)
        except struct.error as e:
            raise CodecError(f"int32 out of range: {value}") from e
    if isinstance(value, float):
        return 0x01, struct.pack("<d", value)
    if isinstance(value, str):
        return 0x02, _encode_string(value)
    if isinstance(value, Binary):
        return 0x05, struct.pack("<iB", len(value.data), int(value.subtype)) + value.data
    if isinstance(value, ObjectID):
        return 0x07, value.data
    if isinstance(value, _dt.datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=_dt.timezone.utc)
        return 0x09, struct.pack("<q", (dt - _EPOCH) // _MS)
    if value is None:
        return 0x0A, b""
    if isinstance(value, Regex):
        buf = io.BytesIO()
        write_cstring(buf, value.pattern)
        write_cstring(buf, value.options)
        return 0x0B, buf.getvalue()
    raise CodecError(f"unsupported type: {type(value).__name__}")


def to_bson(doc: Document) -> bytes:
    """Encode a Document as BSON bytes."""
    return _encode_elements((k, doc.get(k)) for k in doc.keys())


def write_document(stream: BinaryIO, doc: Document) -> None:
    stream.write(to_bson(doc))


def _read_body(stream: BinaryIO) -> io.BytesIO:
    (length,) = struct.unpack("<i", _read_exact(stream, 4))
    if length < 5:
        raise CodecError(f"invalid document length {length}")
    body = _read_exact(stream, length - 4)
    if body[-1] != 0:
        raise CodecError("document is not NUL-terminated")
    return io.BytesIO(body[:-1])


def _read_elements(stream: BinaryIO):
    body = _read_body(stream)
    while True:
        tag = body.read(1)
        if not tag:
            return
        key = read_cstring(body)
        yield key, _decode_value(tag[0], body)


def _decode_value(tag: int, s: BinaryIO) -> Any:
    if tag == 0x01:
        return struct.unpack("<d", _read_exact(s, 8))[0]
    if tag == 0x02:
        (n,) = struct.unpack("<i", _read_exact(s, 4))
        if n < 1:
            raise CodecError(f"invalid string length {n}")
        raw = _read_exact(s, n)
        if raw[-1] != 0:
            raise CodecError("string is not NUL-terminated")
        try:
            return raw[:-1].decode("utf-8")
        except UnicodeDecodeError as e:
            raise CodecError(f"invalid UTF-8 in string: {e}") from e
    if tag == 0x03:
        return read_document(s)
    if tag == 0x04:
        arr = Array()
        for key, value in _read_elements(s):
            if key != str(len(arr)):
                raise CodecError(f"unexpected array key {key!r}")
            arr.append(value)
        return arr
    if tag == 0x05:
        n, sub = struct.unpack("<iB", _read_exact(s, 5))
        if n < 0:
            raise CodecError(f"invalid binary length {n}")
        try:
            subtype = BinarySubtype(sub)
        except ValueError as e:
            raise CodecError(f"unknown binary subtype {sub:#x}") from e
        return Binary(subtype, _read_exact(s, n))
    if tag == 0x07:
        return ObjectID(_read_exact(s, 12))
    if tag == 0x08:
        b = _read_exact(s, 1)[0]
        if b > 1:
            raise CodecError(f"invalid bool value {b}")
        return b == 1
    if tag == 0x09:
        (ms,) = struct.unpack("<q", _read_exact(s, 8))
        try:
            return _EPOCH + ms * _MS
        except OverflowError as e:
            raise CodecError(f"datetime out of range: {ms}") from e
    if tag == 0x0A:
        return None
    if tag == 0x0B:
        return Regex(read_cstring(s), read_cstring(s))
    if tag == 0x10:
        return struct.unpack("<i", _read_exact(s, 4))[0]
    if tag == 0x11:
        return Timestamp(struct.unpack("<Q", _read_exact(s, 8))[0])
    if tag == 0x12:
        return Int64(struct.unpack("<q", _read_exact(s, 8))[0])
    raise CodecError(f"unsupported BSON type {tag:#04x}")


def read_document(stream: BinaryIO) -> Document:
    """Read one BSON document from a binary stream."""
    doc = Document()
    for key, value in _read_elements(stream):
        if key in doc:
            raise CodecError(f"duplicate key {key!r}")
        try:
            doc.set(key, value)
        except TypesError as e:
            raise CodecError(str(e)) from e
    return doc


def from_bson(data: bytes) -> Document:
    """Decode exactly one BSON document from bytes."""
    stream = io.BytesIO(data)
    doc = read_document(stream)
    if stream.read(1):
        raise CodecError("extra data after document")
    return doc