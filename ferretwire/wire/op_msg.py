"""OP_MSG: the extensible message format of the wire protocol."""

from __future__ import annotations

import base64
import datetime as _dt
import io
import json
import math
import struct
from dataclasses import dataclass, field
from typing import Any, BinaryIO

from ..bsoncodec import CodecError, read_cstring, read_document, to_bson, write_cstring
from ..bsontypes import (
    Array,
    Binary,
    Document,
    Int64,
    ObjectID,
    Regex,
    Timestamp,
    TypesError,
    convert_document,
    make_document,
)
from ..lazyerrors import errorf, new, wrap
from .flags import OpMsgFlagBit, OpMsgFlags

_UINT32 = struct.Struct("<I")
_INT32 = struct.Struct("<i")
_EPOCH = _dt.datetime(1970, 1, 1, tzinfo=_dt.timezone.utc)
_MS = _dt.timedelta(milliseconds=1)


def _has_bytes(stream: BinaryIO, n: int) -> bool:
    """Tell whether at least n bytes remain in the stream, without consuming them."""
    if stream.seekable():
        pos = stream.tell()
        data = stream.read(n)
        stream.seek(pos)
        return len(data) == n
    peek = getattr(stream, "peek", None)
    if peek is None:
        raise TypeError("stream must be seekable or support peek()")
    return len(peek(n)) >= n


def _read_exact(stream: BinaryIO, n: int) -> bytes:
    data = stream.read(n)
    if len(data) != n:
        raise errorf("expected {}, read {}: unexpected EOF", n, len(data))
    return data


def _read_doc(stream: BinaryIO) -> Document:
    try:
        return convert_document(read_document(stream))
    except (CodecError, TypesError) as e:
        raise wrap(e) from e


def _encode_doc(doc: Document) -> bytes:
    try:
        return to_bson(doc)
    except (CodecError, TypesError) as e:
        raise wrap(e) from e


def _to_jsonable(value: Any) -> Any:
    """Convert a BSON value to a JSON-compatible structure (extended JSON style)."""
    if isinstance(value, Document):
        return {k: _to_jsonable(value.get(k)) for k in value.keys()}
    if isinstance(value, Array):
        return [_to_jsonable(v) for v in value]
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, Timestamp):
        return {"$timestamp": {"t": int(value) >> 32, "i": int(value) & 0xFFFFFFFF}}
    if isinstance(value, Int64):
        return {"$numberLong": str(int(value))}
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        if math.isfinite(value):
            return value
        if math.isnan(value):
            return {"$numberDouble": "NaN"}
        return {"$numberDouble": "Infinity" if value > 0 else "-Infinity"}
    if isinstance(value, Binary):
        return {
            "$binary": {
                "base64": base64.b64encode(value.data).decode("ascii"),
                "subType": f"{int(value.subtype):02x}",
            }
        }
    if isinstance(value, ObjectID):
        return {"$oid": value.data.hex()}
    if isinstance(value, _dt.datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=_dt.timezone.utc)
        return {"$date": {"$numberLong": str((dt - _EPOCH) // _MS)}}
    if isinstance(value, Regex):
        return {"$regularExpression": {"pattern": value.pattern, "options": value.options}}
    raise TypeError(f"unsupported type: {type(value).__name__}")


@dataclass
class OpMsgSection:
    """One section of an OP_MSG: kind 0 holds one body document, kind 1 a sequence."""

    kind: int = 0
    identifier: str = ""
    documents: list[Document] = field(default_factory=list)


@dataclass
class OpMsg:
    """An OP_MSG message body."""

    flag_bits: OpMsgFlags = OpMsgFlags(0)
    checksum: int = 0
    sections: list[OpMsgSection] = field(default_factory=list)

    def set_sections(self, *args: OpMsgSection) -> None:
        """Replace the sections and check that they form a valid document."""
        self.sections = list(args)
        self.document()

    def document(self) -> Document:
        """Merge the sections into one document."""
        doc = Document()
        for section in self.sections:
            if section.kind == 0:
                if len(section.documents) != 1:
                    raise errorf(
                        "wire.OpMsg.Document: {} documents in kind 0 section",
                        len(section.documents),
                    )
                if len(doc):
                    raise errorf(
                        "wire.OpMsg.Document: doc is not empty already: {}", doc.to_dict()
                    )
                # shallow copy, so that kind 1 sections do not modify the original
                doc = make_document()
                source = section.documents[0]
                for key in source.keys():
                    doc.set(key, source.get(key))
            elif section.kind == 1:
                if section.identifier == "":
                    raise new("wire.OpMsg.Document: empty section identifier")
                if not len(doc):
                    raise new("wire.OpMsg.Document: doc is empty")
                if section.identifier in doc:
                    raise errorf(
                        "wire.OpMsg.Document: doc already has {!r} key", section.identifier
                    )
                doc.set(section.identifier, Array(section.documents))
            else:
                raise errorf("wire.OpMsg.Document: unknown kind {}", section.kind)
        return doc

    def read_from(self, stream: BinaryIO) -> None:
        """Read flags, sections and an optional checksum from a binary stream."""
        (flags,) = _UINT32.unpack(_read_exact(stream, 4))
        self.flag_bits = OpMsgFlags(flags)
        checksum_present = self.flag_bits.flag_set(OpMsgFlagBit.CHECKSUM_PRESENT)

        while True:
            kind = _read_exact(stream, 1)[0]
            if kind == 0:
                section = OpMsgSection(0, "", [_read_doc(stream)])
            elif kind == 1:
                (size,) = _INT32.unpack(_read_exact(stream, 4))
                if size < 4:
                    raise errorf("invalid section size {}", size)
                sec = io.BytesIO(_read_exact(stream, size - 4))
                try:
                    identifier = read_cstring(sec)
                except CodecError as e:
                    raise wrap(e) from e
                documents = []
                while _has_bytes(sec, 1):
                    documents.append(_read_doc(sec))
                section = OpMsgSection(1, identifier, documents)
            else:
                raise errorf("kind is {}", kind)

            self.sections.append(section)

            if not _has_bytes(stream, 5 if checksum_present else 1):
                break

        if checksum_present:
            (self.checksum,) = _UINT32.unpack(_read_exact(stream, 4))

        self.document()

    @classmethod
    def from_bytes(cls, data: bytes) -> OpMsg:
        """Decode an OP_MSG body; all bytes must be consumed."""
        stream = io.BytesIO(data)
        msg = cls()
        msg.read_from(stream)
        remaining = len(data) - stream.tell()
        if remaining:
            raise errorf("unexpected end of the OpMsg: {} extra bytes", remaining)
        return msg

    def to_bytes(self) -> bytes:
        """Encode the OP_MSG body."""
        out = io.BytesIO()
        out.write(_UINT32.pack(int(self.flag_bits)))

        for section in self.sections:
            if section.kind == 0:
                if len(section.documents) != 1:
                    raise errorf(
                        "{} documents in section with kind 0", len(section.documents)
                    )
                out.write(b"\x00")
                out.write(_encode_doc(section.documents[0]))
            elif section.kind == 1:
                sec = io.BytesIO()
                try:
                    write_cstring(sec, section.identifier)
                except CodecError as e:
                    raise wrap(e) from e
                for doc in section.documents:
                    sec.write(_encode_doc(doc))
                payload = sec.getvalue()
                out.write(b"\x01")
                out.write(_INT32.pack(len(payload) + 4))
                out.write(payload)
            else:
                raise errorf("kind is {}", section.kind)

        if self.flag_bits.flag_set(OpMsgFlagBit.CHECKSUM_PRESENT):
            try:
                out.write(_UINT32.pack(self.checksum))
            except struct.error as e:
                raise errorf("invalid checksum {}: {}", self.checksum, e) from e

        return out.getvalue()

    def to_json(self) -> str:
        """Describe the message as JSON."""
        sections = []
        for section in self.sections:
            if section.kind == 0:
                item = {
                    "Document": _to_jsonable(section.documents[0]),
                    "Kind": section.kind,
                }
            elif section.kind == 1:
                item = {
                    "Documents": [_to_jsonable(d) for d in section.documents],
                    "Identifier": section.identifier,
                    "Kind": section.kind,
                }
            else:
                item = {"Kind": section.kind}
            sections.append(item)

        return json.dumps(
            {
                "Checksum": self.checksum,
                "FlagBits": OpMsgFlags(self.flag_bits).strings(),
                "Sections": sections,
            },
            separators=(",", ":"),
        )