"""OP_QUERY: the legacy query message of the wire protocol."""

from __future__ import annotations

import io
import json
import struct
from dataclasses import dataclass, field
from typing import BinaryIO

from ..bsoncodec import CodecError, read_cstring, write_cstring
from ..lazyerrors import LazyError, errorf, wrap
from .flags import OpQueryFlags
from .op_msg import _encode_doc, _has_bytes, _read_doc, _read_exact, _to_jsonable
from ..bsontypes import Document

_UINT32 = struct.Struct("<I")
_TWO_INT32 = struct.Struct("<ii")


@dataclass
class OpQuery:
    """A query for documents in a collection."""

    flags: OpQueryFlags = OpQueryFlags(0)
    full_collection_name: str = ""
    number_to_skip: int = 0
    number_to_return: int = 0
    query: Document = field(default_factory=Document)
    return_fields_selector: Document | None = None

    def read_from(self, stream: BinaryIO) -> None:
        """Read the query fields from a binary stream."""
        try:
            (flags,) = _UINT32.unpack(_read_exact(stream, 4))
        except LazyError as e:
            raise errorf("wire.OpQuery.ReadFrom (binary.Read): {}", e) from e
        self.flags = OpQueryFlags(flags)

        try:
            self.full_collection_name = read_cstring(stream)
        except CodecError as e:
            raise wrap(e) from e

        self.number_to_skip, self.number_to_return = _TWO_INT32.unpack(
            _read_exact(stream, 8)
        )
        self.query = _read_doc(stream)

        self.return_fields_selector = None
        if _has_bytes(stream, 1):
            self.return_fields_selector = _read_doc(stream)

    @classmethod
    def from_bytes(cls, data: bytes) -> OpQuery:
        """Decode an OP_QUERY body; all bytes must be consumed."""
        stream = io.BytesIO(data)
        query = cls()
        try:
            query.read_from(stream)
        except LazyError as e:
            raise errorf("wire.OpQuery.UnmarshalBinary: {}", e) from e
        remaining = len(data) - stream.tell()
        if remaining:
            raise errorf("unexpected end of the OpQuery: {} extra bytes", remaining)
        return query

    def to_bytes(self) -> bytes:
        """Encode the OP_QUERY body."""
        out = io.BytesIO()
        out.write(_UINT32.pack(int(self.flags)))
        try:
            write_cstring(out, self.full_collection_name)
        except CodecError as e:
            raise wrap(e) from e
        try:
            out.write(_TWO_INT32.pack(self.number_to_skip, self.number_to_return))
        except struct.error as e:
            raise errorf("wire.OpQuery.MarshalBinary: {}", e) from e
        out.write(_encode_doc(self.query))
        if self.return_fields_selector is not None:
            out.write(_encode_doc(self.return_fields_selector))
        return out.getvalue()

    def to_json(self) -> str:
        """Describe the query as JSON."""
        data = {
            "Flags": OpQueryFlags(self.flags).strings(),
            "FullCollectionName": self.full_collection_name,
            "NumberToReturn": self.number_to_return,
            "NumberToSkip": self.number_to_skip,
            "Query": _to_jsonable(self.query),
        }
        if self.return_fields_selector is not None:
            data["ReturnFieldsSelector"] = _to_jsonable(self.return_fields_selector)
        return json.dumps(data, separators=(",", ":"))