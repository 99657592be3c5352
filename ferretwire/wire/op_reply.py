"""OP_REPLY: the legacy reply message of the wire protocol."""

from __future__ import annotations

import io
import json
import struct
from dataclasses import dataclass, field
from typing import BinaryIO

from ..bsontypes import Document
from ..lazyerrors import LazyError, errorf
from .flags import OpReplyFlags
from .op_msg import _encode_doc, _read_doc, _read_exact, _to_jsonable

MAX_NUMBER_RETURNED = 1000

_FIXED = struct.Struct("<Iqii")


@dataclass
class OpReply:
    """A reply sent by the database in response to an OP_QUERY."""

    response_flags: OpReplyFlags = OpReplyFlags(0)
    cursor_id: int = 0
    starting_from: int = 0
    number_returned: int = 0
    documents: list[Document] = field(default_factory=list)

    def read_from(self, stream: BinaryIO) -> None:
        """Read the reply fields and documents from a binary stream."""
        try:
            flags, cursor_id, starting_from, number_returned = _FIXED.unpack(
                _read_exact(stream, _FIXED.size)
            )
        except LazyError as e:
            raise errorf("wire.OpReply.ReadFrom (binary.Read): {}", e) from e

        self.response_flags = OpReplyFlags(flags)
        self.cursor_id = cursor_id
        self.starting_from = starting_from
        self.number_returned = number_returned

        if not 0 <= number_returned <= MAX_NUMBER_RETURNED:
            raise errorf("wire.OpReply.ReadFrom: invalid NumberReturned {}", number_returned)

        documents = []
        for _ in range(number_returned):
            try:
                documents.append(_read_doc(stream))
            except LazyError as e:
                raise errorf("wire.OpReply.ReadFrom: {}", e) from e
        self.documents = documents

    @classmethod
    def from_bytes(cls, data: bytes) -> OpReply:
        """Decode an OP_REPLY body; all bytes must be consumed."""
        stream = io.BytesIO(data)
        reply = cls()
        try:
            reply.read_from(stream)
        except LazyError as e:
            raise errorf("wire.OpReply.UnmarshalBinary: {}", e) from e
        remaining = len(data) - stream.tell()
        if remaining:
            raise errorf("unexpected end of the OpReply: {} extra bytes", remaining)
        return reply

    def to_bytes(self) -> bytes:
        """Encode the OP_REPLY body."""
        if len(self.documents) != self.number_returned:
            raise errorf(
                "wire.OpReply.MarshalBinary: len(Documents)={}, NumberReturned={}",
                len(self.documents),
                self.number_returned,
            )
        out = io.BytesIO()
        try:
            out.write(
                _FIXED.pack(
                    int(self.response_flags),
                    self.cursor_id,
                    self.starting_from,
                    self.number_returned,
                )
            )
        except struct.error as e:
            raise errorf("wire.OpReply.MarshalBinary (binary.Write): {}", e) from e
        for doc in self.documents:
            out.write(_encode_doc(doc))
        return out.getvalue()

    def to_json(self) -> str:
        """Describe the reply as JSON."""
        return json.dumps(
            {
                "CursorID": self.cursor_id,
                "Documents": [_to_jsonable(d) for d in self.documents],
                "NumberReturned": self.number_returned,
                "ResponseFlags": OpReplyFlags(self.response_flags).strings(),
                "StartingFrom": self.starting_from,
            },
            separators=(",", ":"),
        )