"""The standard message header of the wire protocol."""

from __future__ import annotations

import enum
import json
import struct
from dataclasses import dataclass
from typing import BinaryIO

from ..lazyerrors import errorf

MSG_HEADER_LEN = 16
MAX_MSG_LEN = 48_000_000

_HEADER = struct.Struct("<iiii")
_HEADER_OUT = struct.Struct("<IIII")
_UINT32_MASK = 0xFFFFFFFF


class OpCode(enum.IntEnum):
    """Wire protocol operation codes."""

    OP_REPLY = 1
    OP_UPDATE = 2001
    OP_INSERT = 2002
    OP_GET_BY_OID = 2003
    OP_QUERY = 2004
    OP_GET_MORE = 2005
    OP_DELETE = 2006
    OP_KILL_CURSORS = 2007
    OP_COMPRESSED = 2012
    OP_MSG = 2013

    def __str__(self) -> str:
        return self.name


def _opcode(value: int) -> OpCode | int:
    try:
        return OpCode(value)
    except ValueError:
        return value


def _opcode_name(value: int) -> str:
    code = _opcode(value)
    return str(code) if isinstance(code, OpCode) else f"OpCode({value})"


@dataclass
class MsgHeader:
    """Header preceding every message."""

    message_length: int = 0
    request_id: int = 0
    response_to: int = 0
    op_code: OpCode | int = 0

    @classmethod
    def read_from(cls, stream: BinaryIO) -> MsgHeader:
        """Read a header; raise EOFError if the stream is at its end."""
        data = stream.read(MSG_HEADER_LEN)
        if not data:
            raise EOFError("end of stream")
        if len(data) != MSG_HEADER_LEN:
            raise errorf(
                "expected {}, read {}: unexpected EOF", MSG_HEADER_LEN, len(data)
            )
        length, request_id, response_to, op_code = _HEADER.unpack(data)
        header = cls(length, request_id, response_to, _opcode(op_code))
        if not MSG_HEADER_LEN <= length <= MAX_MSG_LEN:
            raise errorf("invalid message length {}", length)
        return header

    def write_to(self, stream: BinaryIO) -> None:
        stream.write(self.to_bytes())

    def to_bytes(self) -> bytes:
        return _HEADER_OUT.pack(
            self.message_length & _UINT32_MASK,
            self.request_id & _UINT32_MASK,
            self.response_to & _UINT32_MASK,
            int(self.op_code) & _UINT32_MASK,
        )

    def to_json(self) -> str:
        return json.dumps(
            {
                "MessageLength": self.message_length,
                "RequestID": self.request_id,
                "ResponseTo": self.response_to,
                "OpCode": _opcode_name(int(self.op_code)),
            },
            separators=(",", ":"),
        )