"""Reading, writing and dumping whole wire protocol messages."""

from __future__ import annotations

import json
from typing import BinaryIO, Union

from ..lazyerrors import LazyError, errorf, wrap
from .header import MSG_HEADER_LEN, MsgHeader, OpCode
from .op_msg import OpMsg
from .op_query import OpQuery
from .op_reply import OpReply

MsgBody = Union[OpMsg, OpQuery, OpReply]

_BODY_TYPES = {
    OpCode.OP_REPLY: OpReply,
    OpCode.OP_MSG: OpMsg,
    OpCode.OP_QUERY: OpQuery,
}


def _opcode_label(value: int) -> str:
    try:
        return str(OpCode(value))
    except ValueError:
        return f"OpCode({value})"


def read_message(stream: BinaryIO) -> tuple[MsgHeader, MsgBody]:
    """Read one message; raise EOFError if the stream is at its end."""
    try:
        header = MsgHeader.read_from(stream)
    except EOFError:
        raise
    except LazyError as e:
        raise wrap(e) from e

    size = header.message_length - MSG_HEADER_LEN
    data = stream.read(size)
    if len(data) != size:
        raise errorf("expected {}, read {}: unexpected EOF", size, len(data))

    body_type = _BODY_TYPES.get(int(header.op_code))
    if body_type is None:
        raise errorf("unhandled opcode {}", _opcode_label(int(header.op_code)))

    try:
        body = body_type.from_bytes(data)
    except (LazyError, ValueError) as e:
        raise wrap(e) from e
    return header, body


def write_message(stream: BinaryIO, header: MsgHeader, body: MsgBody) -> None:
    """Write a header and body; the header length must match the encoded body."""
    try:
        data = body.to_bytes()
    except (LazyError, ValueError) as e:
        raise wrap(e) from e

    expected = len(data) + MSG_HEADER_LEN
    if expected != header.message_length:
        raise ValueError(
            f"expected length {len(data)} (marshaled body size) + {MSG_HEADER_LEN} "
            f"(fixed marshaled header size) = {expected}, got {header.message_length}"
        )

    header.write_to(stream)
    stream.write(data)


def _indent(text: str) -> str:
    return json.dumps(json.loads(text), indent=2, ensure_ascii=False).strip()


def dump_msg_header(header: MsgHeader) -> str:
    """Return the header as indented JSON."""
    return _indent(header.to_json())


def dump_msg_body(body: MsgBody) -> str:
    """Return the body as indented JSON."""
    return _indent(body.to_json())