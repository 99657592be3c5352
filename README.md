# ferretwire

Reads and writes MongoDB wire protocol messages and the BSON documents that
travel in them. It uses only the standard library.

## What it provides

- `ferretwire.bsontypes`: ordered BSON documents (`Document`) without
  duplicate keys, arrays (`Array`) and the BSON value types that have no
  built-in Python equivalent (`Binary` with `BinarySubtype`, `ObjectID`,
  `Regex`, `Timestamp`, `Int64`; plain `int` is a 32-bit integer).
  `make_document` and `convert_document` build validated documents,
  `validate_value` checks a single value, and `get_by_path` follows a path of
  array indexes and document keys. Invalid input raises `TypesError`.
- `ferretwire.bsoncodec`: conversion between `Document` and BSON bytes
  (`to_bson`, `from_bson`, `read_document`, `write_document`) and
  NUL-terminated strings (`read_cstring`, `write_cstring`). It handles
  doubles, strings, documents, arrays, binary data, ObjectIds, booleans,
  datetimes, null, regular expressions, 32- and 64-bit integers and
  timestamps; anything else raises `CodecError`.
- `ferretwire.wire.header`: the message header (`MsgHeader`) and operation
  codes (`OpCode`).
- `ferretwire.wire.op_msg`, `ferretwire.wire.op_query`,
  `ferretwire.wire.op_reply`: the `OpMsg` (with `OpMsgSection`), `OpQuery`
  and `OpReply` message bodies, each with `from_bytes`, `to_bytes` and
  `to_json`. `OpMsg.document()` merges the sections into one document.
- `ferretwire.wire.flags`: flag bits and flag sets of those messages
  (`OpMsgFlags`, `OpQueryFlags`, `OpReplyFlags` and their bit enums);
  `str(OpMsgFlags(...))` gives a form such as `[checksumPresent|exhaustAllowed]`.
- `ferretwire.wire.message`: `read_message` / `write_message` for whole
  messages on a binary stream, and `dump_msg_header` / `dump_msg_body` for
  indented JSON descriptions.
- `ferretwire.hexdump`: `dump` produces a canonical hex dump; `parse_dump`
  and `parse_dump_file` read canonical and Wireshark hex dumps back into bytes.
- `ferretwire.lazyerrors`: `LazyError` and the `new`, `wrap` and `errorf`
  helpers, which record the file, line and function where the error was made.
- `ferretwire.pathutil`: `get_by_path`, `set_by_path` and
  `compare_and_set_by_path` for values nested in documents and arrays.
- `ferretwire.ctxutil`: `with_delay(done, delay)` returns a
  `threading.Event` that is set `delay` seconds after `done` is set, and a
  function that sets it at once.
- `ferretwire.logsetup`: `setup(level)` configures the root logger.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
import io

from ferretwire.bsontypes import make_document
from ferretwire.wire.header import MsgHeader, OpCode
from ferretwire.wire.message import read_message, write_message
from ferretwire.wire.op_msg import OpMsg, OpMsgSection

msg = OpMsg()
msg.set_sections(
    OpMsgSection(kind=0, documents=[make_document("ping", 1.0, "$db", "admin")])
)

body = msg.to_bytes()
header = MsgHeader(
    message_length=16 + len(body),
    request_id=1,
    response_to=0,
    op_code=OpCode.OP_MSG,
)

buf = io.BytesIO()
write_message(buf, header, msg)

buf.seek(0)
header, body = read_message(buf)
print(body.document().command())  # "ping"
```

Malformed input raises an exception describing what was wrong; reaching the
end of the stream before a new message begins raises `EOFError`.

## What it does not do

This is a library for encoding and decoding messages. It has no command-line
program, does not listen on a network socket or act as a server, and does not
store documents anywhere. Of the message bodies only `OpMsg`, `OpQuery` and
`OpReply` are decoded; `read_message` raises an error for any other operation
code. OP_MSG checksums are read and written but not verified.