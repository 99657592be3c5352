import datetime as dt
import json
import struct

import pytest

from ferretwire.bsontypes import (
    Array,
    Binary,
    BinarySubtype,
    ObjectID,
    make_document,
)
from ferretwire.lazyerrors import LazyError
from ferretwire.wire.flags import OpMsgFlagBit, OpMsgFlags
from ferretwire.wire.op_msg import OpMsg, OpMsgSection

LAST_UPDATE = dt.datetime(2020, 2, 15, 9, 34, 33, tzinfo=dt.timezone.utc)

OK_DOC_BSON = (
    b"\x11\x00\x00\x00\x01ok\x00" + b"\x00\x00\x00\x00\x00\x00\xf0\x3f" + b"\x00"
)


def handshake5():
    return OpMsg(
        sections=[
            OpMsgSection(
                documents=[
                    make_document(
                        "buildInfo", 1,
                        "lsid", make_document(
                            "id", Binary(
                                BinarySubtype.UUID,
                                bytes([0xA3, 0x19, 0xF2, 0xB4, 0xA1, 0x75, 0x40, 0xC7,
                                       0xB8, 0xE7, 0xA3, 0xA3, 0x2E, 0xC2, 0x56, 0xBE]),
                            ),
                        ),
                        "$db", "admin",
                    )
                ]
            )
        ]
    )


def handshake6():
    return OpMsg(
        sections=[
            OpMsgSection(
                documents=[
                    make_document(
                        "version", "5.0.0",
                        "gitVersion", "1184f004a99660de6f5e745573419bda8a28c0e9",
                        "modules", Array(),
                        "allocator", "tcmalloc",
                        "javascriptEngine", "mozjs",
                        "sysInfo", "deprecated",
                        "versionArray", Array([5, 0, 0, 0]),
                        "openssl", make_document(
                            "running", "OpenSSL 1.1.1f  31 Mar 2020",
                            "compiled", "OpenSSL 1.1.1f  31 Mar 2020",
                        ),
                        "buildEnvironment", make_document(
                            "distmod", "ubuntu2004",
                            "distarch", "x86_64",
                            "cc", "/opt/mongodbtoolchain/v3/bin/gcc: gcc (GCC) 8.5.0",
                            "cxx", "/opt/mongodbtoolchain/v3/bin/g++: g++ (GCC) 8.5.0",
                            "target_arch", "x86_64",
                            "target_os", "linux",
                        ),
                        "bits", 64,
                        "debug", False,
                        "maxBsonObjectSize", 16777216,
                        "storageEngines", Array(["devnull", "ephemeralForTest", "wiredTiger"]),
                        "ok", 1.0,
                    )
                ]
            )
        ]
    )


def actor(oid_bytes, actor_id, first, last):
    return make_document(
        "_id", ObjectID(oid_bytes),
        "actor_id", actor_id,
        "first_name", first,
        "last_name", last,
        "last_update", LAST_UPDATE,
    )


def import_msg():
    return OpMsg(
        sections=[
            OpMsgSection(
                documents=[
                    make_document(
                        "insert", "actor",
                        "ordered", True,
                        "writeConcern", make_document("w", "majority"),
                        "$db", "monila",
                    )
                ]
            ),
            OpMsgSection(
                kind=1,
                identifier="documents",
                documents=[
                    actor(bytes([0x61, 0x2E, 0xC2, 0x80, 0, 0, 0, 1, 0, 0, 0, 1]), 1,
                          "PENELOPE", "GUINESS"),
                    actor(bytes([0x61, 0x2E, 0xC2, 0x80, 0, 0, 0, 2, 0, 0, 0, 2]), 2,
                          "NICK", "WAHLBERG"),
                ],
            ),
        ]
    )


def dollar_dot():
    return OpMsg(
        sections=[
            OpMsgSection(
                documents=[
                    make_document(
                        "insert", "test",
                        "documents", Array([
                            make_document(
                                "$.", True,
                                "_id", ObjectID(bytes([0x61, 0xAF, 0x7C, 0x02, 0x75, 0x48,
                                                       0x20, 0xA5, 0x92, 0x3E, 0xA4, 0x97])),
                            )
                        ]),
                        "ordered", True,
                        "$db", "test",
                    )
                ]
            )
        ]
    )


@pytest.mark.parametrize(
    "factory, body_len",
    [(handshake5, 92 - 16), (import_msg, 327 - 16), (dollar_dot, 113 - 16)],
)
def test_body_length_matches_source_headers(factory, body_len):
    msg = OpMsg(sections=factory().sections)
    assert len(msg.to_bytes()) == body_len


@pytest.mark.parametrize("factory", [handshake5, handshake6, import_msg, dollar_dot])
def test_round_trip(factory):
    msg = factory()
    data = msg.to_bytes()
    decoded = OpMsg.from_bytes(data)
    assert decoded == msg
    assert decoded.to_bytes() == data


def test_simple_body_bytes():
    msg = OpMsg(sections=[OpMsgSection(documents=[make_document("ok", 1.0)])])
    assert msg.to_bytes() == b"\x00\x00\x00\x00" + b"\x00" + OK_DOC_BSON


def test_kind1_section_bytes_and_document():
    data = (
        b"\x00\x00\x00\x00" + b"\x00" + OK_DOC_BSON
        + b"\x01" + b"\x06\x00\x00\x00" + b"d\x00"
    )
    msg = OpMsg.from_bytes(data)
    assert msg.sections[1] == OpMsgSection(1, "d", [])
    doc = msg.document()
    assert doc.keys() == ["ok", "d"]
    assert doc.get("d") == Array()
    assert msg.to_bytes() == data


def test_document_merges_sequence():
    msg = import_msg()
    doc = msg.document()
    assert doc.keys() == ["insert", "ordered", "writeConcern", "$db", "documents"]
    assert doc.get("documents") == Array(msg.sections[1].documents)
    assert msg.sections[0].documents[0].keys() == ["insert", "ordered", "writeConcern", "$db"]


def test_document_without_sections_is_empty():
    assert len(OpMsg().document()) == 0


def test_checksum_round_trip():
    msg = OpMsg(
        flag_bits=OpMsgFlags(OpMsgFlagBit.CHECKSUM_PRESENT),
        checksum=0x12345678,
        sections=[OpMsgSection(documents=[make_document("ok", 1.0)])],
    )
    data = msg.to_bytes()
    assert data[:4] == b"\x01\x00\x00\x00"
    assert data[-4:] == b"\x78\x56\x34\x12"
    decoded = OpMsg.from_bytes(data)
    assert decoded.checksum == 0x12345678
    assert decoded == msg


def test_set_sections_two_documents_in_kind0():
    msg = OpMsg()
    with pytest.raises(LazyError) as exc:
        msg.set_sections(OpMsgSection(documents=[make_document("a", 1), make_document("b", 2)]))
    assert "2 documents in kind 0 section" in str(exc.value)


def test_set_sections_kind1_first():
    with pytest.raises(LazyError) as exc:
        OpMsg().set_sections(OpMsgSection(kind=1, identifier="documents"))
    assert "doc is empty" in str(exc.value)


def test_set_sections_empty_identifier():
    with pytest.raises(LazyError) as exc:
        OpMsg().set_sections(
            OpMsgSection(documents=[make_document("insert", "x")]),
            OpMsgSection(kind=1),
        )
    assert "empty section identifier" in str(exc.value)


def test_set_sections_duplicate_identifier():
    with pytest.raises(LazyError) as exc:
        OpMsg().set_sections(
            OpMsgSection(documents=[make_document("documents", "x")]),
            OpMsgSection(kind=1, identifier="documents"),
        )
    assert "already has 'documents' key" in str(exc.value)


def test_set_sections_two_kind0():
    with pytest.raises(LazyError) as exc:
        OpMsg().set_sections(
            OpMsgSection(documents=[make_document("a", 1)]),
            OpMsgSection(documents=[make_document("b", 1)]),
        )
    assert "doc is not empty already" in str(exc.value)


def test_set_sections_unknown_kind():
    with pytest.raises(LazyError) as exc:
        OpMsg().set_sections(OpMsgSection(kind=2))
    assert "unknown kind 2" in str(exc.value)


def test_set_sections_valid_stores_sections():
    msg = OpMsg()
    section = OpMsgSection(documents=[make_document("ping", 1)])
    msg.set_sections(section)
    assert msg.sections == [section]
    assert msg.document().command() == "ping"


def test_from_bytes_unknown_kind():
    with pytest.raises(LazyError) as exc:
        OpMsg.from_bytes(b"\x00\x00\x00\x00\x02")
    assert "kind is 2" in str(exc.value)


def test_from_bytes_truncated():
    data = OpMsg(sections=[OpMsgSection(documents=[make_document("ok", 1.0)])]).to_bytes()
    with pytest.raises(LazyError):
        OpMsg.from_bytes(data[:-3])


def test_from_bytes_checksum_with_trailing_bytes():
    data = b"\x01\x00\x00\x00" + b"\x00" + OK_DOC_BSON + b"\x01\x02"
    with pytest.raises(LazyError):
        OpMsg.from_bytes(data)


def test_to_bytes_kind0_wrong_count():
    msg = OpMsg(sections=[OpMsgSection(documents=[])])
    with pytest.raises(LazyError) as exc:
        msg.to_bytes()
    assert "0 documents in section with kind 0" in str(exc.value)


def test_to_bytes_unknown_kind():
    with pytest.raises(LazyError) as exc:
        OpMsg(sections=[OpMsgSection(kind=5)]).to_bytes()
    assert "kind is 5" in str(exc.value)


def test_to_json_simple():
    msg = OpMsg(sections=[OpMsgSection(documents=[make_document("ok", 1.0)])])
    assert json.loads(msg.to_json()) == {
        "Checksum": 0,
        "FlagBits": [],
        "Sections": [{"Document": {"ok": 1.0}, "Kind": 0}],
    }


def test_to_json_sequence_and_flags():
    msg = OpMsg(
        flag_bits=OpMsgFlags(OpMsgFlagBit.MORE_TO_COME),
        sections=[
            OpMsgSection(documents=[make_document("insert", "c")]),
            OpMsgSection(kind=1, identifier="documents", documents=[make_document("a", 1)]),
        ],
    )
    data = json.loads(msg.to_json())
    assert data["FlagBits"] == ["moreToCome"]
    assert data["Sections"][1] == {
        "Documents": [{"a": 1}],
        "Identifier": "documents",
        "Kind": 1,
    }


def test_header_length_field_layout():
    body = handshake5().to_bytes()
    (flags,) = struct.unpack("<I", body[:4])
    assert flags == 0
    assert body[4] == 0