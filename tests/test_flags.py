import json

import pytest

from ferretwire.wire.flags import (
    OpMsgFlagBit,
    OpMsgFlags,
    OpQueryFlagBit,
    OpQueryFlags,
    OpReplyFlagBit,
    OpReplyFlags,
    flag_strings,
)


def test_op_msg_flag_bits_string():
    assert str(OpMsgFlags(0)) == "[]"
    assert str(OpMsgFlags(OpMsgFlagBit.CHECKSUM_PRESENT)) == "[checksumPresent]"
    assert str(OpMsgFlags(OpMsgFlagBit.MORE_TO_COME)) == "[moreToCome]"
    assert (
        str(OpMsgFlags(OpMsgFlagBit.CHECKSUM_PRESENT | OpMsgFlagBit.EXHAUST_ALLOWED))
        == "[checksumPresent|exhaustAllowed]"
    )


def test_flag_set():
    f = OpMsgFlags(OpMsgFlagBit.CHECKSUM_PRESENT | OpMsgFlagBit.EXHAUST_ALLOWED)
    assert f.flag_set(OpMsgFlagBit.CHECKSUM_PRESENT) is True
    assert f.flag_set(OpMsgFlagBit.EXHAUST_ALLOWED) is True
    assert f.flag_set(OpMsgFlagBit.MORE_TO_COME) is False


def test_to_json():
    assert OpMsgFlags(0).to_json() == "[]"
    f = OpReplyFlags(OpReplyFlagBit.AWAIT_CAPABLE)
    assert json.loads(f.to_json()) == ["AwaitCapable"]
    assert OpQueryFlagBit.SLAVE_OK.to_json() == '"SlaveOk"'


def test_unknown_bit_label():
    assert flag_strings(1 | 4, OpMsgFlagBit) == ["checksumPresent", "OpMsgFlagBit(4)"]
    assert str(OpQueryFlags(1)) == "[OpQueryFlagBit(1)]"


def test_query_flags_order():
    f = OpQueryFlags(OpQueryFlagBit.PARTIAL | OpQueryFlagBit.TAILABLE_CURSOR)
    assert f.strings() == ["TailableCursor", "Partial"]


def test_reply_flags_all():
    value = (
        OpReplyFlagBit.CURSOR_NOT_FOUND
        | OpReplyFlagBit.QUERY_FAILURE
        | OpReplyFlagBit.SHARD_CONFIG_STALE
        | OpReplyFlagBit.AWAIT_CAPABLE
    )
    assert str(OpReplyFlags(value)) == (
        "[CursorNotFound|QueryFailure|ShardConfigStale|AwaitCapable]"
    )


def test_out_of_range():
    with pytest.raises(ValueError):
        OpMsgFlags(-1)
    with pytest.raises(ValueError):
        OpMsgFlags(2**32)