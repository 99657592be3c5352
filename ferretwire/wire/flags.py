"""Flag bits and flag sets of the wire protocol messages."""

from __future__ import annotations

import enum
import json

_UINT32_LIMIT = 2**32


class _FlagBit(int, enum.Enum):
    """A single flag bit with a protocol label."""

    def __new__(cls, value: int, label: str):
        obj = int.__new__(cls, value)
        obj._value_ = value
        obj.label = label
        return obj

    def __str__(self) -> str:
        return self.label

    def to_json(self) -> str:
        return json.dumps(self.label)


class OpMsgFlagBit(_FlagBit):
    """Flag bits of OP_MSG."""

    CHECKSUM_PRESENT = (1 << 0, "checksumPresent")
    MORE_TO_COME = (1 << 1, "moreToCome")
    EXHAUST_ALLOWED = (1 << 16, "exhaustAllowed")


class OpQueryFlagBit(_FlagBit):
    """Flag bits of OP_QUERY."""

    TAILABLE_CURSOR = (1 << 1, "TailableCursor")
    SLAVE_OK = (1 << 2, "SlaveOk")
    OPLOG_REPLAY = (1 << 3, "OplogReplay")
    NO_CURSOR_TIMEOUT = (1 << 4, "NoCursorTimeout")
    AWAIT_DATA = (1 << 5, "AwaitData")
    EXHAUST = (1 << 6, "Exhaust")
    PARTIAL = (1 << 7, "Partial")


class OpReplyFlagBit(_FlagBit):
    """Flag bits of OP_REPLY."""

    CURSOR_NOT_FOUND = (1 << 0, "CursorNotFound")
    QUERY_FAILURE = (1 << 1, "QueryFailure")
    SHARD_CONFIG_STALE = (1 << 2, "ShardConfigStale")
    AWAIT_CAPABLE = (1 << 3, "AwaitCapable")


def flag_strings(value: int, bit_type: type) -> list[str]:
    """Return labels of all bits set in a 32-bit value, lowest bit first."""
    labels = []
    for shift in range(32):
        bit = 1 << shift
        if value & bit:
            try:
                labels.append(str(bit_type(bit)))
            except ValueError:
                labels.append(f"{bit_type.__name__}({bit})")
    return labels


def _labels_json(labels: list[str]) -> str:
    return json.dumps(labels, separators=(",", ":"))


class _Flags(int):
    """A 32-bit set of flag bits."""

    def __new__(cls, value: int = 0):
        if not 0 <= int(value) < _UINT32_LIMIT:
            raise ValueError(f"{cls.__name__}: value out of uint32 range: {int(value)}")
        return int.__new__(cls, value)

    def strings(self) -> list[str]:
        return flag_strings(self, _FlagBit)

    def __str__(self) -> str:
        return "[" + "|".join(self.strings()) + "]"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({int(self)})"


class OpMsgFlags(_Flags):
    """Flags of OP_MSG."""

    def flag_set(self, bit: int) -> bool:
        """Tell whether the given bit is set."""
        return bool(self & bit)

    def strings(self) -> list[str]:
        """Labels of the set bits, lowest first."""
        return flag_strings(self, OpMsgFlagBit)

    def to_json(self) -> str:
        """JSON list of the set bits' labels."""
        return _labels_json(self.strings())


class OpQueryFlags(_Flags):
    """Flags of OP_QUERY."""

    def flag_set(self, bit: int) -> bool:
        """Tell whether the given bit is set."""
        return bool(self & bit)

    def strings(self) -> list[str]:
        """Labels of the set bits, lowest first."""
        return flag_strings(self, OpQueryFlagBit)

    def to_json(self) -> str:
        """JSON list of the set bits' labels."""
        return _labels_json(self.strings())


class OpReplyFlags(_Flags):
    """Flags of OP_REPLY."""

    def flag_set(self, bit: int) -> bool:
        """Tell whether the given bit is set."""
        return bool(self & bit)

    def strings(self) -> list[str]:
        """Labels of the set bits, lowest first."""
        return flag_strings(self, OpReplyFlagBit)

    def to_json(self) -> str:
        """JSON list of the set bits' labels."""
        return _labels_json(self.strings())