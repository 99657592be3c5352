"""Hex dumps in the canonical layout and parsing of such dumps and Wireshark dumps."""

from __future__ import annotations

import os


def _ascii(chunk: bytes) -> str:
    return "".join(chr(b) if 32 <= b <= 126 else "." for b in chunk)


def dump(data: bytes) -> str:
    """Return a canonical hex dump: offset, 16 hex bytes and an ASCII column."""
    lines = []
    for offset in range(0, len(data), 16):
        chunk = data[offset:offset + 16]
        hexpart = "".join(
            f"{b:02x} " + (" " if i == 7 else "") for i, b in enumerate(chunk)
        )
        lines.append(f"{offset:08x}  {hexpart:<49} |{_ascii(chunk)}|\n")
    return "".join(lines)


def parse_dump(text: str) -> bytes:
    """Parse a canonical hex dump or a Wireshark hex dump back into bytes."""
    out = bytearray()
    for raw in text.strip().splitlines():
        line = raw.strip()
        if not line:
            continue
        hexpart = line[8:60] if line.endswith("|") else line[7:54]
        out += bytes.fromhex("".join(hexpart.split()))
    return bytes(out)


def parse_dump_file(*args: str) -> bytes:
    """Read a file whose path is joined from args and parse it as a hex dump."""
    with open(os.path.join(*args), encoding="utf-8") as f:
        return parse_dump(f.read())