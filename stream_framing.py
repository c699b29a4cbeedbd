# stream_framing.py
"""
Length-prefixed order framing: a 4-byte big-endian length followed by the payload.
"""
from __future__ import annotations

import struct


PREFIX_FORMAT = "!I"
PREFIX_SIZE = struct.calcsize(PREFIX_FORMAT)
MAX_FRAME_LENGTH = 0xFFFFFFFF


def encode_prefix(length: int) -> bytes:
    if length < 0 or length > MAX_FRAME_LENGTH:
        raise ValueError(f"frame length out of range: {length}")
    return struct.pack(PREFIX_FORMAT, length)


def decode_prefix(prefix: bytes) -> int:
    if len(prefix) != PREFIX_SIZE:
        raise ValueError(f"prefix must be exactly {PREFIX_SIZE} bytes, got {len(prefix)}")
    (length,) = struct.unpack(PREFIX_FORMAT, prefix)
    return length
