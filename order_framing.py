# order_framing.py
"""
Frame reader and writer for orders exchanged over a secure stream.

read_order and send_order never raise for stream trouble: they return Success or
Failure. Any Failure means the stream position no longer matches frame
boundaries, so the caller has to close the stream and reconnect.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from framing_results import (
    Failure,
    FailureKind,
    Phase,
    Result,
    Success,
    read_short,
    write_short,
)
from secure_stream import wrap_stream
from stream_framing import PREFIX_SIZE, MAX_FRAME_LENGTH, decode_prefix, encode_prefix

log = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"


@dataclass(frozen=True)
class OrderFrame:
    """
    A received frame. buffer holds the payload followed by one zero byte,
    so len(buffer) == length + 1 and buffer[length] == 0.
    """
    length: int
    buffer: bytearray

    @property
    def payload(self) -> bytes:
        return bytes(memoryview(self.buffer)[:self.length])

    def text(self, encoding: str = DEFAULT_ENCODING) -> str:
        return self.payload.decode(encoding)


def _fail(failure: Failure) -> Failure:
    log.warning("framing failure, stream desynchronized: %s", failure.describe())
    return failure


def read_order(stream, max_frame_size: Optional[int] = None) -> Result:
    """
    Read one frame. Returns Success(OrderFrame) or Failure.
    max_frame_size bounds the allocation a peer can request; None or a negative value
    disables the check, 0 admits only empty frames.
    """
    stream = wrap_stream(stream)

    prefix = bytearray(PREFIX_SIZE)
    got = stream.read_into(memoryview(prefix))
    if got != PREFIX_SIZE:
        return _fail(read_short(Phase.PREFIX, PREFIX_SIZE, got))
    length = decode_prefix(bytes(prefix))

    if max_frame_size is not None and max_frame_size >= 0 and length > max_frame_size:
        return _fail(Failure(FailureKind.FRAME_TOO_LARGE, Phase.PREFIX, expected=length,
                             limit=max_frame_size))

    try:
        buffer = bytearray(length + 1)
    except MemoryError:
        return _fail(Failure(FailureKind.ALLOCATION_FAILURE, expected=length + 1))

    log.debug("Reading frame of %d bytes", length)
    got = stream.read_into(memoryview(buffer)[:length])
    if got != length:
        return _fail(read_short(Phase.PAYLOAD, length, got))

    buffer[length] = 0
    return Success(OrderFrame(length=length, buffer=buffer))


def send_order(stream, order: Union[str, bytes, bytearray, memoryview],
               encoding: str = DEFAULT_ENCODING) -> Result:
    """
    Write one frame: the 4-byte length prefix, then the payload.
    Returns Success(payload bytes written) or Failure.
    """
    stream = wrap_stream(stream)
    payload = order.encode(encoding) if isinstance(order, str) else memoryview(order).cast("B")
    length = len(payload)
    if length > MAX_FRAME_LENGTH:
        raise ValueError(f"order too long for a 32-bit length prefix: {length} bytes")

    log.debug("Writing frame of %d bytes", length)
    sent = stream.write(encode_prefix(length))
    if sent != PREFIX_SIZE:
        return _fail(write_short(Phase.PREFIX, PREFIX_SIZE, sent))

    if length:
        sent = stream.write(payload)
        if sent != length:
            return _fail(write_short(Phase.PAYLOAD, length, sent))
    return Success(length)


def exchange(stream, order, max_frame_size: Optional[int] = None,
             encoding: str = DEFAULT_ENCODING) -> Result:
    """Send an order and read the answer frame."""
    stream = wrap_stream(stream)
    sent = send_order(stream, order, encoding=encoding)
    if not sent.ok:
        return sent
    return read_order(stream, max_frame_size=max_frame_size)
