# secure_stream.py
"""
Blocking read-N / write-N adapters over an already established secure channel.

The channel itself (TLS handshake, certificate checks, timeouts) is supplied by
the caller. Adapters only loop over partial transfers; a short count means the
peer closed, the channel timed out or raised.
"""
from __future__ import annotations

import logging

log = logging.getLogger(__name__)


class SocketStream:
    """Adapter for socket-like channels (socket.socket, ssl.SSLSocket)."""

    def __init__(self, sock) -> None:
        self.sock = sock

    def read_into(self, view: memoryview) -> int:
        got = 0
        total = len(view)
        while got < total:
            try:
                n = self.sock.recv_into(view[got:], total - got)
            except OSError as e:
                log.warning("stream read failed after %d of %d bytes: %s", got, total, e)
                break
            if not n:
                break
            got += n
        return got

    def write(self, data: bytes) -> int:
        view = memoryview(data)
        sent = 0
        while sent < len(view):
            try:
                n = self.sock.send(view[sent:])
            except OSError as e:
                log.warning("stream write failed after %d of %d bytes: %s", sent, len(view), e)
                break
            if not n:
                break
            sent += n
        return sent

    def close(self) -> None:
        self.sock.close()


class FileStream:
    """Adapter for binary file-like channels (pipes, io.BytesIO, TLS wrappers exposing read/write)."""

    def __init__(self, fileobj) -> None:
        self.fileobj = fileobj

    def read_into(self, view: memoryview) -> int:
        got = 0
        total = len(view)
        while got < total:
            try:
                if hasattr(self.fileobj, "readinto"):
                    n = self.fileobj.readinto(view[got:])
                else:
                    chunk = self.fileobj.read(total - got)
                    n = len(chunk) if chunk else 0
                    if n:
                        view[got:got + n] = chunk
            except OSError as e:
                log.warning("stream read failed after %d of %d bytes: %s", got, total, e)
                break
            if not n:
                break
            got += n
        return got

    def write(self, data: bytes) -> int:
        view = memoryview(data)
        sent = 0
        while sent < len(view):
            try:
                n = self.fileobj.write(view[sent:])
            except OSError as e:
                log.warning("stream write failed after %d of %d bytes: %s", sent, len(view), e)
                break
            # non-blocking raw writers return None when nothing was accepted
            if not n:
                break
            sent += n
        if sent and hasattr(self.fileobj, "flush"):
            try:
                self.fileobj.flush()
            except OSError as e:
                log.warning("stream flush failed: %s", e)
                return 0
        return sent


def wrap_stream(obj):
    if isinstance(obj, (SocketStream, FileStream)):
        return obj
    if hasattr(obj, "recv_into") and hasattr(obj, "send"):
        return SocketStream(obj)
    if hasattr(obj, "write") and (hasattr(obj, "readinto") or hasattr(obj, "read")):
        return FileStream(obj)
    raise TypeError(f"unsupported stream type: {type(obj).__name__}")
