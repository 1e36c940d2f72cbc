"""Byte streams that keep a running count of the bytes moved through them."""

from __future__ import annotations

from typing import BinaryIO

_BUFFER_SIZE = 4096
_COUNT_MASK = 0xFFFFFFFF


class CountingReader:
    """Buffered reader that counts bytes pulled from the underlying stream.

    The count wraps around at 2**32, like the acknowledgement counters
    of the protocol it serves.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self._read_some = getattr(stream, "read1", stream.read)
        self._buf = b""
        self._pos = 0
        self._count = 0

    def _fill(self) -> bool:
        data = self._read_some(_BUFFER_SIZE) or b""
        if not data:
            return False
        self._count = (self._count + len(data)) & _COUNT_MASK
        # Keep the last consumed byte so that unread_byte() keeps working.
        kept = self._buf[self._pos - 1 : self._pos] if self._pos else b""
        self._buf = kept + data
        self._pos = len(kept)
        return True

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes, fewer only at end of stream.

        A negative size reads until the end of the stream.
        """
        parts = []
        remaining = size
        while size < 0 or remaining > 0:
            if self._pos >= len(self._buf) and not self._fill():
                break
            end = len(self._buf) if size < 0 else min(len(self._buf), self._pos + remaining)
            part = self._buf[self._pos : end]
            self._pos = end
            parts.append(part)
            remaining -= len(part)
        return b"".join(parts)

    def read_byte(self) -> int:
        """Read a single byte; raise EOFError at end of stream."""
        if self._pos >= len(self._buf) and not self._fill():
            raise EOFError("end of stream")
        value = self._buf[self._pos]
        self._pos += 1
        return value

    def unread_byte(self) -> None:
        """Push the last read byte back so that it is read again."""
        if self._pos == 0:
            raise ValueError("no byte to unread")
        self._pos -= 1

    @property
    def count(self) -> int:
        """Bytes read from the underlying stream so far."""
        return self._count


class CountingWriter:
    """Writer that counts bytes written to the underlying stream."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self._count = 0

    def write(self, data: bytes) -> int:
        """Write ``data`` and return the number of bytes written."""
        written = self._stream.write(data)
        if written is None:
            written = len(data)
        self._count = (self._count + written) & _COUNT_MASK
        return written

    @property
    def count(self) -> int:
        """Bytes written so far."""
        return self._count


class CountingReadWriter:
    """Pair of a counting reader and a counting writer over one stream."""

    def __init__(self, stream: BinaryIO) -> None:
        self.reader = CountingReader(stream)
        self.writer = CountingWriter(stream)