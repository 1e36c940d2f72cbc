"""Assembly of RTMP messages from chunk streams and their split into chunks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

from rtmpwire.bytecounter import CountingReader, CountingWriter
from rtmpwire.chunk import Chunk0, Chunk1, Chunk2, Chunk3, MessageType

_U32_MASK = 0xFFFFFFFF
_DEFAULT_CHUNK_SIZE = 128


@dataclass
class RawMessage:
    """A message before its body is interpreted."""

    chunk_stream_id: int = 0
    timestamp: int = 0
    type: Union[MessageType, int] = 0
    message_stream_id: int = 0
    body: bytes = b""


class RawMessageError(Exception):
    """Raised when chunks do not form valid messages or acknowledges are missing."""


class _ReaderChunkStream:
    """State of one incoming chunk stream."""

    def __init__(self, owner: "RawMessageReader") -> None:
        self._owner = owner
        self.timestamp: Optional[int] = None
        self.type: Union[MessageType, int, None] = None
        self.message_stream_id: Optional[int] = None
        self.body_len: Optional[int] = None
        self.body: Optional[bytearray] = None
        self.timestamp_delta: Optional[int] = None

    def _read_chunk(self, chunk_cls, size: int):
        owner = self._owner
        chunk = chunk_cls.read(owner._reader, size)

        window = owner.window_ack_size
        if window:
            count = owner._reader.count
            diff = (count - owner._last_ack_count) & _U32_MASK
            if diff > window:
                owner._on_ack_needed(count)
                owner._last_ack_count = (owner._last_ack_count + window) & _U32_MASK
        return chunk

    def _message(self, body: bytes) -> RawMessage:
        return RawMessage(
            timestamp=self.timestamp,
            type=self.type,
            message_stream_id=self.message_stream_id,
            body=bytes(body),
        )

    def _complete_or_stash(self, body: bytes) -> Optional[RawMessage]:
        if len(body) != self.body_len:
            self.body = bytearray(body)
            return None
        return self._message(body)

    def read_message(self, fmt: int) -> Optional[RawMessage]:
        """Read one chunk; return a message when one is complete, else None."""
        chunk_size = self._owner.chunk_size

        if fmt == 0:
            if self.body is not None:
                raise RawMessageError("received type 0 chunk but expected type 3 chunk")
            c0 = self._read_chunk(Chunk0, chunk_size)
            self.message_stream_id = c0.message_stream_id
            self.type = c0.type
            self.timestamp = c0.timestamp
            self.body_len = c0.body_len
            self.timestamp_delta = None
            return self._complete_or_stash(c0.body)

        if fmt == 1:
            if self.timestamp is None:
                raise RawMessageError("received type 1 chunk without previous chunk")
            if self.body is not None:
                raise RawMessageError("received type 1 chunk but expected type 3 chunk")
            c1 = self._read_chunk(Chunk1, chunk_size)
            self.type = c1.type
            self.timestamp = (self.timestamp + c1.timestamp_delta) & _U32_MASK
            self.body_len = c1.body_len
            self.timestamp_delta = c1.timestamp_delta
            return self._complete_or_stash(c1.body)

        if fmt == 2:
            if self.timestamp is None:
                raise RawMessageError("received type 2 chunk without previous chunk")
            if self.body is not None:
                raise RawMessageError("received type 2 chunk but expected type 3 chunk")
            c2 = self._read_chunk(Chunk2, min(self.body_len, chunk_size))
            self.timestamp = (self.timestamp + c2.timestamp_delta) & _U32_MASK
            self.timestamp_delta = c2.timestamp_delta
            return self._complete_or_stash(c2.body)

        if self.body is None and self.timestamp_delta is None:
            raise RawMessageError("received type 3 chunk without previous chunk")

        if self.body is not None:
            size = min(self.body_len - len(self.body), chunk_size)
            c3 = self._read_chunk(Chunk3, size)
            self.body += c3.body
            if len(self.body) != self.body_len:
                return None
            body, self.body = self.body, None
            return self._message(body)

        c3 = self._read_chunk(Chunk3, min(self.body_len, chunk_size))
        self.timestamp = (self.timestamp + self.timestamp_delta) & _U32_MASK
        return self._complete_or_stash(c3.body)


class RawMessageReader:
    """Reads raw messages from a counting reader.

    ``chunk_size`` and ``window_ack_size`` may be changed while reading;
    ``on_ack_needed`` is called with the byte count whenever an
    acknowledgement window has been exceeded.
    """

    def __init__(self, reader: CountingReader, on_ack_needed: Callable[[int], None]) -> None:
        self._reader = reader
        self._on_ack_needed = on_ack_needed
        self.chunk_size = _DEFAULT_CHUNK_SIZE
        self.window_ack_size = 0
        self._last_ack_count = 0
        self._streams: Dict[int, _ReaderChunkStream] = {}

    def read(self) -> RawMessage:
        """Read chunks until a whole message is available and return it."""
        while True:
            header = self._reader.read_byte()
            fmt = header >> 6
            chunk_stream_id = header & 0x3F

            stream = self._streams.get(chunk_stream_id)
            if stream is None:
                stream = _ReaderChunkStream(self)
                self._streams[chunk_stream_id] = stream

            self._reader.unread_byte()

            msg = stream.read_message(fmt)
            if msg is not None:
                msg.chunk_stream_id = chunk_stream_id
                return msg


class _WriterChunkStream:
    """State of one outgoing chunk stream."""

    def __init__(self, owner: "RawMessageWriter") -> None:
        self._owner = owner
        self.last_message_stream_id: Optional[int] = None
        self.last_type: Union[MessageType, int, None] = None
        self.last_body_len: Optional[int] = None
        self.last_timestamp: Optional[int] = None
        self.last_timestamp_delta: Optional[int] = None

    def _write_chunk(self, chunk) -> None:
        owner = self._owner
        owner._writer.write(chunk.to_bytes())

        window = owner.window_ack_size
        if window:
            diff = (owner._writer.count - owner.ack_value) & _U32_MASK
            if diff > window * 3 // 2:
                raise RawMessageError("no acknowledge received within window")

    def write_message(self, msg: RawMessage) -> None:
        body = bytes(msg.body)
        body_len = len(body)
        chunk_size = self._owner.chunk_size
        csid = msg.chunk_stream_id

        delta: Optional[int] = None
        if self.last_timestamp is not None:
            diff = msg.timestamp - self.last_timestamp
            if diff >= 0:
                delta = diff

        first = body[:chunk_size]
        if (
            self.last_message_stream_id is None
            or delta is None
            or self.last_message_stream_id != msg.message_stream_id
        ):
            chunk = Chunk0(csid, msg.timestamp, msg.type, msg.message_stream_id, body_len, first)
        elif self.last_type != msg.type or self.last_body_len != body_len:
            chunk = Chunk1(csid, delta, msg.type, body_len, first)
        elif self.last_timestamp_delta is None or self.last_timestamp_delta != delta:
            chunk = Chunk2(csid, delta, first)
        else:
            chunk = Chunk3(csid, first)
        self._write_chunk(chunk)

        self.last_message_stream_id = msg.message_stream_id
        self.last_type = msg.type
        self.last_body_len = body_len
        self.last_timestamp = msg.timestamp
        if delta is not None:
            self.last_timestamp_delta = delta

        for pos in range(chunk_size, body_len, chunk_size):
            self._write_chunk(Chunk3(csid, body[pos : pos + chunk_size]))


class RawMessageWriter:
    """Splits raw messages into chunks and writes them to a counting writer.

    ``chunk_size``, ``window_ack_size`` and ``ack_value`` (the last
    acknowledged byte count) may be changed while writing.
    """

    def __init__(self, writer: CountingWriter) -> None:
        self._writer = writer
        self.chunk_size = _DEFAULT_CHUNK_SIZE
        self.window_ack_size = 0
        self.ack_value = 0
        self._streams: Dict[int, _WriterChunkStream] = {}

    def write(self, msg: RawMessage) -> None:
        """Write a message, choosing the most compact chunk headers."""
        stream = self._streams.get(msg.chunk_stream_id)
        if stream is None:
            stream = _WriterChunkStream(self)
            self._streams[msg.chunk_stream_id] = stream
        stream.write_message(msg)