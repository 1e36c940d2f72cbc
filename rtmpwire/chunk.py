"""RTMP chunk formats 0 to 3 and message type identifiers."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import BinaryIO, Union


class MessageType(enum.IntEnum):
    """RTMP message type identifiers."""

    SET_CHUNK_SIZE = 1
    ABORT_MESSAGE = 2
    ACKNOWLEDGE = 3
    USER_CONTROL = 4
    SET_WINDOW_ACK_SIZE = 5
    SET_PEER_BANDWIDTH = 6
    AUDIO = 8
    VIDEO = 9
    DATA_AMF3 = 15
    COMMAND_AMF3 = 17
    DATA_AMF0 = 18
    COMMAND_AMF0 = 20


class ChunkError(Exception):
    """Raised when a chunk cannot be read."""


def _message_type(value: int) -> Union[MessageType, int]:
    try:
        return MessageType(value)
    except ValueError:
        return value


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = bytearray()
    while len(data) < size:
        part = stream.read(size - len(data))
        if not part:
            raise ChunkError("unexpected end of chunk data")
        data += part
    return bytes(data)


def _u24(data: bytes) -> int:
    return int.from_bytes(data[:3], "big")


def _pack_u24(value: int) -> bytes:
    return (value & 0xFFFFFF).to_bytes(3, "big")


@dataclass
class Chunk0:
    """Type 0 chunk: full header, used at the start of a chunk stream."""

    chunk_stream_id: int
    timestamp: int
    type: Union[MessageType, int]
    message_stream_id: int
    body_len: int
    body: bytes = b""

    @classmethod
    def read(cls, stream: BinaryIO, max_body_len: int) -> "Chunk0":
        """Read a chunk whose body is at most ``max_body_len`` bytes."""
        header = _read_exact(stream, 12)
        body_len = _u24(header[4:7])
        return cls(
            chunk_stream_id=header[0] & 0x3F,
            timestamp=_u24(header[1:4]),
            type=_message_type(header[7]),
            message_stream_id=int.from_bytes(header[8:12], "big"),
            body_len=body_len,
            body=_read_exact(stream, min(body_len, max_body_len)),
        )

    def to_bytes(self) -> bytes:
        """Encode the chunk."""
        return (
            bytes([self.chunk_stream_id & 0xFF])
            + _pack_u24(self.timestamp)
            + _pack_u24(self.body_len)
            + bytes([int(self.type) & 0xFF])
            + (self.message_stream_id & 0xFFFFFFFF).to_bytes(4, "big")
            + bytes(self.body)
        )


@dataclass
class Chunk1:
    """Type 1 chunk: no message stream ID, takes the preceding one."""

    chunk_stream_id: int
    timestamp_delta: int
    type: Union[MessageType, int]
    body_len: int
    body: bytes = b""

    @classmethod
    def read(cls, stream: BinaryIO, max_body_len: int) -> "Chunk1":
        """Read a chunk whose body is at most ``max_body_len`` bytes."""
        header = _read_exact(stream, 8)
        body_len = _u24(header[4:7])
        return cls(
            chunk_stream_id=header[0] & 0x3F,
            timestamp_delta=_u24(header[1:4]),
            type=_message_type(header[7]),
            body_len=body_len,
            body=_read_exact(stream, min(body_len, max_body_len)),
        )

    def to_bytes(self) -> bytes:
        """Encode the chunk."""
        return (
            bytes([(1 << 6 | self.chunk_stream_id) & 0xFF])
            + _pack_u24(self.timestamp_delta)
            + _pack_u24(self.body_len)
            + bytes([int(self.type) & 0xFF])
            + bytes(self.body)
        )


@dataclass
class Chunk2:
    """Type 2 chunk: only a timestamp delta, stream and length are inherited."""

    chunk_stream_id: int
    timestamp_delta: int
    body: bytes = b""

    @classmethod
    def read(cls, stream: BinaryIO, body_len: int) -> "Chunk2":
        """Read a chunk with a body of exactly ``body_len`` bytes."""
        header = _read_exact(stream, 4)
        return cls(
            chunk_stream_id=header[0] & 0x3F,
            timestamp_delta=_u24(header[1:4]),
            body=_read_exact(stream, body_len),
        )

    def to_bytes(self) -> bytes:
        """Encode the chunk."""
        return (
            bytes([(2 << 6 | self.chunk_stream_id) & 0xFF])
            + _pack_u24(self.timestamp_delta)
            + bytes(self.body)
        )


@dataclass
class Chunk3:
    """Type 3 chunk: no message header at all."""

    chunk_stream_id: int
    body: bytes = b""

    @classmethod
    def read(cls, stream: BinaryIO, body_len: int) -> "Chunk3":
        """Read a chunk with a body of exactly ``body_len`` bytes."""
        header = _read_exact(stream, 1)
        return cls(
            chunk_stream_id=header[0] & 0x3F,
            body=_read_exact(stream, body_len),
        )

    def to_bytes(self) -> bytes:
        """Encode the chunk."""
        return bytes([(3 << 6 | self.chunk_stream_id) & 0xFF]) + bytes(self.body)