"""RTMP protocol control and user control messages."""

from __future__ import annotations

import abc
import enum
import struct
from dataclasses import dataclass
from typing import ClassVar, TypeVar

from rtmpwire.chunk import MessageType
from rtmpwire.rawmessage import RawMessage

CONTROL_CHUNK_STREAM_ID = 2

_M = TypeVar("_M", bound="Message")


class MessageError(Exception):
    """Raised when a raw message cannot be interpreted."""


class UserControlType(enum.IntEnum):
    """Event types carried by user control messages."""

    STREAM_BEGIN = 0
    STREAM_EOF = 1
    STREAM_DRY = 2
    SET_BUFFER_LENGTH = 3
    STREAM_IS_RECORDED = 4
    PING_REQUEST = 6
    PING_RESPONSE = 7


class Message(abc.ABC):
    """A message that converts to and from a raw message."""

    @classmethod
    @abc.abstractmethod
    def from_raw(cls: type[_M], raw: RawMessage) -> _M:
        """Build the message from a raw message."""

    @abc.abstractmethod
    def to_raw(self) -> RawMessage:
        """Encode the message as a raw message."""


def _check_control(raw: RawMessage, body_size: int, size_error: str) -> None:
    if raw.chunk_stream_id != CONTROL_CHUNK_STREAM_ID:
        raise MessageError("unexpected chunk stream ID")
    if len(raw.body) != body_size:
        raise MessageError(size_error)


def _control(msg_type: MessageType, body: bytes) -> RawMessage:
    return RawMessage(
        chunk_stream_id=CONTROL_CHUNK_STREAM_ID,
        type=msg_type,
        body=body,
    )


def _u32(value: int) -> bytes:
    return struct.pack(">I", value & 0xFFFFFFFF)


@dataclass
class _ValueMessage(Message):
    """Protocol control message whose body is a single 32-bit value."""

    value: int = 0

    _message_type: ClassVar[MessageType]

    @classmethod
    def from_raw(cls, raw: RawMessage):
        _check_control(raw, 4, "unexpected body size")
        (value,) = struct.unpack(">I", bytes(raw.body))
        return cls(value=value)

    def to_raw(self) -> RawMessage:
        return _control(self._message_type, _u32(self.value))


@dataclass
class MsgAcknowledge(_ValueMessage):
    """Acknowledgement of the number of bytes received."""

    _message_type: ClassVar[MessageType] = MessageType.ACKNOWLEDGE

    @classmethod
    def from_raw(cls, raw: RawMessage) -> "MsgAcknowledge":
        """Decode an acknowledgement."""
        return super().from_raw(raw)

    def to_raw(self) -> RawMessage:
        """Encode the acknowledgement."""
        return super().to_raw()


@dataclass
class MsgSetChunkSize(_ValueMessage):
    """Announcement of a new maximum chunk size."""

    _message_type: ClassVar[MessageType] = MessageType.SET_CHUNK_SIZE

    @classmethod
    def from_raw(cls, raw: RawMessage) -> "MsgSetChunkSize":
        """Decode a set chunk size message."""
        return super().from_raw(raw)

    def to_raw(self) -> RawMessage:
        """Encode the set chunk size message."""
        return super().to_raw()


@dataclass
class MsgSetWindowAckSize(_ValueMessage):
    """Announcement of the acknowledgement window size."""

    _message_type: ClassVar[MessageType] = MessageType.SET_WINDOW_ACK_SIZE

    @classmethod
    def from_raw(cls, raw: RawMessage) -> "MsgSetWindowAckSize":
        """Decode a set window acknowledgement size message."""
        return super().from_raw(raw)

    def to_raw(self) -> RawMessage:
        """Encode the set window acknowledgement size message."""
        return super().to_raw()


@dataclass
class MsgSetPeerBandwidth(Message):
    """Limit on the peer's output bandwidth."""

    value: int = 0
    type: int = 0

    @classmethod
    def from_raw(cls, raw: RawMessage) -> "MsgSetPeerBandwidth":
        """Decode a set peer bandwidth message."""
        _check_control(raw, 5, "unexpected body size")
        value, limit_type = struct.unpack(">IB", bytes(raw.body))
        return cls(value=value, type=limit_type)

    def to_raw(self) -> RawMessage:
        """Encode the set peer bandwidth message.

        The raw message carries the set chunk size type identifier.
        """
        body = _u32(self.value) + bytes([self.type & 0xFF])
        return _control(MessageType.SET_CHUNK_SIZE, body)


def _user_control_body(event: UserControlType, *values: int) -> bytes:
    return struct.pack(">H", int(event)) + b"".join(_u32(v) for v in values)


@dataclass
class _StreamEventMessage(Message):
    """User control message that carries a single stream ID."""

    stream_id: int = 0

    _event_type: ClassVar[UserControlType]

    @classmethod
    def from_raw(cls, raw: RawMessage):
        _check_control(raw, 6, "invalid body size")
        (stream_id,) = struct.unpack(">I", bytes(raw.body[2:]))
        return cls(stream_id=stream_id)

    def to_raw(self) -> RawMessage:
        return _control(
            MessageType.USER_CONTROL,
            _user_control_body(self._event_type, self.stream_id),
        )


@dataclass
class MsgUserControlStreamBegin(_StreamEventMessage):
    """Notification that a stream has become functional."""

    _event_type: ClassVar[UserControlType] = UserControlType.STREAM_BEGIN

    @classmethod
    def from_raw(cls, raw: RawMessage) -> "MsgUserControlStreamBegin":
        """Decode a stream begin event."""
        return super().from_raw(raw)

    def to_raw(self) -> RawMessage:
        """Encode the stream begin event."""
        return super().to_raw()


@dataclass
class MsgUserControlStreamEOF(_StreamEventMessage):
    """Notification that playback of a stream has ended."""

    _event_type: ClassVar[UserControlType] = UserControlType.STREAM_EOF

    @classmethod
    def from_raw(cls, raw: RawMessage) -> "MsgUserControlStreamEOF":
        """Decode a stream EOF event."""
        return super().from_raw(raw)

    def to_raw(self) -> RawMessage:
        """Encode the stream EOF event."""
        return super().to_raw()


@dataclass
class MsgUserControlStreamDry(_StreamEventMessage):
    """Notification that a stream has no more data."""

    _event_type: ClassVar[UserControlType] = UserControlType.STREAM_DRY

    @classmethod
    def from_raw(cls, raw: RawMessage) -> "MsgUserControlStreamDry":
        """Decode a stream dry event."""
        return super().from_raw(raw)

    def to_raw(self) -> RawMessage:
        """Encode the stream dry event."""
        return super().to_raw()


@dataclass
class MsgUserControlStreamIsRecorded(_StreamEventMessage):
    """Notification that a stream is a recorded one."""

    _event_type: ClassVar[UserControlType] = UserControlType.STREAM_IS_RECORDED

    @classmethod
    def from_raw(cls, raw: RawMessage) -> "MsgUserControlStreamIsRecorded":
        """Decode a stream is recorded event."""
        return super().from_raw(raw)

    def to_raw(self) -> RawMessage:
        """Encode the stream is recorded event."""
        return super().to_raw()


@dataclass
class _PingMessage(Message):
    """User control ping carrying a server timestamp."""

    server_time: int = 0

    _event_type: ClassVar[UserControlType]

    @classmethod
    def from_raw(cls, raw: RawMessage):
        _check_control(raw, 6, "invalid body size")
        (server_time,) = struct.unpack(">I", bytes(raw.body[2:]))
        return cls(server_time=server_time)

    def to_raw(self) -> RawMessage:
        return _control(
            MessageType.USER_CONTROL,
            _user_control_body(self._event_type, self.server_time),
        )


@dataclass
class MsgUserControlPingRequest(_PingMessage):
    """Ping request."""

    _event_type: ClassVar[UserControlType] = UserControlType.PING_REQUEST

    @classmethod
    def from_raw(cls, raw: RawMessage) -> "MsgUserControlPingRequest":
        """Decode a ping request."""
        return super().from_raw(raw)

    def to_raw(self) -> RawMessage:
        """Encode the ping request."""
        return super().to_raw()


@dataclass
class MsgUserControlPingResponse(_PingMessage):
    """Ping response."""

    _event_type: ClassVar[UserControlType] = UserControlType.PING_RESPONSE

    @classmethod
    def from_raw(cls, raw: RawMessage) -> "MsgUserControlPingResponse":
        """Decode a ping response."""
        return super().from_raw(raw)

    def to_raw(self) -> RawMessage:
        """Encode the ping response."""
        return super().to_raw()


@dataclass
class MsgUserControlSetBufferLength(Message):
    """Client's buffer length for a stream, in milliseconds."""

    stream_id: int = 0
    buffer_length: int = 0

    @classmethod
    def from_raw(cls, raw: RawMessage) -> "MsgUserControlSetBufferLength":
        """Decode a set buffer length event."""
        _check_control(raw, 10, "invalid body size")
        stream_id, buffer_length = struct.unpack(">II", bytes(raw.body[2:]))
        return cls(stream_id=stream_id, buffer_length=buffer_length)

    def to_raw(self) -> RawMessage:
        """Encode the set buffer length event."""
        return _control(
            MessageType.USER_CONTROL,
            _user_control_body(
                UserControlType.SET_BUFFER_LENGTH, self.stream_id, self.buffer_length
            ),
        )