"""Reading and writing of typed RTMP messages over counting byte streams."""

from __future__ import annotations

import contextlib
from typing import Callable, Dict, Type

from rtmpwire.bytecounter import CountingReader, CountingReadWriter, CountingWriter
from rtmpwire.chunk import MessageType
from rtmpwire.media import MsgAudio, MsgCommandAMF0, MsgDataAMF0, MsgVideo
from rtmpwire.messages import (
    Message,
    MessageError,
    MsgAcknowledge,
    MsgSetChunkSize,
    MsgSetPeerBandwidth,
    MsgSetWindowAckSize,
    MsgUserControlPingRequest,
    MsgUserControlPingResponse,
    MsgUserControlSetBufferLength,
    MsgUserControlStreamBegin,
    MsgUserControlStreamDry,
    MsgUserControlStreamEOF,
    MsgUserControlStreamIsRecorded,
    UserControlType,
)
from rtmpwire.rawmessage import RawMessage, RawMessageError, RawMessageReader, RawMessageWriter

_BY_TYPE: Dict[int, Type[Message]] = {
    MessageType.SET_CHUNK_SIZE: MsgSetChunkSize,
    MessageType.ACKNOWLEDGE: MsgAcknowledge,
    MessageType.SET_WINDOW_ACK_SIZE: MsgSetWindowAckSize,
    MessageType.SET_PEER_BANDWIDTH: MsgSetPeerBandwidth,
    MessageType.COMMAND_AMF0: MsgCommandAMF0,
    MessageType.DATA_AMF0: MsgDataAMF0,
    MessageType.AUDIO: MsgAudio,
    MessageType.VIDEO: MsgVideo,
}

_BY_USER_CONTROL_TYPE: Dict[int, Type[Message]] = {
    UserControlType.STREAM_BEGIN: MsgUserControlStreamBegin,
    UserControlType.STREAM_EOF: MsgUserControlStreamEOF,
    UserControlType.STREAM_DRY: MsgUserControlStreamDry,
    UserControlType.SET_BUFFER_LENGTH: MsgUserControlSetBufferLength,
    UserControlType.STREAM_IS_RECORDED: MsgUserControlStreamIsRecorded,
    UserControlType.PING_REQUEST: MsgUserControlPingRequest,
    UserControlType.PING_RESPONSE: MsgUserControlPingResponse,
}


def _message_class(raw: RawMessage) -> Type[Message]:
    if raw.type == MessageType.USER_CONTROL:
        if len(raw.body) < 2:
            raise MessageError("invalid body size")
        sub_type = int.from_bytes(bytes(raw.body[:2]), "big")
        try:
            return _BY_USER_CONTROL_TYPE[sub_type]
        except KeyError:
            raise MessageError("invalid user control type") from None
    try:
        return _BY_TYPE[int(raw.type)]
    except KeyError:
        raise MessageError("unhandled message") from None


def parse_message(raw: RawMessage) -> Message:
    """Turn a raw message into the typed message it carries."""
    return _message_class(raw).from_raw(raw)


class MessageReader:
    """Reads typed messages and applies chunk size and window changes."""

    def __init__(self, reader: CountingReader, on_ack_needed: Callable[[int], None]) -> None:
        self._raw = RawMessageReader(reader, on_ack_needed)

    def read(self) -> Message:
        """Read the next message."""
        msg = parse_message(self._raw.read())
        if isinstance(msg, MsgSetChunkSize):
            self._raw.chunk_size = msg.value
        elif isinstance(msg, MsgSetWindowAckSize):
            self._raw.window_ack_size = msg.value
        return msg


class MessageWriter:
    """Writes typed messages and applies chunk size and window changes."""

    def __init__(self, writer: CountingWriter) -> None:
        self._raw = RawMessageWriter(writer)

    def acknowledge(self, value: int) -> None:
        """Record the byte count acknowledged by the peer."""
        self._raw.ack_value = value

    def write(self, msg: Message) -> None:
        """Write a message."""
        self._raw.write(msg.to_raw())
        if isinstance(msg, MsgSetChunkSize):
            self._raw.chunk_size = msg.value
        elif isinstance(msg, MsgSetWindowAckSize):
            self._raw.window_ack_size = msg.value


class MessageReadWriter:
    """Reader and writer over one connection, answering acknowledges and pings."""

    def __init__(self, byte_rw: CountingReadWriter) -> None:
        self._writer = MessageWriter(byte_rw.writer)
        self._reader = MessageReader(
            byte_rw.reader,
            lambda count: self._writer.write(MsgAcknowledge(value=count)),
        )

    def read(self) -> Message:
        """Read the next message, reacting to acknowledges and ping requests."""
        msg = self._reader.read()
        if isinstance(msg, MsgAcknowledge):
            self._writer.acknowledge(msg.value)
        elif isinstance(msg, MsgUserControlPingRequest):
            # A failed reply does not interrupt reading.
            with contextlib.suppress(RawMessageError, OSError):
                self._writer.write(MsgUserControlPingRequest(server_time=msg.server_time))
        return msg

    def write(self, msg: Message) -> None:
        """Write a message."""
        self._writer.write(msg)