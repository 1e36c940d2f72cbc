"""RTMP audio, video, AMF0 command and AMF0 data messages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List

from rtmpwire.amf0 import AMF0Error, decode_values, encode_values
from rtmpwire.chunk import MessageType
from rtmpwire.messages import Message, MessageError
from rtmpwire.rawmessage import RawMessage

SOUND_AAC = 10
SOUND_5_5KHZ = 0
SOUND_11KHZ = 1
SOUND_22KHZ = 2
SOUND_44KHZ = 3
SOUND_8BIT = 0
SOUND_16BIT = 1
SOUND_MONO = 0
SOUND_STEREO = 1
AAC_SEQHDR = 0
AAC_RAW = 1

VIDEO_H264 = 7
FRAME_KEY = 1
FRAME_INTER = 2
AVC_SEQHDR = 0
AVC_NALU = 1
AVC_EOS = 2


@dataclass
class MsgAudio(Message):
    """AAC audio message."""

    chunk_stream_id: int = 0
    dts: int = 0
    message_stream_id: int = 0
    rate: int = 0
    depth: int = 0
    channels: int = 0
    aac_type: int = 0
    payload: bytes = b""

    @classmethod
    def from_raw(cls, raw: RawMessage) -> "MsgAudio":
        """Decode an audio message; only AAC is supported."""
        body = bytes(raw.body)
        if len(body) < 2:
            raise MessageError("invalid body size")
        codec = body[0] >> 4
        if codec != SOUND_AAC:
            raise MessageError(f"unsupported audio codec: {codec}")
        return cls(
            chunk_stream_id=raw.chunk_stream_id,
            dts=raw.timestamp,
            message_stream_id=raw.message_stream_id,
            rate=(body[0] >> 2) & 0x03,
            depth=(body[0] >> 1) & 0x01,
            channels=body[0] & 0x01,
            aac_type=body[1],
            payload=body[2:],
        )

    def to_raw(self) -> RawMessage:
        """Encode the audio message."""
        flags = (SOUND_AAC << 4 | self.rate << 2 | self.depth << 1 | self.channels) & 0xFF
        body = bytes([flags, self.aac_type & 0xFF]) + bytes(self.payload)
        return RawMessage(
            chunk_stream_id=self.chunk_stream_id,
            timestamp=self.dts,
            type=MessageType.AUDIO,
            message_stream_id=self.message_stream_id,
            body=body,
        )


@dataclass
class MsgVideo(Message):
    """H264 video message."""

    chunk_stream_id: int = 0
    dts: int = 0
    message_stream_id: int = 0
    is_key_frame: bool = False
    h264_type: int = 0
    pts_delta: int = 0
    payload: bytes = b""

    @classmethod
    def from_raw(cls, raw: RawMessage) -> "MsgVideo":
        """Decode a video message; only H264 is supported."""
        body = bytes(raw.body)
        if len(body) < 5:
            raise MessageError("invalid body size")
        codec = body[0] & 0x0F
        if codec != VIDEO_H264:
            raise MessageError(f"unsupported video codec: {codec}")
        return cls(
            chunk_stream_id=raw.chunk_stream_id,
            dts=raw.timestamp,
            message_stream_id=raw.message_stream_id,
            is_key_frame=(body[0] >> 4) == FRAME_KEY,
            h264_type=body[1],
            pts_delta=int.from_bytes(body[2:5], "big"),
            payload=body[5:],
        )

    def to_raw(self) -> RawMessage:
        """Encode the video message."""
        frame = FRAME_KEY if self.is_key_frame else FRAME_INTER
        header = bytes([frame << 4 | VIDEO_H264, self.h264_type & 0xFF])
        body = header + (self.pts_delta & 0xFFFFFF).to_bytes(3, "big") + bytes(self.payload)
        return RawMessage(
            chunk_stream_id=self.chunk_stream_id,
            timestamp=self.dts,
            type=MessageType.VIDEO,
            message_stream_id=self.message_stream_id,
            body=body,
        )


def _decode_payload(raw: RawMessage) -> List[Any]:
    try:
        return decode_values(bytes(raw.body))
    except AMF0Error as exc:
        raise MessageError(str(exc)) from exc


@dataclass
class MsgCommandAMF0(Message):
    """Command message whose payload is a list of AMF0 values."""

    chunk_stream_id: int = 0
    message_stream_id: int = 0
    payload: List[Any] = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: RawMessage) -> "MsgCommandAMF0":
        """Decode a command message."""
        return cls(
            chunk_stream_id=raw.chunk_stream_id,
            message_stream_id=raw.message_stream_id,
            payload=_decode_payload(raw),
        )

    def to_raw(self) -> RawMessage:
        """Encode the command message."""
        return RawMessage(
            chunk_stream_id=self.chunk_stream_id,
            type=MessageType.COMMAND_AMF0,
            message_stream_id=self.message_stream_id,
            body=encode_values(self.payload),
        )


@dataclass
class MsgDataAMF0(Message):
    """Data message whose payload is a list of AMF0 values."""

    chunk_stream_id: int = 0
    message_stream_id: int = 0
    payload: List[Any] = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: RawMessage) -> "MsgDataAMF0":
        """Decode a data message."""
        return cls(
            chunk_stream_id=raw.chunk_stream_id,
            message_stream_id=raw.message_stream_id,
            payload=_decode_payload(raw),
        )

    def to_raw(self) -> RawMessage:
        """Encode the data message."""
        return RawMessage(
            chunk_stream_id=self.chunk_stream_id,
            type=MessageType.DATA_AMF0,
            message_stream_id=self.message_stream_id,
            body=encode_values(self.payload),
        )