import io

import pytest

from rtmpwire.bytecounter import CountingReader, CountingReadWriter, CountingWriter
from rtmpwire.chunk import Chunk0, MessageType
from rtmpwire.media import AVC_NALU, MsgAudio, MsgCommandAMF0, MsgDataAMF0, MsgVideo
from rtmpwire.messageio import MessageReader, MessageReadWriter, MessageWriter, parse_message
from rtmpwire.messages import (
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
)
from rtmpwire.rawmessage import RawMessage, RawMessageError


class _Duplex:
    def __init__(self, incoming: bytes) -> None:
        self.incoming = io.BytesIO(incoming)
        self.outgoing = io.BytesIO()

    def read(self, size=-1):
        return self.incoming.read(size)

    def write(self, data):
        return self.outgoing.write(data)


def _encode(*msgs) -> bytes:
    buf = io.BytesIO()
    writer = MessageWriter(CountingWriter(buf))
    for msg in msgs:
        writer.write(msg)
    return buf.getvalue()


def _decode_all(data: bytes):
    reader = MessageReader(CountingReader(io.BytesIO(data)), lambda count: None)
    msgs = []
    while True:
        try:
            msgs.append(reader.read())
        except EOFError:
            return msgs


def _video(size: int) -> MsgVideo:
    return MsgVideo(
        chunk_stream_id=6,
        message_stream_id=1,
        is_key_frame=True,
        h264_type=AVC_NALU,
        payload=bytes(range(256))[:size] if size <= 256 else b"\x05" * size,
    )


@pytest.mark.parametrize(
    "msg",
    [
        MsgSetChunkSize(value=65536),
        MsgAcknowledge(value=2500000),
        MsgSetWindowAckSize(value=2500000),
        MsgUserControlStreamBegin(stream_id=1),
        MsgUserControlStreamEOF(stream_id=1),
        MsgUserControlStreamDry(stream_id=1),
        MsgUserControlStreamIsRecorded(stream_id=1),
        MsgUserControlSetBufferLength(stream_id=1, buffer_length=3000),
        MsgUserControlPingRequest(server_time=1234),
        MsgUserControlPingResponse(server_time=1234),
        MsgCommandAMF0(chunk_stream_id=3, payload=["createStream", 2.0, None]),
        MsgDataAMF0(chunk_stream_id=4, message_stream_id=1, payload=["onMetaData", {"width": 2688.0}]),
        MsgAudio(chunk_stream_id=4, message_stream_id=1, rate=3, depth=1, channels=1, payload=b"\x12\x10"),
        MsgVideo(chunk_stream_id=6, message_stream_id=1, is_key_frame=True, payload=b"\x01\x02"),
    ],
)
def test_parse_message_round_trip(msg):
    assert parse_message(msg.to_raw()) == msg


def test_parse_message_unhandled_type():
    raw = RawMessage(chunk_stream_id=3, type=MessageType.COMMAND_AMF3, body=b"\x00")
    with pytest.raises(MessageError, match="unhandled message"):
        parse_message(raw)


def test_parse_message_unknown_user_control():
    raw = RawMessage(chunk_stream_id=2, type=MessageType.USER_CONTROL, body=b"\x00\x05\x00\x00\x00\x01")
    with pytest.raises(MessageError, match="invalid user control type"):
        parse_message(raw)


def test_parse_message_short_user_control():
    raw = RawMessage(chunk_stream_id=2, type=MessageType.USER_CONTROL, body=b"\x00")
    with pytest.raises(MessageError, match="invalid body size"):
        parse_message(raw)


def test_peer_bandwidth_is_sent_with_chunk_size_type():
    raw = MsgSetPeerBandwidth(value=2500000, type=2).to_raw()
    with pytest.raises(MessageError, match="unexpected body size"):
        parse_message(raw)


def test_writer_reader_round_trip():
    msgs = [
        MsgCommandAMF0(chunk_stream_id=3, payload=["connect", 1.0, {"app": "stream"}]),
        MsgUserControlStreamBegin(stream_id=1),
        _video(200),
        _video(200),
    ]
    assert _decode_all(_encode(*msgs)) == msgs


def test_chunk_size_applies_to_both_sides():
    msgs = [MsgSetChunkSize(value=65536), _video(1000)]
    data = _encode(*msgs)
    assert _decode_all(data) == msgs

    stream = io.BytesIO(data)
    Chunk0.read(stream, 128)
    big = Chunk0.read(stream, 65536)
    assert big.body_len == len(big.body)
    assert stream.read() == b""


def test_readwriter_answers_ping():
    duplex = _Duplex(_encode(MsgUserControlPingRequest(server_time=1234)))
    rw = MessageReadWriter(CountingReadWriter(duplex))
    assert rw.read() == MsgUserControlPingRequest(server_time=1234)
    assert _decode_all(duplex.outgoing.getvalue()) == [MsgUserControlPingRequest(server_time=1234)]


def test_readwriter_write_without_acknowledge_fails():
    rw = MessageReadWriter(CountingReadWriter(_Duplex(b"")))
    rw.write(MsgSetWindowAckSize(value=100))
    with pytest.raises(RawMessageError, match="no acknowledge received within window"):
        rw.write(_video(200))


def test_readwriter_write_after_acknowledge():
    duplex = _Duplex(_encode(MsgAcknowledge(value=100)))
    rw = MessageReadWriter(CountingReadWriter(duplex))
    assert rw.read() == MsgAcknowledge(value=100)

    rw.write(MsgSetWindowAckSize(value=100))
    rw.write(_video(200))
    assert _decode_all(duplex.outgoing.getvalue()) == [MsgSetWindowAckSize(value=100), _video(200)]


def test_reader_end_of_stream():
    reader = MessageReader(CountingReader(io.BytesIO(b"")), lambda count: None)
    with pytest.raises(EOFError):
        reader.read()