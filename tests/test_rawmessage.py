import pytest

from rtmpwire.bytecounter import CountingReader, CountingWriter
from rtmpwire.chunk import Chunk0, Chunk1, Chunk2, Chunk3, MessageType
from rtmpwire.rawmessage import (
    RawMessage,
    RawMessageError,
    RawMessageReader,
    RawMessageWriter,
)


class _Pipe:
    """In-memory FIFO: writes append, reads consume from the front."""

    def __init__(self):
        self._data = bytearray()

    def write(self, data):
        self._data += data
        return len(data)

    def read(self, size=-1):
        if size < 0:
            size = len(self._data)
        out = bytes(self._data[:size])
        del self._data[:size]
        return out


def _new_reader(on_ack=None):
    pipe = _Pipe()
    reader = RawMessageReader(CountingReader(pipe), on_ack or (lambda count: None))
    return pipe, reader


def _check_sequence(seq):
    pipe, reader = _new_reader()
    for chunk, expected in seq:
        pipe.write(chunk.to_bytes())
        assert reader.read() == expected


def test_reader_chunk0_chunk1():
    _check_sequence([
        (
            Chunk0(27, 18576, MessageType.SET_PEER_BANDWIDTH, 3123, 64, b"\x02" * 64),
            RawMessage(27, 18576, MessageType.SET_PEER_BANDWIDTH, 3123, b"\x02" * 64),
        ),
        (
            Chunk1(27, 15, MessageType.SET_PEER_BANDWIDTH, 64, b"\x03" * 64),
            RawMessage(27, 18576 + 15, MessageType.SET_PEER_BANDWIDTH, 3123, b"\x03" * 64),
        ),
    ])


def test_reader_chunk0_chunk2_chunk3():
    _check_sequence([
        (
            Chunk0(27, 18576, MessageType.SET_PEER_BANDWIDTH, 3123, 64, b"\x02" * 64),
            RawMessage(27, 18576, MessageType.SET_PEER_BANDWIDTH, 3123, b"\x02" * 64),
        ),
        (
            Chunk2(27, 15, b"\x03" * 64),
            RawMessage(27, 18576 + 15, MessageType.SET_PEER_BANDWIDTH, 3123, b"\x03" * 64),
        ),
        (
            Chunk3(27, b"\x04" * 64),
            RawMessage(27, 18576 + 15 + 15, MessageType.SET_PEER_BANDWIDTH, 3123, b"\x04" * 64),
        ),
    ])


def test_reader_chunk0_continued_by_chunk3():
    pipe, reader = _new_reader()
    pipe.write(Chunk0(27, 18576, MessageType.SET_PEER_BANDWIDTH, 3123, 192, b"\x03" * 128).to_bytes())
    pipe.write(Chunk3(27, b"\x03" * 64).to_bytes())
    assert reader.read() == RawMessage(
        27, 18576, MessageType.SET_PEER_BANDWIDTH, 3123, b"\x03" * 192
    )


def test_reader_acknowledge():
    calls = []
    pipe, reader = _new_reader(calls.append)
    reader.window_ack_size = 100
    for _ in range(2):
        pipe.write(
            Chunk0(27, 18576, MessageType.SET_PEER_BANDWIDTH, 3123, 64, b"\x03" * 64).to_bytes()
        )
    for _ in range(2):
        msg = reader.read()
        assert msg.body == b"\x03" * 64
    assert len(calls) == 1
    assert calls[0] > 100


def test_reader_type1_without_previous_chunk():
    pipe, reader = _new_reader()
    pipe.write(Chunk1(27, 15, MessageType.AUDIO, 4, b"\x01" * 4).to_bytes())
    with pytest.raises(RawMessageError, match="type 1 chunk without previous chunk"):
        reader.read()


def test_reader_type3_without_previous_chunk():
    pipe, reader = _new_reader()
    pipe.write(Chunk3(27, b"\x01").to_bytes())
    with pytest.raises(RawMessageError, match="type 3 chunk without previous chunk"):
        reader.read()


def test_reader_type0_while_message_incomplete():
    pipe, reader = _new_reader()
    pipe.write(Chunk0(27, 0, MessageType.VIDEO, 1, 192, b"\x01" * 128).to_bytes())
    pipe.write(Chunk0(27, 0, MessageType.VIDEO, 1, 4, b"\x01" * 4).to_bytes())
    with pytest.raises(RawMessageError, match="expected type 3 chunk"):
        reader.read()


def test_reader_end_of_stream():
    _, reader = _new_reader()
    with pytest.raises(EOFError):
        reader.read()


def test_reader_larger_chunk_size():
    pipe, reader = _new_reader()
    reader.chunk_size = 256
    pipe.write(Chunk0(5, 7, MessageType.VIDEO, 1, 200, b"\x09" * 200).to_bytes())
    assert reader.read() == RawMessage(5, 7, MessageType.VIDEO, 1, b"\x09" * 200)


def test_writer_chunk0_chunk1():
    pipe = _Pipe()
    writer = RawMessageWriter(CountingWriter(pipe))

    writer.write(RawMessage(27, 18576, MessageType.SET_PEER_BANDWIDTH, 3123, b"\x03" * 64))
    assert Chunk0.read(pipe, 128) == Chunk0(
        27, 18576, MessageType.SET_PEER_BANDWIDTH, 3123, 64, b"\x03" * 64
    )

    writer.write(RawMessage(27, 18576 + 15, MessageType.SET_WINDOW_ACK_SIZE, 3123, b"\x04" * 64))
    assert Chunk1.read(pipe, 128) == Chunk1(
        27, 15, MessageType.SET_WINDOW_ACK_SIZE, 64, b"\x04" * 64
    )


def test_writer_chunk0_chunk2_chunk3():
    pipe = _Pipe()
    writer = RawMessageWriter(CountingWriter(pipe))

    writer.write(RawMessage(27, 18576, MessageType.SET_PEER_BANDWIDTH, 3123, b"\x03" * 64))
    assert Chunk0.read(pipe, 128) == Chunk0(
        27, 18576, MessageType.SET_PEER_BANDWIDTH, 3123, 64, b"\x03" * 64
    )

    writer.write(RawMessage(27, 18576 + 15, MessageType.SET_PEER_BANDWIDTH, 3123, b"\x04" * 64))
    assert Chunk2.read(pipe, 64) == Chunk2(27, 15, b"\x04" * 64)

    writer.write(
        RawMessage(27, 18576 + 15 + 15, MessageType.SET_PEER_BANDWIDTH, 3123, b"\x05" * 64)
    )
    assert Chunk3.read(pipe, 64) == Chunk3(27, b"\x05" * 64)


def test_writer_chunk0_chunk3():
    pipe = _Pipe()
    writer = RawMessageWriter(CountingWriter(pipe))

    writer.write(RawMessage(27, 18576, MessageType.SET_PEER_BANDWIDTH, 3123, b"\x03" * 192))
    assert Chunk0.read(pipe, 128) == Chunk0(
        27, 18576, MessageType.SET_PEER_BANDWIDTH, 3123, 192, b"\x03" * 128
    )
    assert Chunk3.read(pipe, 64) == Chunk3(27, b"\x03" * 64)


def test_writer_acknowledge():
    pipe = _Pipe()
    writer = RawMessageWriter(CountingWriter(pipe))
    writer.window_ack_size = 100

    for _ in range(2):
        writer.write(RawMessage(27, 18576, MessageType.SET_PEER_BANDWIDTH, 3123, b"\x03" * 64))

    with pytest.raises(RawMessageError) as info:
        writer.write(RawMessage(27, 18576, MessageType.SET_PEER_BANDWIDTH, 3123, b"\x03" * 64))
    assert str(info.value) == "no acknowledge received within window"


def test_writer_acknowledge_value_resets_window():
    pipe = _Pipe()
    counter = CountingWriter(pipe)
    writer = RawMessageWriter(counter)
    writer.window_ack_size = 100

    for _ in range(5):
        writer.write(RawMessage(27, 18576, MessageType.SET_PEER_BANDWIDTH, 3123, b"\x03" * 64))
        writer.ack_value = counter.count
    assert counter.count == writer.ack_value


def test_writer_reader_round_trip():
    pipe = _Pipe()
    writer = RawMessageWriter(CountingWriter(pipe))
    _, _ = None, None
    reader = RawMessageReader(CountingReader(pipe), lambda count: None)

    messages = [
        RawMessage(4, 100, MessageType.AUDIO, 1, b"\xaa" * 300),
        RawMessage(4, 120, MessageType.AUDIO, 1, b"\xbb" * 300),
        RawMessage(4, 140, MessageType.AUDIO, 1, b"\xcc" * 300),
        RawMessage(4, 150, MessageType.VIDEO, 1, b"\xdd" * 10),
        RawMessage(6, 50, MessageType.VIDEO, 2, b""),
    ]
    for msg in messages:
        writer.write(msg)
    for msg in messages:
        assert reader.read() == msg