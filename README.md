# rtmpwire

The RTMP wire format in pure Python, using only the standard library.
It encodes and decodes what travels over an RTMP connection. The bytes can
come from any binary stream: a socket file, `io.BytesIO`, a pipe.

## What it covers

- **Handshake** (`rtmpwire.handshake`)
  - `C0S0` reads and writes the version byte and rejects any version other
    than 3.
  - `C1S1` writes signed C1/S1 packets and validates them with HMAC-SHA256.
    After `write()` or `read()`, its `digest` holds the key that the C2/S2
    signature is checked against.
  - `C2S2` writes C2/S2 packets, signed when a `digest` is set.
    `C2S2.read(stream, digest)` checks the signature.
  - Invalid or short packets raise `HandshakeError`.
- **Chunks** (`rtmpwire.chunk`)
  - The four chunk header formats `Chunk0`, `Chunk1`, `Chunk2` and `Chunk3`,
    each with a `read()` class method and a `to_bytes()` method.
  - The `MessageType` enumeration.
  - Short input raises `ChunkError`.
- **Raw messages** (`rtmpwire.rawmessage`)
  - `RawMessageReader` puts chunks from many chunk streams back together into
    `RawMessage` objects.
  - `RawMessageWriter` splits messages into chunks and picks the most compact
    header type for each.
  - Both expose `chunk_size` (default 128) and `window_ack_size`.
  - The reader calls `on_ack_needed(count)` when an acknowledgement window is
    exceeded.
  - The writer has an `ack_value` attribute. It raises `RawMessageError` when
    more than 1.5 windows go unacknowledged.
- **AMF0** (`rtmpwire.amf0`)
  - `encode_value`, `encode_values` and `decode_values` handle numbers,
    booleans, strings, objects (`dict`), strict arrays (`list`), null and dates.
  - ECMA arrays decode to `dict`, and undefined decodes to `None`.
  - Numbers always decode to `float`.
  - Failures raise `AMF0Error`.
- **Typed messages**
  - `rtmpwire.messages` holds the protocol control messages:
    - `MsgSetChunkSize`
    - `MsgAcknowledge`
    - `MsgSetWindowAckSize`
    - `MsgSetPeerBandwidth`
  - `rtmpwire.messages` also holds the user control events:
    - `MsgUserControlStreamBegin`
    - `MsgUserControlStreamEOF`
    - `MsgUserControlStreamDry`
    - `MsgUserControlSetBufferLength`
    - `MsgUserControlStreamIsRecorded`
    - `MsgUserControlPingRequest`
    - `MsgUserControlPingResponse`
  - `rtmpwire.media` holds `MsgAudio` (AAC only), `MsgVideo` (H264 only),
    `MsgCommandAMF0` and `MsgDataAMF0`.
  - Every message has `from_raw(raw)` and `to_raw()`.
  - Invalid messages raise `MessageError`.
- **Message I/O** (`rtmpwire.messageio`)
  - `parse_message(raw)` picks the typed message for a raw one.
  - `MessageReader` and `MessageWriter` apply set-chunk-size and
    window-acknowledgement-size messages as they pass.
  - `MessageReadWriter` joins the two over one stream. It sends acknowledgements
    when the window is exceeded, records acknowledgements it receives, and
    answers ping requests.
- **Byte counting** (`rtmpwire.bytecounter`)
  - `CountingReader`, `CountingWriter` and `CountingReadWriter` wrap a stream.
    Their `count` property gives the bytes moved so far, modulo 2**32.
  - `CountingReader.read_byte()` raises `EOFError` at end of stream.

## Installation

```
pip install .
```

## Examples

Write a message and read it back:

```python
import io

from rtmpwire.bytecounter import CountingReadWriter
from rtmpwire.messageio import MessageReadWriter
from rtmpwire.messages import MsgSetChunkSize

stream = io.BytesIO()
rw = MessageReadWriter(CountingReadWriter(stream))
rw.write(MsgSetChunkSize(value=65536))

stream.seek(0)
print(rw.read())  # MsgSetChunkSize(value=65536)
```

Handshake packets:

```python
import io

from rtmpwire.handshake import C0S0, C1S1

buf = io.BytesIO()
C0S0().write(buf)
c1 = C1S1(time=0)
c1.write(buf, True)

buf.seek(0)
C0S0.read(buf)
received = C1S1.read(buf, True)
assert received.digest == c1.digest
```

AMF0:

```python
from rtmpwire.amf0 import decode_values, encode_values

data = encode_values(["connect", 1, {"app": "live"}])
print(decode_values(data))  # ['connect', 1.0, {'app': 'live'}]
```

## What it does not do

This is a codec library only. It does not do any of the following:

- Open sockets or run an RTMP client or server.
- Drive the sequence of handshake packets.
- Handle the connect, createStream, publish or play command flow.
- Extract H264 or AAC track configurations from media messages.

AMF3 command and data messages, and abort messages, are not interpreted:
`parse_message` raises `MessageError` for them.

## Tests

```
pip install .[test]
pytest
```