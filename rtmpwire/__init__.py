"""RTMP wire format: handshake packets, chunks, raw messages, AMF0 and typed messages."""

__version__ = "0.1.0"