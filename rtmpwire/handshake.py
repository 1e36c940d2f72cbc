"""RTMP handshake packets C0/S0, C1/S1 and C2/S2."""

from __future__ import annotations

import hashlib
import hmac
import os
from dataclasses import dataclass
from typing import BinaryIO, Optional

RTMP_VERSION = 0x03
_PACKET_SIZE = 1536
_DIGEST_SIZE = 32

_KEY_TAIL = bytes([
    0xF0, 0xEE, 0xC2, 0x4A, 0x80, 0x68, 0xBE, 0xE8, 0x2E, 0x00, 0xD0, 0xD1,
    0x02, 0x9E, 0x7E, 0x57, 0x6E, 0xEC, 0x5D, 0x2D, 0x29, 0x80, 0x6F, 0xAB,
    0x93, 0xB8, 0xE6, 0x36, 0xCF, 0xEB, 0x31, 0xAE,
])
_CLIENT_FULL_KEY = b"Genuine Adobe Flash Player 001" + _KEY_TAIL
_SERVER_FULL_KEY = b"Genuine Adobe Flash Media Server 001" + _KEY_TAIL
_CLIENT_PARTIAL_KEY = _CLIENT_FULL_KEY[:30]
_SERVER_PARTIAL_KEY = _SERVER_FULL_KEY[:36]


class HandshakeError(Exception):
    """Raised when a handshake packet is invalid or incomplete."""


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = bytearray()
    while len(data) < size:
        part = stream.read(size - len(data))
        if not part:
            raise HandshakeError("unexpected end of handshake data")
        data += part
    return bytes(data)


def _digest_pos(packet: bytes, base: int) -> int:
    return sum(packet[base : base + 4]) % 728 + base + 4


def _make_digest(key: bytes, src: bytes, gap: int) -> bytes:
    h = hmac.new(key, digestmod=hashlib.sha256)
    if gap <= 0:
        h.update(src)
    else:
        h.update(src[:gap])
        h.update(src[gap + _DIGEST_SIZE :])
    return h.digest()


def _find_digest(packet: bytes, key: bytes, base: int) -> Optional[int]:
    gap = _digest_pos(packet, base)
    expected = _make_digest(key, packet, gap)
    if packet[gap : gap + _DIGEST_SIZE] != expected:
        return None
    return gap


def _fill_random(buf: bytearray, random: Optional[bytes]) -> None:
    if random is None:
        buf[8:] = os.urandom(_PACKET_SIZE - 8)
    else:
        part = bytes(random[: _PACKET_SIZE - 8])
        buf[8 : 8 + len(part)] = part


@dataclass
class C0S0:
    """C0 or S0 packet: the protocol version byte."""

    @classmethod
    def read(cls, stream: BinaryIO) -> "C0S0":
        """Read the packet and check the version."""
        version = _read_exact(stream, 1)[0]
        if version != RTMP_VERSION:
            raise HandshakeError(f"invalid rtmp version ({version})")
        return cls()

    def write(self, stream: BinaryIO) -> None:
        """Write the packet."""
        stream.write(bytes([RTMP_VERSION]))


@dataclass
class C1S1:
    """C1 or S1 packet, signed with an HMAC-SHA256 digest."""

    time: int = 0
    random: Optional[bytes] = None
    digest: Optional[bytes] = None

    @classmethod
    def read(cls, stream: BinaryIO, is_c1: bool) -> "C1S1":
        """Read and validate a C1 (``is_c1``) or S1 packet."""
        buf = _read_exact(stream, _PACKET_SIZE)
        if is_c1:
            peer_key, key = _CLIENT_PARTIAL_KEY, _SERVER_FULL_KEY
        else:
            peer_key, key = _SERVER_PARTIAL_KEY, _CLIENT_FULL_KEY

        pos = _find_digest(buf, peer_key, 772)
        if pos is None:
            pos = _find_digest(buf, peer_key, 8)
            if pos is None:
                raise HandshakeError("unable to validate C1/S1 signature")

        return cls(
            time=int.from_bytes(buf[:4], "big"),
            random=buf[8:],
            digest=_make_digest(key, buf[pos : pos + _DIGEST_SIZE], -1),
        )

    def write(self, stream: BinaryIO, is_c1: bool) -> None:
        """Sign and write the packet, storing the digest the peer will use in C2/S2."""
        buf = bytearray(_PACKET_SIZE)
        buf[0:4] = (self.time & 0xFFFFFFFF).to_bytes(4, "big")
        _fill_random(buf, self.random)

        gap = _digest_pos(buf, 8)
        key = _CLIENT_PARTIAL_KEY if is_c1 else _SERVER_PARTIAL_KEY
        buf[gap : gap + _DIGEST_SIZE] = _make_digest(key, bytes(buf), gap)

        response_key = _SERVER_FULL_KEY if is_c1 else _CLIENT_FULL_KEY
        self.digest = _make_digest(response_key, bytes(buf[gap : gap + _DIGEST_SIZE]), -1)

        stream.write(bytes(buf))


@dataclass
class C2S2:
    """C2 or S2 packet, optionally signed with the peer's digest."""

    time: int = 0
    time2: int = 0
    random: Optional[bytes] = None
    digest: Optional[bytes] = None

    @classmethod
    def read(cls, stream: BinaryIO, digest: Optional[bytes]) -> "C2S2":
        """Read a packet and validate its signature against ``digest``."""
        buf = _read_exact(stream, _PACKET_SIZE)
        gap = _PACKET_SIZE - _DIGEST_SIZE
        expected = _make_digest(digest or b"", buf, gap)
        if buf[gap : gap + _DIGEST_SIZE] != expected:
            raise HandshakeError("unable to validate C2/S2 signature")
        return cls(
            time=int.from_bytes(buf[:4], "big"),
            time2=int.from_bytes(buf[4:8], "big"),
            random=buf[8:],
            digest=digest,
        )

    def write(self, stream: BinaryIO) -> None:
        """Write the packet, signing it when a digest is set."""
        buf = bytearray(_PACKET_SIZE)
        buf[0:4] = (self.time & 0xFFFFFFFF).to_bytes(4, "big")
        buf[4:8] = (self.time2 & 0xFFFFFFFF).to_bytes(4, "big")
        _fill_random(buf, self.random)

        if self.digest is not None:
            gap = _PACKET_SIZE - _DIGEST_SIZE
            buf[gap:] = _make_digest(self.digest, bytes(buf), gap)

        stream.write(bytes(buf))