"""AMF0 encoding and decoding of command and data message payloads.

Numbers decode to float, objects and ECMA arrays to dict, strict arrays
to list, dates to timezone-aware datetime, null and undefined to None.
"""

from __future__ import annotations

import struct
from datetime import datetime, timezone
from typing import Any, Iterable, List

_NUMBER = 0x00
_BOOLEAN = 0x01
_STRING = 0x02
_OBJECT = 0x03
_NULL = 0x05
_UNDEFINED = 0x06
_ECMA_ARRAY = 0x08
_OBJECT_END = 0x09
_STRICT_ARRAY = 0x0A
_DATE = 0x0B
_LONG_STRING = 0x0C

_MAX_SHORT_STRING = 0xFFFF


class AMF0Error(Exception):
    """Raised when a value cannot be encoded or data cannot be decoded."""


def _encode_key(key: str, out: bytearray) -> None:
    raw = key.encode("utf-8")
    if len(raw) > _MAX_SHORT_STRING:
        raise AMF0Error("object key too long")
    out += struct.pack(">H", len(raw)) + raw


def _encode(value: Any, out: bytearray) -> None:
    if value is None:
        out.append(_NULL)
    elif isinstance(value, bool):
        out += bytes([_BOOLEAN, 1 if value else 0])
    elif isinstance(value, (int, float)):
        out.append(_NUMBER)
        out += struct.pack(">d", float(value))
    elif isinstance(value, str):
        raw = value.encode("utf-8")
        if len(raw) > _MAX_SHORT_STRING:
            out.append(_LONG_STRING)
            out += struct.pack(">I", len(raw))
        else:
            out.append(_STRING)
            out += struct.pack(">H", len(raw))
        out += raw
    elif isinstance(value, dict):
        out.append(_OBJECT)
        for key, item in value.items():
            if not isinstance(key, str):
                raise AMF0Error(f"unsupported object key type: {type(key).__name__}")
            _encode_key(key, out)
            _encode(item, out)
        out += bytes([0x00, 0x00, _OBJECT_END])
    elif isinstance(value, (list, tuple)):
        out.append(_STRICT_ARRAY)
        out += struct.pack(">I", len(value))
        for item in value:
            _encode(item, out)
    elif isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        out.append(_DATE)
        out += struct.pack(">dh", value.timestamp() * 1000.0, 0)
    else:
        raise AMF0Error(f"unsupported type: {type(value).__name__}")


def encode_value(value: Any) -> bytes:
    """Encode a single value."""
    out = bytearray()
    _encode(value, out)
    return bytes(out)


def encode_values(values: Iterable[Any]) -> bytes:
    """Encode a sequence of values one after another."""
    out = bytearray()
    for value in values:
        _encode(value, out)
    return bytes(out)


class _Decoder:
    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def at_end(self) -> bool:
        return self._pos >= len(self._data)

    def _take(self, size: int) -> bytes:
        end = self._pos + size
        if end > len(self._data):
            raise AMF0Error("unexpected end of data")
        part = self._data[self._pos : end]
        self._pos = end
        return part

    def _u8(self) -> int:
        return self._take(1)[0]

    def _text(self, size: int) -> str:
        try:
            return self._take(size).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise AMF0Error("invalid string encoding") from exc

    def _short_text(self) -> str:
        (size,) = struct.unpack(">H", self._take(2))
        return self._text(size)

    def _pairs(self) -> dict:
        result = {}
        while True:
            key = self._short_text()
            if key == "" and self._pos < len(self._data) and self._data[self._pos] == _OBJECT_END:
                self._pos += 1
                return result
            result[key] = self.value()

    def value(self) -> Any:
        marker = self._u8()
        if marker == _NUMBER:
            return struct.unpack(">d", self._take(8))[0]
        if marker == _BOOLEAN:
            return self._u8() != 0
        if marker == _STRING:
            return self._short_text()
        if marker == _LONG_STRING:
            (size,) = struct.unpack(">I", self._take(4))
            return self._text(size)
        if marker == _OBJECT:
            return self._pairs()
        if marker == _ECMA_ARRAY:
            self._take(4)
            return self._pairs()
        if marker == _STRICT_ARRAY:
            (count,) = struct.unpack(">I", self._take(4))
            return [self.value() for _ in range(count)]
        if marker in (_NULL, _UNDEFINED):
            return None
        if marker == _DATE:
            millis, _tz = struct.unpack(">dh", self._take(10))
            try:
                return datetime.fromtimestamp(millis / 1000.0, tz=timezone.utc)
            except (OverflowError, ValueError, OSError) as exc:
                raise AMF0Error("invalid date") from exc
        raise AMF0Error(f"unsupported marker: 0x{marker:02x}")


def decode_values(data: bytes) -> List[Any]:
    """Decode every value in ``data``."""
    decoder = _Decoder(data)
    values = []
    while not decoder.at_end:
        values.append(decoder.value())
    return values