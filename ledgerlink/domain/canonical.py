"""Canonical payload encoding.

Maps a structured transaction payload to a byte sequence that every
independent implementation reproduces exactly. Signatures are computed
over these bytes, so the rules below are part of the network protocol.

Every value starts with a one-byte type tag:

    0x00 null      (no body)
    0x01 bool      1 byte, 0x00 or 0x01
    0x02 int       8-byte big-endian two's complement (int64 only)
    0x03 float     8-byte IEEE-754 binary64 big-endian; -0.0 is written
                   as 0.0, NaN and infinities are rejected
    0x04 string    varint byte length + UTF-8
    0x05 bytes     varint length + raw bytes
    0x06 array     varint count + elements, in the given order
    0x07 record    varint count + (varint key length, UTF-8 key, value)
                   pairs sorted by UTF-8 key bytes

The top-level payload is always a record. Field insertion order in the
source mapping never affects the output.
"""

from __future__ import annotations

import math
import struct
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ledgerlink.domain.errors.encoding import EncodingError, ProtocolDecodeError
from ledgerlink.domain.primitives.varint import ByteReader, encode_uvarint, prefixed

TAG_NULL = 0x00
TAG_BOOL = 0x01
TAG_INT = 0x02
TAG_FLOAT = 0x03
TAG_STRING = 0x04
TAG_BYTES = 0x05
TAG_ARRAY = 0x06
TAG_RECORD = 0x07

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1

# Nesting limit shared by encoder and decoder
MAX_DEPTH = 64


@dataclass(frozen=True)
class CanonicalPayload:
    """Canonical bytes of a structured payload."""

    data: bytes

    def __len__(self) -> int:
        return len(self.data)

    def decode(self) -> dict[str, Any]:
        """Decode back to a structured record."""
        return decode_canonical(self.data)


def canonicalize(payload: Mapping[str, Any]) -> CanonicalPayload:
    """Encode a payload record into canonical bytes.

    Args:
        payload: Mapping with ``str`` keys. Values may be None, bool, int,
            float, str, bytes, sequences (list/tuple) or nested mappings.

    Returns:
        The CanonicalPayload.

    Raises:
        EncodingError: If any value has no canonical encoding.
    """
    if not isinstance(payload, Mapping):
        raise EncodingError(
            f"Payload must be a record, got {type(payload).__name__}", "$"
        )
    out = bytearray()
    _encode_value(payload, "$", out, 0)
    return CanonicalPayload(bytes(out))


def _encode_value(value: Any, path: str, out: bytearray, depth: int) -> None:
    if depth > MAX_DEPTH:
        raise EncodingError("Nesting too deep", path)
    # bool is a subclass of int and must be checked first
    if value is None:
        out.append(TAG_NULL)
    elif isinstance(value, bool):
        out.append(TAG_BOOL)
        out.append(0x01 if value else 0x00)
    elif isinstance(value, int):
        if not INT64_MIN <= value <= INT64_MAX:
            raise EncodingError(f"Integer {value} outside int64 range", path)
        out.append(TAG_INT)
        out += struct.pack(">q", value)
    elif isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise EncodingError(f"Float {value!r} has no canonical encoding", path)
        out.append(TAG_FLOAT)
        out += struct.pack(">d", 0.0 if value == 0.0 else value)
    elif isinstance(value, str):
        out.append(TAG_STRING)
        out += prefixed(_utf8(value, path))
    elif isinstance(value, (bytes, bytearray, memoryview)):
        out.append(TAG_BYTES)
        out += prefixed(bytes(value))
    elif isinstance(value, Mapping):
        _encode_record(value, path, out, depth)
    elif isinstance(value, Sequence):
        out.append(TAG_ARRAY)
        out += encode_uvarint(len(value))
        for index, item in enumerate(value):
            _encode_value(item, f"{path}[{index}]", out, depth + 1)
    else:
        raise EncodingError(
            f"Unsupported value type {type(value).__name__}", path
        )


def _encode_record(
    record: Mapping[Any, Any], path: str, out: bytearray, depth: int
) -> None:
    entries: list[tuple[bytes, Any, str]] = []
    for key, item in record.items():
        if not isinstance(key, str):
            raise EncodingError(
                f"Record key must be str, got {type(key).__name__}", path
            )
        entries.append((_utf8(key, path), item, f"{path}.{key}"))
    entries.sort(key=lambda entry: entry[0])

    out.append(TAG_RECORD)
    out += encode_uvarint(len(entries))
    for key_bytes, item, item_path in entries:
        out += prefixed(key_bytes)
        _encode_value(item, item_path, out, depth + 1)


def _utf8(text: str, path: str) -> bytes:
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError("String is not encodable as UTF-8", path) from e


def decode_canonical(data: bytes) -> dict[str, Any]:
    """Decode canonical bytes back into a structured record.

    Decoding is strict: record keys must be strictly ascending, varints
    minimal, floats in normal form and no bytes may trail the value.
    Arrays decode to lists.

    Raises:
        ProtocolDecodeError: If the bytes are not a canonical record.
    """
    reader = ByteReader(data)
    if reader.remaining == 0 or data[0] != TAG_RECORD:
        raise ProtocolDecodeError("Canonical payload must be a record", offset=0)
    value = _decode_value(reader, 0)
    reader.expect_end()
    return value


def _decode_value(reader: ByteReader, depth: int) -> Any:
    if depth > MAX_DEPTH:
        raise ProtocolDecodeError("Nesting too deep", offset=reader.offset)
    start = reader.offset
    tag = reader.read_byte()
    if tag == TAG_NULL:
        return None
    if tag == TAG_BOOL:
        flag = reader.read_byte()
        if flag not in (0x00, 0x01):
            raise ProtocolDecodeError("Invalid boolean byte", offset=start)
        return flag == 0x01
    if tag == TAG_INT:
        return struct.unpack(">q", reader.read(8))[0]
    if tag == TAG_FLOAT:
        raw = reader.read(8)
        value = struct.unpack(">d", raw)[0]
        if math.isnan(value) or math.isinf(value) or raw == struct.pack(">d", -0.0):
            raise ProtocolDecodeError("Non-canonical float", offset=start)
        return value
    if tag == TAG_STRING:
        return reader.read_prefixed_text()
    if tag == TAG_BYTES:
        return reader.read_prefixed()
    if tag == TAG_ARRAY:
        count = reader.read_uvarint()
        return [_decode_value(reader, depth + 1) for _ in range(count)]
    if tag == TAG_RECORD:
        count = reader.read_uvarint()
        record: dict[str, Any] = {}
        previous: bytes | None = None
        for _ in range(count):
            key_offset = reader.offset
            key_bytes = reader.read_prefixed()
            if previous is not None and key_bytes <= previous:
                raise ProtocolDecodeError(
                    "Record keys not in canonical order", offset=key_offset
                )
            previous = key_bytes
            try:
                key = key_bytes.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ProtocolDecodeError("Invalid UTF-8 key", offset=key_offset) from e
            record[key] = _decode_value(reader, depth + 1)
        return record
    raise ProtocolDecodeError(f"Unknown value tag 0x{tag:02x}", offset=start)
