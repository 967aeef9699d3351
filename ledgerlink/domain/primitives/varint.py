"""Unsigned LEB128 varints and a bounds-checked byte reader.

Every length prefix on the wire (envelope, node reply, canonical
payload) is an unsigned LEB128 varint in its minimal encoding. Decoding
rejects non-minimal encodings so that any accepted byte string
re-encodes to exactly the same bytes.
"""

from __future__ import annotations

from ledgerlink.domain.errors.encoding import ProtocolDecodeError

# 10 bytes carry 70 bits, enough for any 64-bit length
MAX_VARINT_BYTES = 10
MAX_VARINT_VALUE = (1 << 64) - 1


def encode_uvarint(value: int) -> bytes:
    """Encode a non-negative integer as a minimal unsigned LEB128 varint.

    Args:
        value: Integer in [0, 2**64 - 1].

    Returns:
        Encoded bytes (1 to 10 bytes).

    Raises:
        ValueError: If value is negative or too large.
    """
    if value < 0 or value > MAX_VARINT_VALUE:
        raise ValueError(f"varint out of range: {value}")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


class ByteReader:
    """Sequential reader over an immutable byte string.

    All reads are bounds-checked and raise ProtocolDecodeError (with the
    failing offset) instead of IndexError or struct.error.
    """

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._offset = 0

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def at_end(self) -> bool:
        return self._offset == len(self._data)

    def read(self, count: int) -> bytes:
        """Read exactly ``count`` bytes."""
        if count < 0 or count > self.remaining:
            raise ProtocolDecodeError(
                f"Truncated input: need {count} bytes, have {self.remaining}",
                offset=self._offset,
            )
        start = self._offset
        self._offset += count
        return self._data[start : self._offset]

    def read_byte(self) -> int:
        return self.read(1)[0]

    def read_uvarint(self) -> int:
        """Read a minimal unsigned LEB128 varint."""
        start = self._offset
        result = 0
        for index in range(MAX_VARINT_BYTES):
            byte = self.read_byte()
            result |= (byte & 0x7F) << (7 * index)
            if not byte & 0x80:
                if index > 0 and byte == 0:
                    raise ProtocolDecodeError("Non-minimal varint", offset=start)
                if result > MAX_VARINT_VALUE:
                    raise ProtocolDecodeError("Varint overflow", offset=start)
                return result
        raise ProtocolDecodeError("Varint too long", offset=start)

    def read_prefixed(self) -> bytes:
        """Read a varint length followed by that many bytes."""
        length = self.read_uvarint()
        return self.read(length)

    def read_prefixed_text(self) -> str:
        """Read a length-prefixed UTF-8 string."""
        start = self._offset
        raw = self.read_prefixed()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolDecodeError("Invalid UTF-8 text", offset=start) from e

    def expect_end(self) -> None:
        """Fail if unread bytes remain."""
        if not self.at_end():
            raise ProtocolDecodeError(
                f"{self.remaining} trailing byte(s)", offset=self._offset
            )


def prefixed(data: bytes) -> bytes:
    """Return ``data`` preceded by its varint length."""
    return encode_uvarint(len(data)) + data
