"""Wire-level primitives shared by the canonical, envelope and reply codecs."""

from ledgerlink.domain.primitives.varint import (
    MAX_VARINT_VALUE,
    ByteReader,
    encode_uvarint,
    prefixed,
)

__all__ = ["ByteReader", "MAX_VARINT_VALUE", "encode_uvarint", "prefixed"]
