"""Transaction envelope: the signed, wire-ready unit sent to a ledger node.

Wire layout (varints are minimal unsigned LEB128):

    algorithm tag     1 byte (SignatureScheme.wire_tag)
    public key        varint length + DER SubjectPublicKeyInfo
    payload           varint length + canonical payload bytes
    signature         varint length + signature bytes
    metadata          varint count + (varint length + UTF-8 key,
                      varint length + UTF-8 value) pairs, keys strictly
                      ascending by UTF-8 bytes; count is 0 when absent

Decoding accepts only the canonical form of this layout, so every
accepted byte string re-serializes to itself.

The envelope is a value object. It performs no cryptography: checking
the embedded signature against the embedded payload is the caller's
job, exposed through revalidate().
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from ledgerlink.domain.canonical import CanonicalPayload
from ledgerlink.domain.errors.encoding import ProtocolDecodeError
from ledgerlink.domain.errors.key import MalformedSignatureError
from ledgerlink.domain.models.identity import PublicIdentity, Signature, SignatureScheme
from ledgerlink.domain.primitives.varint import ByteReader, encode_uvarint, prefixed

SignatureCheck = Callable[[bytes, Signature, PublicIdentity], bool]


@dataclass(frozen=True, eq=True)
class TransactionEnvelope:
    """Signed transaction envelope (immutable after signing).

    Create one per submission attempt. If the payload content changes
    for a retry, a new envelope must be built and signed.

    Attributes:
        payload: Canonical payload bytes that were signed.
        identity: Signer's public identity.
        signature: Signature over ``payload.data``.
        metadata: Caller-supplied key/value pairs (nonce, timestamp, ...),
            not covered by the signature.
    """

    payload: CanonicalPayload
    identity: PublicIdentity
    signature: Signature
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate envelope invariants and freeze metadata."""
        if self.signature.algorithm is not self.identity.algorithm:
            raise MalformedSignatureError(
                f"Signature scheme {self.signature.scheme.value} does not match "
                f"{self.identity.algorithm.value} identity"
            )
        for key, value in self.metadata.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise TypeError("Envelope metadata keys and values must be str")
        ordered = dict(sorted(self.metadata.items(), key=lambda kv: kv[0].encode("utf-8")))
        object.__setattr__(self, "metadata", MappingProxyType(ordered))

    @classmethod
    def build(
        cls,
        payload: CanonicalPayload,
        identity: PublicIdentity,
        signature: Signature,
        metadata: Mapping[str, str] | None = None,
    ) -> TransactionEnvelope:
        """Assemble an envelope from already-signed parts."""
        return cls(
            payload=payload,
            identity=identity,
            signature=signature,
            metadata=dict(metadata or {}),
        )

    def serialize_for_wire(self) -> bytes:
        """Encode the envelope in the network format."""
        out = bytearray()
        out.append(self.signature.scheme.wire_tag)
        out += prefixed(self.identity.public_key)
        out += prefixed(self.payload.data)
        out += prefixed(self.signature.value)
        out += encode_uvarint(len(self.metadata))
        for key, value in self.metadata.items():
            out += prefixed(key.encode("utf-8"))
            out += prefixed(value.encode("utf-8"))
        return bytes(out)

    @classmethod
    def deserialize_from_wire(cls, data: bytes) -> TransactionEnvelope:
        """Decode an envelope from the network format.

        Raises:
            ProtocolDecodeError: On truncated, malformed or non-canonical input.
        """
        reader = ByteReader(data)
        tag = reader.read_byte()
        try:
            scheme = SignatureScheme.from_wire_tag(tag)
        except ValueError as e:
            raise ProtocolDecodeError(str(e), offset=0) from e

        public_key = reader.read_prefixed()
        payload = reader.read_prefixed()
        signature = reader.read_prefixed()
        if not public_key:
            raise ProtocolDecodeError("Empty public key", offset=1)

        metadata: dict[str, str] = {}
        previous: bytes | None = None
        for _ in range(reader.read_uvarint()):
            key_offset = reader.offset
            key_bytes = reader.read_prefixed()
            if previous is not None and key_bytes <= previous:
                raise ProtocolDecodeError(
                    "Metadata keys not strictly ascending", offset=key_offset
                )
            previous = key_bytes
            try:
                key = key_bytes.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ProtocolDecodeError("Invalid UTF-8 metadata key", offset=key_offset) from e
            metadata[key] = reader.read_prefixed_text()
        reader.expect_end()

        return cls(
            payload=CanonicalPayload(payload),
            identity=PublicIdentity(scheme.key_algorithm, public_key),
            signature=Signature(scheme, signature),
            metadata=metadata,
        )

    def identifying_hash(self) -> bytes:
        """SHA-256 of the wire bytes.

        Territories sign this hash in their votes and the node echoes it
        in its reply.
        """
        return hashlib.sha256(self.serialize_for_wire()).digest()

    def __hash__(self) -> int:
        # metadata is a MappingProxyType, which is unhashable
        return hash(self.serialize_for_wire())

    def revalidate(self, verify: SignatureCheck) -> bool:
        """Re-check the embedded signature against the embedded payload.

        Args:
            verify: Verification function, normally ``KeyMaterial.verify``.

        Returns:
            True if the signature is valid for this payload and identity.
        """
        return verify(self.payload.data, self.signature, self.identity)
