"""Transaction encryption to a ledger node's published RSA key.

Nodes that accept encrypted submissions publish their RSA public key in
the status document as ``pem``: base64 of a PEM "PUBLIC KEY" block. The
body is split into 100-byte chunks, each chunk is encrypted with
RSA-OAEP (SHA-1, the OpenSSL default the nodes expect), base64 encoded,
and the chunks are joined with ``|``.
"""

from __future__ import annotations

import base64
import binascii

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

CHUNK_SIZE = 100
CHUNK_SEPARATOR = b"|"
# OAEP-SHA1 over 100-byte chunks needs a modulus of at least 142 bytes
MIN_NODE_KEY_BITS = 2048


def oaep_padding() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA1()),
        algorithm=hashes.SHA1(),
        label=None,
    )


class NodeEncryptionKey:
    """A node's RSA public key used to encrypt outgoing bodies."""

    def __init__(self, public_key: rsa.RSAPublicKey) -> None:
        if public_key.key_size < MIN_NODE_KEY_BITS:
            raise ValueError(
                f"Node encryption key of {public_key.key_size} bits is too small"
            )
        self._public_key = public_key

    @classmethod
    def from_status_field(cls, value: str) -> NodeEncryptionKey:
        """Load the key from the status document's ``pem`` field.

        Raises:
            ValueError: If the field is not base64 of an RSA public key PEM,
                or the key is smaller than MIN_NODE_KEY_BITS.
        """
        try:
            pem = base64.b64decode(value, validate=True)
            public_key = serialization.load_pem_public_key(pem)
        except (binascii.Error, ValueError, UnsupportedAlgorithm) as e:
            raise ValueError("Node status pem field is not a usable public key") from e
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise ValueError("Node encryption key is not an RSA key")
        return cls(public_key)

    @property
    def key_size(self) -> int:
        return self._public_key.key_size

    def encrypt(self, data: bytes) -> bytes:
        """Encrypt ``data`` chunk by chunk; returns the ``|``-joined body."""
        chunks = [data[i : i + CHUNK_SIZE] for i in range(0, len(data), CHUNK_SIZE)] or [b""]
        return CHUNK_SEPARATOR.join(
            base64.b64encode(self._public_key.encrypt(chunk, oaep_padding()))
            for chunk in chunks
        )
