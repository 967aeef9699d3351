"""Public identity and signature value objects.

These are the only key-related values that ever leave the process: the
public half of a keypair and signatures made with the private half.
Private key material has no domain representation at all; it lives only
inside an infrastructure KeyMaterial handle.
"""

from __future__ import annotations

import base64
import hashlib
import textwrap
from dataclasses import dataclass
from enum import Enum


class KeyAlgorithm(Enum):
    """Asymmetric key family."""

    RSA = "rsa"
    EC = "ec"


class SignatureScheme(Enum):
    """Signature scheme, carried on the wire as a one-byte tag.

    The scheme implies the key family, so an envelope's algorithm tag is
    enough to re-verify it without out-of-band configuration.
    """

    RSA_PKCS1V15 = "rsa-pkcs1v15"
    RSA_PSS = "rsa-pss"
    ECDSA = "ecdsa"

    @property
    def key_algorithm(self) -> KeyAlgorithm:
        if self is SignatureScheme.ECDSA:
            return KeyAlgorithm.EC
        return KeyAlgorithm.RSA

    @property
    def wire_tag(self) -> int:
        return _SCHEME_TAGS[self]

    @classmethod
    def from_wire_tag(cls, tag: int) -> SignatureScheme:
        """Look up a scheme by wire tag.

        Raises:
            ValueError: If the tag is unknown.
        """
        for scheme, value in _SCHEME_TAGS.items():
            if value == tag:
                return scheme
        raise ValueError(f"Unknown algorithm tag: 0x{tag:02x}")


_SCHEME_TAGS: dict[SignatureScheme, int] = {
    SignatureScheme.RSA_PKCS1V15: 0x01,
    SignatureScheme.RSA_PSS: 0x02,
    SignatureScheme.ECDSA: 0x03,
}


@dataclass(frozen=True)
class PublicIdentity:
    """Exportable public key descriptor.

    Attributes:
        algorithm: Key family.
        public_key: DER-encoded SubjectPublicKeyInfo.
    """

    algorithm: KeyAlgorithm
    public_key: bytes

    def __post_init__(self) -> None:
        if not self.public_key:
            raise ValueError("public_key must not be empty")

    def to_pem(self) -> str:
        """Render the public key as a PEM "PUBLIC KEY" block.

        Onboarding transactions carry the public key in this form.
        """
        body = base64.b64encode(self.public_key).decode("ascii")
        lines = "\n".join(textwrap.wrap(body, 64))
        return f"-----BEGIN PUBLIC KEY-----\n{lines}\n-----END PUBLIC KEY-----\n"

    @property
    def fingerprint(self) -> str:
        """Short hex SHA-256 fingerprint, safe for logs."""
        return hashlib.sha256(self.public_key).hexdigest()[:16]


@dataclass(frozen=True)
class Signature:
    """A signature together with the scheme that produced it."""

    scheme: SignatureScheme
    value: bytes

    @property
    def algorithm(self) -> KeyAlgorithm:
        return self.scheme.key_algorithm

    def to_base64(self) -> str:
        return base64.b64encode(self.value).decode("ascii")

    def __repr__(self) -> str:
        return f"Signature(scheme={self.scheme.value}, {len(self.value)} bytes)"
