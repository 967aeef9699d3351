"""Key material protocol definition.

The application layer signs through this port so that services never
touch private key bytes or the cryptography backend directly.
"""

from __future__ import annotations

from typing import Protocol

from ledgerlink.domain.models.identity import (
    KeyAlgorithm,
    PublicIdentity,
    Signature,
    SignatureScheme,
)


class KeyMaterialProtocol(Protocol):
    """Protocol for a handle owning one private key.

    Implementations must keep private bytes out of logs, error messages
    and default string formatting.
    """

    @property
    def algorithm(self) -> KeyAlgorithm:
        """Key family of this handle."""
        ...

    @property
    def scheme(self) -> SignatureScheme:
        """Signature scheme used by sign()."""
        ...

    def public_identity(self) -> PublicIdentity:
        """Return the exportable public key descriptor."""
        ...

    def sign(self, message: bytes) -> Signature:
        """Sign ``message``.

        Raises:
            SigningFailureError: If no signature can be produced.
        """
        ...
