"""Canonical signing service.

Turns a structured transaction payload into canonical bytes and signs
those bytes with a key handle. Signatures are always over the canonical
bytes, never over a caller-formatted string, so any implementation that
follows the canonical encoding reproduces them byte for byte.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from ledgerlink.application.ports.key_material import KeyMaterialProtocol
from ledgerlink.domain.canonical import CanonicalPayload, canonicalize
from ledgerlink.domain.models.envelope import TransactionEnvelope
from ledgerlink.domain.models.identity import Signature

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SignedPayload:
    """Canonical payload together with its signature."""

    payload: CanonicalPayload
    signature: Signature


class CanonicalSigner:
    """Canonicalize-then-sign service.

    Stateless; one instance can be shared by any number of callers.
    """

    def __init__(self) -> None:
        self._log = logger.bind(component="canonical_signer")

    def sign(self, payload: Mapping[str, Any], key: KeyMaterialProtocol) -> SignedPayload:
        """Canonicalize ``payload`` and sign the result.

        Args:
            payload: Structured transaction payload (a record).
            key: Key handle to sign with.

        Returns:
            SignedPayload with the canonical bytes and the signature.

        Raises:
            EncodingError: If the payload has no canonical encoding.
            SigningFailureError: If the key cannot sign.
        """
        canonical = canonicalize(payload)
        signature = key.sign(canonical.data)
        self._log.debug(
            "payload_signed",
            scheme=signature.scheme.value,
            payload_bytes=len(canonical),
            signer=key.public_identity().fingerprint,
        )
        return SignedPayload(payload=canonical, signature=signature)

    def build_envelope(
        self,
        payload: Mapping[str, Any],
        key: KeyMaterialProtocol,
        metadata: Mapping[str, str] | None = None,
    ) -> TransactionEnvelope:
        """Sign ``payload`` and package it into a TransactionEnvelope.

        Args:
            payload: Structured transaction payload.
            key: Key handle to sign with.
            metadata: Optional caller metadata (nonce, timestamp, ...).

        Returns:
            A new, immutable envelope.
        """
        signed = self.sign(payload, key)
        return TransactionEnvelope.build(
            signed.payload,
            key.public_identity(),
            signed.signature,
            metadata,
        )
