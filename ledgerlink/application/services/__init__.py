"""Application services: orchestration over domain models and ports."""

from ledgerlink.application.services.canonical_signer import (
    CanonicalSigner,
    SignedPayload,
)
from ledgerlink.application.services.ledger_connection import LedgerConnection

__all__: list[str] = [
    "CanonicalSigner",
    "LedgerConnection",
    "SignedPayload",
]
