"""
Pytest configuration and shared fixtures for ledgerlink tests.

Testing Standards:
- Async tests use pytest.mark.asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for async function mocking
- Unit tests go in tests/unit/
- Integration tests go in tests/integration/

Key generation is slow for RSA, so the shared keys are session scoped.
Tests that destroy a key generate their own.
"""

from collections.abc import Iterator

import pytest

from ledgerlink.application.services.canonical_signer import CanonicalSigner
from ledgerlink.domain.models.envelope import TransactionEnvelope
from ledgerlink.domain.models.identity import KeyAlgorithm, SignatureScheme
from ledgerlink.infrastructure.crypto.key_material import KeyMaterial


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from ledgerlink import __version__

    return __version__


@pytest.fixture(scope="session")
def rsa_key() -> Iterator[KeyMaterial]:
    """RSA-2048 key signing with PKCS#1 v1.5."""
    key = KeyMaterial.generate(KeyAlgorithm.RSA)
    yield key
    key.destroy()


@pytest.fixture(scope="session")
def rsa_pss_key() -> Iterator[KeyMaterial]:
    """RSA-2048 key signing with PSS."""
    key = KeyMaterial.generate(KeyAlgorithm.RSA, rsa_scheme=SignatureScheme.RSA_PSS)
    yield key
    key.destroy()


@pytest.fixture(scope="session")
def ec_key() -> Iterator[KeyMaterial]:
    """secp256k1 key."""
    key = KeyMaterial.generate(KeyAlgorithm.EC)
    yield key
    key.destroy()


@pytest.fixture(scope="session")
def territory_keys() -> Iterator[dict[str, KeyMaterial]]:
    """Signing keys of a three-territory network."""
    keys = {
        name: KeyMaterial.generate(KeyAlgorithm.EC, "secp256r1")
        for name in ("territory-a", "territory-b", "territory-c")
    }
    yield keys
    for key in keys.values():
        key.destroy()


@pytest.fixture
def signer() -> CanonicalSigner:
    return CanonicalSigner()


@pytest.fixture
def sample_payload() -> dict:
    """Transaction payload in the shape ledger nodes expect."""
    return {
        "$tx": {
            "$namespace": "default",
            "$contract": "onboard",
            "$i": {"identity": {"type": "secp256k1", "publicKey": "PEM"}},
        },
        "$selfsign": True,
        "$sigs": {},
    }


@pytest.fixture
def envelope(
    signer: CanonicalSigner, ec_key: KeyMaterial, sample_payload: dict
) -> TransactionEnvelope:
    """Envelope signed by ``ec_key`` with a nonce in its metadata."""
    return signer.build_envelope(sample_payload, ec_key, {"nonce": "42"})
