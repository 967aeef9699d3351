"""
Integration test configuration with a simulated ledger node.

This module provides a SimulatedNode that speaks the node's HTTP surface
through httpx.MockTransport:
- GET /a/status returns a status document, including the node's
  encryption key as base64 PEM
- POST / decrypts the body when X-Ledger-Encrypt is set, collects signed
  territory votes and answers with a binary consensus reply

Usage:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_example(simulated_node: SimulatedNode) -> None:
        transport = HttpxTransport(http_transport=simulated_node.mock_transport())
        ...

No network or containers are needed.
"""

import base64
from collections.abc import Iterator

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from ledgerlink.domain.models.consensus import VoteOutcome
from ledgerlink.infrastructure.adapters.httpx_transport import ENCRYPT_HEADER
from ledgerlink.infrastructure.crypto.key_material import KeyMaterial
from ledgerlink.infrastructure.crypto.node_encryption import CHUNK_SEPARATOR, oaep_padding
from ledgerlink.infrastructure.stubs.in_memory_transport import territory_responder


class SimulatedNode:
    """HTTP-level stand-in for a ledger node and its territories."""

    def __init__(
        self,
        territories: dict[str, tuple[KeyMaterial, VoteOutcome]],
        encryption_key: rsa.RSAPrivateKey,
    ) -> None:
        self.territories = territories
        self.encryption_key = encryption_key
        self.received: list[bytes] = []
        self.encrypted_requests = 0

    def status_document(self) -> dict:
        pem = self.encryption_key.public_key().public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        return {"status": "ok", "pem": base64.b64encode(pem).decode("ascii")}

    def _decrypt(self, body: bytes) -> bytes:
        return b"".join(
            self.encryption_key.decrypt(base64.b64decode(chunk), oaep_padding())
            for chunk in body.split(CHUNK_SEPARATOR)
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET" and request.url.path == "/a/status":
            return httpx.Response(200, json=self.status_document())
        if request.method == "POST" and request.url.path == "/":
            body = request.content
            if request.headers.get(ENCRYPT_HEADER) == "1":
                self.encrypted_requests += 1
                body = self._decrypt(body)
            self.received.append(body)
            reply = territory_responder(self.territories)(body)
            return httpx.Response(
                200, content=reply, headers={"Content-Type": "application/octet-stream"}
            )
        return httpx.Response(404)

    def mock_transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture(scope="session")
def node_encryption_key() -> rsa.RSAPrivateKey:
    """RSA key the simulated node publishes for encrypted submissions."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def accepting_node(
    territory_keys: dict[str, KeyMaterial],
    node_encryption_key: rsa.RSAPrivateKey,
) -> Iterator[SimulatedNode]:
    """Node whose three territories all accept."""
    yield SimulatedNode(
        {name: (key, VoteOutcome.ACCEPT) for name, key in territory_keys.items()},
        node_encryption_key,
    )


@pytest.fixture
def rejecting_node(
    territory_keys: dict[str, KeyMaterial],
    node_encryption_key: rsa.RSAPrivateKey,
) -> Iterator[SimulatedNode]:
    """Node where two of three territories reject."""
    outcomes = [VoteOutcome.ACCEPT, VoteOutcome.REJECT, VoteOutcome.REJECT]
    yield SimulatedNode(
        {
            name: (key, outcome)
            for (name, key), outcome in zip(sorted(territory_keys.items()), outcomes)
        },
        node_encryption_key,
    )
