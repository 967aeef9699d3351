"""Bootstrap wiring for ledgerlink clients.

Builds the production adapters from a LedgerClientConfig. Tests and
development setups pass their own transport (usually InMemoryTransport).
"""

from __future__ import annotations

from ledgerlink.application.ports.transport import SecureTransportProtocol
from ledgerlink.application.services.ledger_connection import LedgerConnection
from ledgerlink.config.client_config import LedgerClientConfig
from ledgerlink.domain.models.identity import KeyAlgorithm
from ledgerlink.infrastructure.adapters.httpx_transport import HttpxTransport
from ledgerlink.infrastructure.crypto.key_material import KeyMaterial


def create_transport(config: LedgerClientConfig) -> SecureTransportProtocol:
    """Build the httpx transport described by ``config``."""
    return HttpxTransport(
        status_path=config.status_path,
        submit_path=config.submit_path,
        encrypt=config.encrypt,
    )


def create_connection(
    config: LedgerClientConfig | None = None,
    transport: SecureTransportProtocol | None = None,
) -> LedgerConnection:
    """Build a disconnected LedgerConnection.

    Args:
        config: Client configuration. Defaults to LedgerClientConfig.from_env().
        transport: Transport to use. Defaults to the httpx transport.
    """
    config = config or LedgerClientConfig.from_env()
    return LedgerConnection(
        transport or create_transport(config),
        config.quorum_rule(),
        connect_timeout=config.connect_timeout_seconds,
        submit_timeout=config.submit_timeout_seconds,
    )


def generate_key(
    algorithm: KeyAlgorithm,
    parameters: int | str | None = None,
    config: LedgerClientConfig | None = None,
) -> KeyMaterial:
    """Generate a key whose RSA signature scheme follows ``config``."""
    config = config or LedgerClientConfig.from_env()
    return KeyMaterial.generate(algorithm, parameters, rsa_scheme=config.rsa_scheme)
