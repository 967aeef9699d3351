"""Configuration module for ledgerlink.

Available Configurations:
- LedgerClientConfig: node endpoint, timeouts, quorum and signing scheme
"""

from ledgerlink.config.client_config import (
    DEFAULT_LEDGER_CLIENT_CONFIG,
    TEST_LEDGER_CLIENT_CONFIG,
    LedgerClientConfig,
)

__all__ = [
    "LedgerClientConfig",
    "DEFAULT_LEDGER_CLIENT_CONFIG",
    "TEST_LEDGER_CLIENT_CONFIG",
]
