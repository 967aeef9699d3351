"""
ledgerlink - Identity & Transaction Submission SDK

Client-side library for identifying an application to a distributed
ledger network and submitting signed transactions to a single entry
node, which collects confirmations from independent territories.

Layers:
- domain: canonical encoding, envelope and consensus models, errors
- application: ports and services (signing, ledger connection)
- infrastructure: cryptography-backed keys, httpx transport, logging
- config: client configuration with environment overrides
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
