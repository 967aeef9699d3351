"""Stub implementations of application ports for development and testing."""

from ledgerlink.infrastructure.stubs.in_memory_transport import (
    InMemorySession,
    InMemoryTransport,
    TransportCall,
    TransportOperation,
    territory_responder,
)

__all__: list[str] = [
    "InMemorySession",
    "InMemoryTransport",
    "TransportCall",
    "TransportOperation",
    "territory_responder",
]
