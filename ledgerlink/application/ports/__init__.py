"""Application ports: interfaces to collaborators outside the core."""

from ledgerlink.application.ports.key_material import KeyMaterialProtocol
from ledgerlink.application.ports.transport import (
    SecureTransportProtocol,
    TransportSession,
)

__all__: list[str] = [
    "KeyMaterialProtocol",
    "SecureTransportProtocol",
    "TransportSession",
]
