"""Infrastructure adapters implementing the application ports."""

from ledgerlink.infrastructure.adapters.httpx_transport import (
    HttpxSession,
    HttpxTransport,
)

__all__: list[str] = [
    "HttpxSession",
    "HttpxTransport",
]
