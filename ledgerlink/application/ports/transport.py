"""Secure transport protocol definition.

Defines the abstract interface LedgerConnection uses to reach a ledger
node. TLS handshakes, connection pooling and HTTP framing belong to the
adapter behind this port; ledgerlink only sees opaque sessions and
request/reply byte strings.

Adapters:
- Production: HttpxTransport (httpx.AsyncClient)
- Development/testing: InMemoryTransport (scripted node replies)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ledgerlink.domain.models.credentials import Credentials


class TransportSession(ABC):
    """Opaque handle for one open session to one node endpoint."""

    endpoint: str

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True until the session is closed."""
        ...


class SecureTransportProtocol(ABC):
    """Abstract protocol for transports to a ledger node.

    Implementations MUST NOT retry on their own: a retried send can
    duplicate ledger effects if the first attempt actually landed.

    Error contract:
    - Every failure is raised as LedgerConnectionError with reason
      TIMEOUT, TLS or REFUSED.
    - A node that answers with an error status is REFUSED.
    """

    @abstractmethod
    async def open(
        self,
        endpoint: str,
        credentials: Credentials | None,
        timeout: float,
    ) -> TransportSession:
        """Open a secure session to ``endpoint``.

        Args:
            endpoint: Node base URL.
            credentials: Optional session credentials.
            timeout: Seconds allowed for establishing the session.

        Returns:
            An open TransportSession.

        Raises:
            LedgerConnectionError: If the session cannot be established.
        """
        ...

    @abstractmethod
    async def send(self, session: TransportSession, data: bytes, timeout: float) -> bytes:
        """Send one request and return the node's reply bytes.

        Args:
            session: Session returned by open().
            data: Serialized envelope.
            timeout: Seconds allowed for the full exchange.

        Returns:
            Raw reply bytes.

        Raises:
            LedgerConnectionError: On transport failure or timeout.
        """
        ...

    @abstractmethod
    async def close(self, session: TransportSession) -> None:
        """Close the session. Closing twice is a no-op."""
        ...

    def describe(self) -> dict[str, Any]:
        """Return loggable, non-sensitive adapter details."""
        return {"transport": type(self).__name__}
