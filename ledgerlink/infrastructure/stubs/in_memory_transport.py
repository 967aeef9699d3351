"""In-memory transport stub for development and testing.

Implements SecureTransportProtocol without any network. Replies are
scripted per call (bytes, a callable, or an exception to raise), or
produced by a fallback responder such as territory_responder(), which
simulates a node collecting signed votes from a set of territories.

WARNING: This stub is NOT for production use.
Production implementation is in
ledgerlink/infrastructure/adapters/httpx_transport.py.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from ledgerlink.application.ports.transport import (
    SecureTransportProtocol,
    TransportSession,
)
from ledgerlink.domain.errors import ConnectionFailureReason, LedgerConnectionError
from ledgerlink.domain.models.consensus import (
    ConsensusStatus,
    VoteOutcome,
    encode_node_reply,
)
from ledgerlink.domain.models.credentials import Credentials
from ledgerlink.domain.models.envelope import TransactionEnvelope
from ledgerlink.infrastructure.crypto.key_material import KeyMaterial

Responder = Callable[[bytes], bytes]
ScriptedReply = Union[bytes, Responder, BaseException]


class TransportOperation(Enum):
    """Operations tracked by the stub."""

    OPEN = "open"
    SEND = "send"
    CLOSE = "close"


@dataclass
class TransportCall:
    """Record of a call to the stub."""

    operation: TransportOperation
    endpoint: str
    data: bytes = b""
    credentials: Credentials | None = None


class InMemorySession(TransportSession):
    """Session handle issued by InMemoryTransport."""

    def __init__(self, endpoint: str) -> None:
        self.endpoint = endpoint
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    def mark_closed(self) -> None:
        self._open = False


class InMemoryTransport(SecureTransportProtocol):
    """Scripted SecureTransportProtocol implementation.

    Usage:
        transport = InMemoryTransport()
        transport.queue_reply(reply_bytes)
        transport.queue_reply(LedgerConnectionError(ConnectionFailureReason.REFUSED))
        transport.delay = 2.0  # every send() sleeps first

        # Check call history
        assert transport.sent == [envelope_bytes]
    """

    def __init__(self, responder: Responder | None = None, delay: float = 0.0) -> None:
        """Initialize the stub.

        Args:
            responder: Fallback reply function when nothing is queued.
            delay: Seconds every send() sleeps before replying.
        """
        self.responder = responder
        self.delay = delay
        self.calls: list[TransportCall] = []
        self._replies: deque[ScriptedReply] = deque()
        self._open_failures: deque[BaseException] = deque()
        self._sessions: list[InMemorySession] = []

    def queue_reply(self, reply: ScriptedReply) -> None:
        """Script the outcome of the next unscripted send()."""
        self._replies.append(reply)

    def fail_next_open(self, error: BaseException) -> None:
        """Make the next open() raise ``error``."""
        self._open_failures.append(error)

    @property
    def sent(self) -> list[bytes]:
        return [c.data for c in self.calls if c.operation is TransportOperation.SEND]

    @property
    def open_sessions(self) -> int:
        return sum(1 for s in self._sessions if s.is_open)

    def describe(self) -> dict[str, Any]:
        return {"transport": type(self).__name__, "stub": True}

    async def open(
        self,
        endpoint: str,
        credentials: Credentials | None,
        timeout: float,
    ) -> TransportSession:
        self.calls.append(
            TransportCall(TransportOperation.OPEN, endpoint, credentials=credentials)
        )
        if self._open_failures:
            raise self._open_failures.popleft()
        session = InMemorySession(endpoint)
        self._sessions.append(session)
        return session

    async def send(self, session: TransportSession, data: bytes, timeout: float) -> bytes:
        self.calls.append(TransportCall(TransportOperation.SEND, session.endpoint, data))
        if not session.is_open:
            raise LedgerConnectionError(
                ConnectionFailureReason.REFUSED,
                message="session is closed",
                endpoint=session.endpoint,
            )
        if self.delay > 0:
            await asyncio.sleep(self.delay)

        if self._replies:
            reply = self._replies.popleft()
        elif self.responder is not None:
            reply = self.responder
        else:
            raise LedgerConnectionError(
                ConnectionFailureReason.REFUSED,
                message="no scripted reply",
                endpoint=session.endpoint,
            )

        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(data)
        return reply

    async def close(self, session: TransportSession) -> None:
        self.calls.append(TransportCall(TransportOperation.CLOSE, session.endpoint))
        if isinstance(session, InMemorySession):
            session.mark_closed()


def territory_responder(
    territories: Mapping[str, tuple[KeyMaterial, VoteOutcome]],
    status_hint: ConsensusStatus | None = None,
) -> Responder:
    """Build a responder that simulates a node gathering territory votes.

    Each territory signs the submitted envelope's identifying hash with
    its key and votes the given outcome.

    Args:
        territories: Territory id to (signing key, vote outcome).
        status_hint: Status the simulated node claims. Defaults to the
            majority of the votes given.
    """

    def respond(data: bytes) -> bytes:
        envelope_hash = TransactionEnvelope.deserialize_from_wire(data).identifying_hash()
        votes = [
            (territory_id, outcome, key.sign(envelope_hash).value)
            for territory_id, (key, outcome) in territories.items()
        ]
        hint = status_hint
        if hint is None:
            accepts = sum(1 for _, o, _ in votes if o is VoteOutcome.ACCEPT)
            hint = (
                ConsensusStatus.COMMITTED
                if accepts * 2 > len(votes)
                else ConsensusStatus.REJECTED
            )
        return encode_node_reply(envelope_hash, votes, hint)

    return respond
