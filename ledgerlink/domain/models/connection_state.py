"""Ledger connection lifecycle states.

    DISCONNECTED -> CONNECTING -> READY -> SENDING -> AWAITING_CONSENSUS
                                   ^                        |
                                   +------------------------+
                                                            v
                                                          FAILED

A FAILED connection is only left through an explicit reconnect.
"""

from __future__ import annotations

from enum import Enum


class ConnectionState(Enum):
    """State of a LedgerConnection handle."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    SENDING = "sending"
    AWAITING_CONSENSUS = "awaiting_consensus"
    FAILED = "failed"

    @property
    def in_flight(self) -> bool:
        return self in (ConnectionState.SENDING, ConnectionState.AWAITING_CONSENSUS)


VALID_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.DISCONNECTED: frozenset({ConnectionState.CONNECTING}),
    ConnectionState.CONNECTING: frozenset(
        {ConnectionState.READY, ConnectionState.DISCONNECTED}
    ),
    ConnectionState.READY: frozenset(
        {ConnectionState.SENDING, ConnectionState.DISCONNECTED}
    ),
    ConnectionState.SENDING: frozenset(
        {
            ConnectionState.AWAITING_CONSENSUS,
            ConnectionState.READY,
            ConnectionState.FAILED,
        }
    ),
    ConnectionState.AWAITING_CONSENSUS: frozenset(
        {ConnectionState.READY, ConnectionState.FAILED}
    ),
    ConnectionState.FAILED: frozenset(
        {ConnectionState.CONNECTING, ConnectionState.DISCONNECTED}
    ),
}


def can_transition(current: ConnectionState, target: ConnectionState) -> bool:
    """Return True if ``current -> target`` is a legal transition."""
    return target in VALID_TRANSITIONS[current]
