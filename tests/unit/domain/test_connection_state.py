"""Unit tests for the connection state machine table."""

import pytest

from ledgerlink.domain.models.connection_state import (
    VALID_TRANSITIONS,
    ConnectionState,
    can_transition,
)


class TestConnectionState:
    """Tests for legal and illegal transitions."""

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (ConnectionState.DISCONNECTED, ConnectionState.CONNECTING),
            (ConnectionState.CONNECTING, ConnectionState.READY),
            (ConnectionState.READY, ConnectionState.SENDING),
            (ConnectionState.SENDING, ConnectionState.AWAITING_CONSENSUS),
            (ConnectionState.AWAITING_CONSENSUS, ConnectionState.READY),
            (ConnectionState.AWAITING_CONSENSUS, ConnectionState.FAILED),
            (ConnectionState.FAILED, ConnectionState.CONNECTING),
        ],
    )
    def test_lifecycle_transitions_allowed(
        self, current: ConnectionState, target: ConnectionState
    ) -> None:
        """The documented lifecycle edges are legal."""
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (ConnectionState.DISCONNECTED, ConnectionState.READY),
            (ConnectionState.READY, ConnectionState.AWAITING_CONSENSUS),
            (ConnectionState.FAILED, ConnectionState.READY),
            (ConnectionState.FAILED, ConnectionState.SENDING),
            (ConnectionState.AWAITING_CONSENSUS, ConnectionState.SENDING),
        ],
    )
    def test_shortcuts_forbidden(
        self, current: ConnectionState, target: ConnectionState
    ) -> None:
        """FAILED never returns to READY without a reconnect."""
        assert not can_transition(current, target)

    def test_every_state_has_an_entry(self) -> None:
        """The transition table covers every state."""
        assert set(VALID_TRANSITIONS) == set(ConnectionState)

    def test_in_flight_states(self) -> None:
        """Only SENDING and AWAITING_CONSENSUS are in flight."""
        assert {s for s in ConnectionState if s.in_flight} == {
            ConnectionState.SENDING,
            ConnectionState.AWAITING_CONSENSUS,
        }
