"""Ledger connection service.

Owns one transport session to one ledger node and drives the submission
state machine:

    DISCONNECTED -> CONNECTING -> READY -> SENDING -> AWAITING_CONSENSUS
                                   ^                        |
                                   +--------- reply --------+
                                                            | transport failure
                                                            v
                                                          FAILED

Submissions are strictly request-then-response. A handle is not safe
for concurrent use from several tasks: a second submit() while one is in
flight is rejected with ConnectionStateError instead of being queued.

Nothing here retries. When a submission ends without a parsed reply
(timeout, cancellation, transport failure after hand-off, unreadable
reply) its identifying hash is recorded in ``unresolved_envelopes`` so
the caller can reconcile it before deciding to resubmit.
"""

from __future__ import annotations

import asyncio
from types import TracebackType

import structlog

from ledgerlink.application.context import submission_scope
from ledgerlink.application.ports.transport import (
    SecureTransportProtocol,
    TransportSession,
)
from ledgerlink.domain.errors import (
    ConnectionFailureReason,
    ConnectionStateError,
    LedgerConnectionError,
    ProtocolDecodeError,
    SubmissionTimeoutError,
)
from ledgerlink.domain.exceptions import ErrorStage
from ledgerlink.domain.models.connection_state import ConnectionState, can_transition
from ledgerlink.domain.models.consensus import ConsensusResponse, QuorumRule
from ledgerlink.domain.models.credentials import Credentials
from ledgerlink.domain.models.envelope import TransactionEnvelope

logger = structlog.get_logger(__name__)

DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0
DEFAULT_SUBMIT_TIMEOUT_SECONDS = 30.0


class LedgerConnection:
    """Stateful handle for submitting envelopes to one ledger node.

    Example:
        async with LedgerConnection(transport, QuorumRule.of(2, 3)) as conn:
            await conn.connect("https://node.example:5260")
            response = await conn.submit(envelope, timeout=5.0)
            response.raise_for_status()
    """

    def __init__(
        self,
        transport: SecureTransportProtocol,
        quorum: QuorumRule,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT_SECONDS,
        submit_timeout: float = DEFAULT_SUBMIT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize a disconnected handle.

        Args:
            transport: Secure transport adapter.
            quorum: Quorum rule of the target network.
            connect_timeout: Seconds allowed for connect().
            submit_timeout: Default seconds allowed for submit().
        """
        if connect_timeout <= 0 or submit_timeout <= 0:
            raise ValueError("timeouts must be positive")
        self._transport = transport
        self._quorum = quorum
        self._connect_timeout = connect_timeout
        self._submit_timeout = submit_timeout
        self._state = ConnectionState.DISCONNECTED
        self._session: TransportSession | None = None
        self._unresolved: list[bytes] = []
        self._log = logger.bind(component="ledger_connection")

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def quorum(self) -> QuorumRule:
        return self._quorum

    @property
    def endpoint(self) -> str | None:
        """Endpoint of the current session, if any."""
        return self._session.endpoint if self._session is not None else None

    @property
    def unresolved_envelopes(self) -> tuple[bytes, ...]:
        """Identifying hashes of submissions whose outcome is unknown."""
        return tuple(self._unresolved)

    def mark_resolved(self, envelope_hash: bytes) -> None:
        """Forget an unresolved envelope once the caller has reconciled it."""
        try:
            self._unresolved.remove(envelope_hash)
        except ValueError:
            raise KeyError(envelope_hash.hex()) from None

    def _transition(
        self, target: ConnectionState, stage: ErrorStage = ErrorStage.SUBMIT
    ) -> None:
        if not can_transition(self._state, target):
            raise ConnectionStateError(f"move to {target.value}", self._state.value, stage)
        self._log.debug(
            "connection_state_changed",
            from_state=self._state.value,
            to_state=target.value,
        )
        self._state = target

    async def connect(self, endpoint: str, credentials: Credentials | None = None) -> None:
        """Open a session to ``endpoint``.

        Allowed from DISCONNECTED, and from FAILED as an explicit
        reconnect (the failed session is closed first).

        Raises:
            ConnectionStateError: If called in any other state.
            LedgerConnectionError: If the session cannot be established.
                The handle is left DISCONNECTED.
        """
        if self._state not in (ConnectionState.DISCONNECTED, ConnectionState.FAILED):
            raise ConnectionStateError("connect", self._state.value, ErrorStage.CONNECT)

        if self._session is not None:
            await self._discard_session()

        self._transition(ConnectionState.CONNECTING, ErrorStage.CONNECT)
        log = self._log.bind(endpoint=endpoint)
        try:
            session = await self._transport.open(endpoint, credentials, self._connect_timeout)
        except LedgerConnectionError as e:
            self._transition(ConnectionState.DISCONNECTED, ErrorStage.CONNECT)
            log.warning("ledger_connect_failed", reason=e.reason.value, error=str(e))
            raise
        except BaseException:
            self._transition(ConnectionState.DISCONNECTED, ErrorStage.CONNECT)
            raise

        self._session = session
        self._transition(ConnectionState.READY, ErrorStage.CONNECT)
        log.info("ledger_connected", **self._transport.describe())

    async def submit(
        self,
        envelope: TransactionEnvelope,
        timeout: float | None = None,
    ) -> ConsensusResponse:
        """Submit one envelope and wait for the node's consensus reply.

        Args:
            envelope: Signed envelope to submit.
            timeout: Seconds to wait for the reply. Defaults to the
                handle's submit timeout.

        Returns:
            ConsensusResponse with locally computed status. A rejected
            status is returned, not raised; call raise_for_status().

        Raises:
            ConnectionStateError: If the handle is not READY (including
                while another submission is in flight).
            SubmissionTimeoutError: If no reply arrived in time. The
                handle is READY again; the outcome is unknown.
            LedgerConnectionError: If the transport failed, including any
                unexpected transport exception, which is reported as
                REFUSED and chained. The handle is FAILED and must be
                reconnected.
            ProtocolDecodeError: If the reply is unreadable or is for a
                different envelope. The handle is READY again.
        """
        if self._state is not ConnectionState.READY or self._session is None:
            raise ConnectionStateError("submit", self._state.value, ErrorStage.SUBMIT)

        effective_timeout = self._submit_timeout if timeout is None else timeout
        if effective_timeout <= 0:
            raise ValueError(f"timeout must be positive, got {effective_timeout}")

        self._transition(ConnectionState.SENDING)
        with submission_scope() as submission_id:
            log = self._log.bind(submission_id=submission_id)
            try:
                wire = envelope.serialize_for_wire()
            except BaseException:
                self._transition(ConnectionState.READY)
                raise
            envelope_hash = envelope.identifying_hash()
            log = log.bind(envelope_hash=envelope_hash.hex()[:16])

            self._transition(ConnectionState.AWAITING_CONSENSUS)
            log.info("envelope_submitted", wire_bytes=len(wire), timeout=effective_timeout)

            try:
                async with asyncio.timeout(effective_timeout):
                    raw = await self._transport.send(self._session, wire, effective_timeout)
            except TimeoutError:
                raise self._timed_out(envelope_hash, effective_timeout, log) from None
            except LedgerConnectionError as e:
                if e.reason is ConnectionFailureReason.TIMEOUT:
                    raise self._timed_out(envelope_hash, effective_timeout, log) from e
                self._unresolved.append(envelope_hash)
                self._transition(ConnectionState.FAILED)
                log.error(
                    "envelope_submit_failed",
                    reason=e.reason.value,
                    status_code=e.status_code,
                    error=str(e),
                )
                raise e.during_submit(outcome_unknown=True) from e
            except asyncio.CancelledError:
                self._unresolved.append(envelope_hash)
                self._transition(ConnectionState.READY)
                log.warning("envelope_submit_cancelled", outcome="unknown")
                raise
            except Exception as e:
                self._unresolved.append(envelope_hash)
                self._transition(ConnectionState.FAILED)
                log.error(
                    "envelope_submit_failed",
                    reason=ConnectionFailureReason.REFUSED.value,
                    error_type=type(e).__name__,
                )
                raise LedgerConnectionError(
                    ConnectionFailureReason.REFUSED,
                    message=f"transport error ({type(e).__name__})",
                    endpoint=self.endpoint,
                    stage=ErrorStage.SUBMIT,
                    outcome_unknown=True,
                ) from e

            try:
                response = ConsensusResponse.parse(
                    raw, self._quorum, expected_envelope_hash=envelope_hash
                )
            except ProtocolDecodeError as e:
                e.outcome_unknown = True
                self._unresolved.append(envelope_hash)
                self._transition(ConnectionState.READY)
                log.error("consensus_reply_unreadable", error=str(e), reply_bytes=len(raw))
                raise

            self._transition(ConnectionState.READY)
            log.info(
                "consensus_parsed",
                status=response.status.name.lower(),
                accepts=response.accept_count,
                rejects=response.reject_count,
                quorum=str(self._quorum),
            )
            if response.hint_disagrees:
                log.warning(
                    "node_status_hint_disagrees",
                    node_hint=response.node_status_hint.name.lower(),
                    computed=response.status.name.lower(),
                )
            return response

    def _timed_out(
        self,
        envelope_hash: bytes,
        timeout: float,
        log: structlog.typing.FilteringBoundLogger,
    ) -> SubmissionTimeoutError:
        self._unresolved.append(envelope_hash)
        self._transition(ConnectionState.READY)
        log.warning("envelope_submit_timeout", timeout=timeout, outcome="unknown")
        return SubmissionTimeoutError(envelope_hash.hex(), timeout)

    async def close(self) -> None:
        """Close the session and return to DISCONNECTED.

        Closing a disconnected handle is a no-op.

        Raises:
            ConnectionStateError: If a submission is in flight.
        """
        if self._state.in_flight or self._state is ConnectionState.CONNECTING:
            raise ConnectionStateError("close", self._state.value, ErrorStage.SUBMIT)
        if self._session is not None:
            await self._discard_session()
        if self._state is not ConnectionState.DISCONNECTED:
            self._transition(ConnectionState.DISCONNECTED)
            self._log.info("ledger_disconnected")

    async def _discard_session(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            await self._transport.close(session)

    async def __aenter__(self) -> LedgerConnection:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self._state.in_flight:
            await self.close()
