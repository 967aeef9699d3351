"""Connection, submission and consensus errors.

Transport errors are retryable by the caller, but ledgerlink never
retries on its own: resubmitting a transaction whose first attempt
actually landed would duplicate its ledger effects.
"""

from __future__ import annotations

from enum import Enum

from ledgerlink.domain.exceptions import ErrorStage, LedgerLinkError


class ConnectionFailureReason(Enum):
    """Why a transport operation failed."""

    TIMEOUT = "timeout"
    TLS = "tls"
    REFUSED = "refused"


class LedgerConnectionError(LedgerLinkError):
    """Raised when the transport to a ledger node fails.

    Attributes:
        reason: Failure category (timeout, tls, refused).
        endpoint: Node endpoint involved, if known.
        status_code: HTTP status returned by the node, if any.
    """

    retryable = True

    def __init__(
        self,
        reason: ConnectionFailureReason,
        message: str = "",
        endpoint: str | None = None,
        status_code: int | None = None,
        stage: ErrorStage = ErrorStage.CONNECT,
        outcome_unknown: bool = False,
    ) -> None:
        """Initialize with failure details.

        Args:
            reason: Failure category.
            message: Extra detail.
            endpoint: Node endpoint.
            status_code: HTTP status code, if the node answered.
            stage: CONNECT or SUBMIT.
            outcome_unknown: True if an envelope may have been delivered.
        """
        text = f"Ledger connection failed ({reason.value})"
        if endpoint:
            text = f"{text} for {endpoint}"
        if message:
            text = f"{text}: {message}"
        super().__init__(text, stage=stage, outcome_unknown=outcome_unknown)
        self.reason = reason
        self.detail = message
        self.endpoint = endpoint
        self.status_code = status_code

    def during_submit(self, outcome_unknown: bool = True) -> LedgerConnectionError:
        """Return a copy of this error re-tagged for the submit stage."""
        return LedgerConnectionError(
            self.reason,
            message=self.detail,
            endpoint=self.endpoint,
            status_code=self.status_code,
            stage=ErrorStage.SUBMIT,
            outcome_unknown=outcome_unknown,
        )


class SubmissionTimeoutError(LedgerLinkError):
    """Raised when no reply arrives before the submission timeout.

    The transaction outcome is UNKNOWN, not failed: the node may still
    have accepted the envelope. Callers must not assume rejection.
    """

    default_stage = ErrorStage.SUBMIT
    retryable = True

    def __init__(self, envelope_hash: str, timeout: float) -> None:
        """Initialize with the envelope that timed out.

        Args:
            envelope_hash: Hex identifying hash of the envelope.
            timeout: Timeout that was exceeded, in seconds.
        """
        super().__init__(
            f"No consensus reply for envelope {envelope_hash} within {timeout}s; "
            "outcome unknown",
            outcome_unknown=True,
        )
        self.envelope_hash = envelope_hash
        self.timeout = timeout


class QuorumUnreachableError(LedgerLinkError):
    """Raised when reject votes make the quorum mathematically impossible.

    Terminal: the transaction is rejected and must not be retried as-is.
    """

    default_stage = ErrorStage.PARSE

    def __init__(self, accepts: int, rejects: int, required: int, total: int) -> None:
        """Initialize with the vote tally.

        Args:
            accepts: Accept votes received.
            rejects: Reject votes received.
            required: Accept votes needed for quorum.
            total: Number of territories in the network.
        """
        super().__init__(
            f"Quorum unreachable: {accepts} accept / {rejects} reject of {total} "
            f"territories, {required} accepts required"
        )
        self.accepts = accepts
        self.rejects = rejects
        self.required = required
        self.total = total


class ConnectionStateError(LedgerLinkError):
    """Raised when an operation is invalid in the connection's current state.

    Examples: submitting before connect, submitting while another
    submission is in flight, using a FAILED handle without reconnecting.
    """

    def __init__(self, operation: str, state: str, stage: ErrorStage) -> None:
        super().__init__(
            f"Cannot {operation} while connection is {state}", stage=stage
        )
        self.operation = operation
        self.state = state
