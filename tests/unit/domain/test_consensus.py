"""Unit tests for quorum evaluation and node reply parsing."""

from fractions import Fraction
from unittest.mock import MagicMock

import pytest

from ledgerlink.domain.errors import (
    MalformedKeyError,
    MalformedSignatureError,
    ProtocolDecodeError,
    QuorumUnreachableError,
)
from ledgerlink.domain.models.consensus import (
    ConsensusResponse,
    ConsensusStatus,
    ConsensusVote,
    QuorumRule,
    VoteOutcome,
    encode_node_reply,
)
from ledgerlink.domain.models.identity import (
    KeyAlgorithm,
    PublicIdentity,
    Signature,
    SignatureScheme,
)

ENVELOPE_HASH = bytes(range(32))
ACCEPT = VoteOutcome.ACCEPT
REJECT = VoteOutcome.REJECT


def reply(*votes: tuple[str, VoteOutcome], hint: ConsensusStatus = ConsensusStatus.PENDING) -> bytes:
    return encode_node_reply(
        ENVELOPE_HASH,
        [(territory, outcome, f"sig-{territory}".encode()) for territory, outcome in votes],
        hint,
    )


class TestQuorumRule:
    """Tests for QuorumRule threshold arithmetic."""

    @pytest.mark.parametrize(
        ("fraction", "total", "required"),
        [
            (Fraction(2, 3), 3, 2),
            (Fraction(2, 3), 4, 3),
            (Fraction(1, 2), 4, 2),
            (Fraction(1, 2), 5, 3),
            (Fraction(1), 7, 7),
            (Fraction(1, 100), 3, 1),
        ],
    )
    def test_required_accepts_is_ceiling(
        self, fraction: Fraction, total: int, required: int
    ) -> None:
        """required = ceil(fraction * total), computed exactly."""
        assert QuorumRule(total, fraction).required_accepts == required

    def test_of_builds_n_of_m(self) -> None:
        """QuorumRule.of(2, 3) requires two accepts of three."""
        rule = QuorumRule.of(2, 3)
        assert rule.required_accepts == 2
        assert str(rule) == "2 of 3 accept"

    def test_float_fraction_coerced(self) -> None:
        """A float fraction is stored as an exact Fraction."""
        rule = QuorumRule(4, 0.5)  # type: ignore[arg-type]
        assert rule.min_accept_fraction == Fraction(1, 2)

    @pytest.mark.parametrize(
        ("total", "fraction"),
        [(0, Fraction(1, 2)), (3, Fraction(0)), (3, Fraction(3, 2))],
    )
    def test_invalid_rules(self, total: int, fraction: Fraction) -> None:
        """Empty networks and fractions outside (0, 1] are rejected."""
        with pytest.raises(ValueError):
            QuorumRule(total, fraction)

    def test_evaluate_states(self) -> None:
        """Committed, rejected and pending follow the quorum rule."""
        rule = QuorumRule.of(2, 3)
        assert rule.evaluate(2, 0) is ConsensusStatus.COMMITTED
        assert rule.evaluate(1, 0) is ConsensusStatus.PENDING
        assert rule.evaluate(1, 1) is ConsensusStatus.PENDING
        assert rule.evaluate(0, 2) is ConsensusStatus.REJECTED


class TestConsensusParse:
    """Tests for ConsensusResponse.parse."""

    def test_two_of_three_commits(self) -> None:
        """{A: accept, B: accept, C: reject} under 2-of-3 is committed."""
        response = ConsensusResponse.parse(
            reply(("A", ACCEPT), ("B", ACCEPT), ("C", REJECT)), QuorumRule.of(2, 3)
        )
        assert response.status is ConsensusStatus.COMMITTED
        assert response.accept_count == 2
        assert response.reject_count == 1
        assert response.is_terminal()

    def test_three_of_three_rejects(self) -> None:
        """The same votes under 3-of-3 are rejected: quorum is impossible."""
        response = ConsensusResponse.parse(
            reply(("A", ACCEPT), ("B", ACCEPT), ("C", REJECT)), QuorumRule.of(3, 3)
        )
        assert response.status is ConsensusStatus.REJECTED
        assert response.is_terminal()

    def test_partial_votes_pending(self) -> None:
        """Too few votes either way leaves the response pending."""
        response = ConsensusResponse.parse(reply(("A", ACCEPT)), QuorumRule.of(2, 3))
        assert response.status is ConsensusStatus.PENDING
        assert not response.is_terminal()

    def test_no_votes_pending(self) -> None:
        """A reply without votes is pending."""
        response = ConsensusResponse.parse(reply(), QuorumRule.of(2, 3))
        assert response.status is ConsensusStatus.PENDING
        assert response.votes == {}

    def test_conflicting_duplicate_rejected(self) -> None:
        """A territory voting both ways is a protocol error."""
        with pytest.raises(ProtocolDecodeError, match="voted both"):
            ConsensusResponse.parse(
                reply(("A", ACCEPT), ("A", REJECT)), QuorumRule.of(2, 3)
            )

    def test_identical_duplicates_collapse(self) -> None:
        """Repeated identical votes count once."""
        response = ConsensusResponse.parse(
            reply(("A", ACCEPT), ("A", ACCEPT)), QuorumRule.of(2, 3)
        )
        assert list(response.votes) == ["A"]
        assert response.accept_count == 1
        assert response.status is ConsensusStatus.PENDING

    def test_more_territories_than_network(self) -> None:
        """Votes from more territories than exist are rejected."""
        with pytest.raises(ProtocolDecodeError, match="network has 2"):
            ConsensusResponse.parse(
                reply(("A", ACCEPT), ("B", ACCEPT), ("C", ACCEPT)), QuorumRule.of(2, 2)
            )

    def test_hint_is_advisory(self) -> None:
        """The node's status hint never overrides the local result."""
        response = ConsensusResponse.parse(
            reply(("A", REJECT), ("B", REJECT), hint=ConsensusStatus.COMMITTED),
            QuorumRule.of(2, 3),
        )
        assert response.status is ConsensusStatus.REJECTED
        assert response.node_status_hint is ConsensusStatus.COMMITTED
        assert response.hint_disagrees

    def test_expected_hash_mismatch(self) -> None:
        """A reply for another envelope is rejected."""
        with pytest.raises(ProtocolDecodeError, match="different envelope"):
            ConsensusResponse.parse(
                reply(("A", ACCEPT)),
                QuorumRule.of(2, 3),
                expected_envelope_hash=b"\xff" * 32,
            )

    def test_expected_hash_match(self) -> None:
        """The echoed hash is kept on the response."""
        response = ConsensusResponse.parse(
            reply(("A", ACCEPT)), QuorumRule.of(1, 3), expected_envelope_hash=ENVELOPE_HASH
        )
        assert response.envelope_hash == ENVELOPE_HASH

    def test_unknown_outcome_byte(self) -> None:
        """Outcome bytes other than 1 and 2 are rejected."""
        raw = bytearray(reply(("A", ACCEPT)))
        raw[32 + 1 + 1 + 2] = 0x07
        with pytest.raises(ProtocolDecodeError, match="vote outcome"):
            ConsensusResponse.parse(bytes(raw), QuorumRule.of(2, 3))

    def test_unknown_status_hint(self) -> None:
        """Status hints other than 0, 1, 2 are rejected."""
        raw = bytearray(reply())
        raw[32] = 0x05
        with pytest.raises(ProtocolDecodeError, match="status hint"):
            ConsensusResponse.parse(bytes(raw), QuorumRule.of(2, 3))

    def test_truncated_reply(self) -> None:
        """Every strict prefix of a reply fails to parse."""
        raw = reply(("A", ACCEPT), ("B", REJECT))
        for length in range(len(raw)):
            with pytest.raises(ProtocolDecodeError):
                ConsensusResponse.parse(raw[:length], QuorumRule.of(2, 3))

    def test_trailing_bytes(self) -> None:
        """Bytes after the last vote are rejected."""
        with pytest.raises(ProtocolDecodeError, match="trailing"):
            ConsensusResponse.parse(reply() + b"\x00", QuorumRule.of(2, 3))

    def test_vote_repr_hides_signature(self) -> None:
        """Vote reprs stay short and omit signature bytes."""
        vote = ConsensusVote("A", ACCEPT, b"\x01" * 64)
        assert repr(vote) == "ConsensusVote(territory_id='A', outcome=ACCEPT)"


class TestRaiseForStatus:
    """Tests for raise_for_status."""

    def test_rejected_raises(self) -> None:
        """A rejected response raises QuorumUnreachableError with the tally."""
        response = ConsensusResponse.parse(
            reply(("A", ACCEPT), ("B", ACCEPT), ("C", REJECT)), QuorumRule.of(3, 3)
        )
        with pytest.raises(QuorumUnreachableError) as exc_info:
            response.raise_for_status()
        error = exc_info.value
        assert (error.accepts, error.rejects, error.required, error.total) == (2, 1, 3, 3)
        assert error.retryable is False

    def test_committed_returns_self(self) -> None:
        """Committed and pending responses pass through."""
        response = ConsensusResponse.parse(reply(("A", ACCEPT)), QuorumRule.of(1, 3))
        assert response.raise_for_status() is response


class TestVerifyVotes:
    """Tests for verify_votes with a caller-supplied verifier."""

    def test_reports_unknown_and_invalid(self) -> None:
        """Unknown territories and failing signatures are listed, sorted."""
        response = ConsensusResponse.parse(
            reply(("C", ACCEPT), ("A", ACCEPT), ("B", ACCEPT)), QuorumRule.of(2, 3)
        )
        identity = PublicIdentity(KeyAlgorithm.EC, b"\x01")
        keys = {
            "A": (identity, SignatureScheme.ECDSA),
            "C": (identity, SignatureScheme.ECDSA),
        }
        verify = MagicMock(side_effect=lambda message, signature, _: signature.value != b"sig-C")

        assert response.verify_votes(keys, verify) == ["B", "C"]
        for call in verify.call_args_list:
            message, signature, _ = call.args
            assert message == ENVELOPE_HASH
            assert signature.scheme is SignatureScheme.ECDSA

    def test_all_valid(self) -> None:
        """An empty list means every vote verified."""
        response = ConsensusResponse.parse(reply(("A", ACCEPT)), QuorumRule.of(1, 1))
        keys = {"A": (PublicIdentity(KeyAlgorithm.EC, b"\x01"), SignatureScheme.ECDSA)}
        assert response.verify_votes(keys, MagicMock(return_value=True)) == []

    def test_malformed_vote_reported_not_raised(self) -> None:
        """A vote the verifier cannot read is listed; the rest are still checked."""
        response = ConsensusResponse.parse(
            reply(("A", ACCEPT), ("B", ACCEPT), ("C", ACCEPT)), QuorumRule.of(2, 3)
        )
        identity = PublicIdentity(KeyAlgorithm.EC, b"\x01")
        keys = {name: (identity, SignatureScheme.ECDSA) for name in ("A", "B", "C")}

        def verify(message: bytes, signature: Signature, _: PublicIdentity) -> bool:
            if signature.value == b"sig-A":
                raise MalformedSignatureError("Signature value is empty")
            if signature.value == b"sig-B":
                raise MalformedKeyError()
            return True

        assert response.verify_votes(keys, verify) == ["A", "B"]

    def test_unexpected_verifier_error_propagates(self) -> None:
        """Only malformed key or signature input counts as a failed vote."""
        response = ConsensusResponse.parse(reply(("A", ACCEPT)), QuorumRule.of(1, 1))
        keys = {"A": (PublicIdentity(KeyAlgorithm.EC, b"\x01"), SignatureScheme.ECDSA)}
        with pytest.raises(RuntimeError):
            response.verify_votes(keys, MagicMock(side_effect=RuntimeError("boom")))


class TestEncodeNodeReply:
    """Tests for the reply encoder used by node simulators."""

    def test_hash_length_checked(self) -> None:
        """The envelope hash must be 32 bytes."""
        with pytest.raises(ValueError, match="32 bytes"):
            encode_node_reply(b"\x00" * 31, [])
