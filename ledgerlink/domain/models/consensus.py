"""Consensus response domain models.

A ledger node answers a submission with the votes it collected from
independent territories. The node also sends a status hint, but the
hint is advisory only: status is always recomputed locally from the
votes and the configured quorum rule.

Reply layout (varints are minimal unsigned LEB128):

    envelope hash     32 bytes, SHA-256 of the submitted envelope
    status hint       1 byte (0 pending, 1 committed, 2 rejected)
    vote count        varint
    votes             varint length + UTF-8 territory id,
                      outcome byte (1 accept, 2 reject),
                      varint length + signature bytes

Status rules, with ``required = ceil(fraction * total_territories)``:

    committed  accepts >= required
    rejected   total_territories - rejects < required (quorum impossible)
    pending    otherwise
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction

from ledgerlink.domain.errors.connection import QuorumUnreachableError
from ledgerlink.domain.errors.encoding import ProtocolDecodeError
from ledgerlink.domain.errors.key import MalformedKeyError, MalformedSignatureError
from ledgerlink.domain.models.identity import PublicIdentity, Signature, SignatureScheme
from ledgerlink.domain.primitives.varint import ByteReader, encode_uvarint, prefixed

ENVELOPE_HASH_SIZE = 32


class VoteOutcome(Enum):
    """A territory's verdict on a transaction."""

    ACCEPT = 1
    REJECT = 2


class ConsensusStatus(Enum):
    """Locally computed consensus status."""

    PENDING = 0
    COMMITTED = 1
    REJECTED = 2


@dataclass(frozen=True)
class QuorumRule:
    """Quorum threshold for a network.

    Attributes:
        total_territories: Number of voting territories in the network.
        min_accept_fraction: Minimum fraction of territories that must
            accept, as an exact Fraction in (0, 1].
    """

    total_territories: int
    min_accept_fraction: Fraction

    def __post_init__(self) -> None:
        """Validate quorum invariants."""
        if self.total_territories < 1:
            raise ValueError(
                f"total_territories must be >= 1, got {self.total_territories}"
            )
        fraction = Fraction(self.min_accept_fraction)
        if not 0 < fraction <= 1:
            raise ValueError(
                f"min_accept_fraction must be in (0, 1], got {fraction}"
            )
        object.__setattr__(self, "min_accept_fraction", fraction)

    @classmethod
    def of(cls, required: int, total: int) -> QuorumRule:
        """Build an "N of M accept" rule."""
        return cls(total_territories=total, min_accept_fraction=Fraction(required, total))

    @property
    def required_accepts(self) -> int:
        return math.ceil(self.min_accept_fraction * self.total_territories)

    def evaluate(self, accepts: int, rejects: int) -> ConsensusStatus:
        """Compute status from a vote tally."""
        if accepts >= self.required_accepts:
            return ConsensusStatus.COMMITTED
        if self.total_territories - rejects < self.required_accepts:
            return ConsensusStatus.REJECTED
        return ConsensusStatus.PENDING

    def __str__(self) -> str:
        return f"{self.required_accepts} of {self.total_territories} accept"


@dataclass(frozen=True)
class ConsensusVote:
    """One territory's vote, signed over the envelope's identifying hash."""

    territory_id: str
    outcome: VoteOutcome
    signature: bytes

    def __repr__(self) -> str:
        return (
            f"ConsensusVote(territory_id={self.territory_id!r}, "
            f"outcome={self.outcome.name})"
        )


@dataclass(frozen=True)
class ConsensusResponse:
    """Parsed node reply with locally computed status.

    Terminal once status is not PENDING.

    Attributes:
        envelope_hash: Identifying hash of the envelope this reply is for.
        votes: Votes keyed by territory id (unique by construction).
        status: Status recomputed from votes and quorum.
        quorum: Quorum rule used to compute status.
        node_status_hint: The node's own claim, advisory only.
    """

    envelope_hash: bytes
    votes: Mapping[str, ConsensusVote]
    status: ConsensusStatus
    quorum: QuorumRule
    node_status_hint: ConsensusStatus = field(default=ConsensusStatus.PENDING)

    @classmethod
    def parse(
        cls,
        raw: bytes,
        quorum: QuorumRule,
        expected_envelope_hash: bytes | None = None,
    ) -> ConsensusResponse:
        """Decode a node reply and compute consensus status.

        Args:
            raw: Reply bytes from the node.
            quorum: Quorum rule for the network (configuration).
            expected_envelope_hash: If given, the reply must echo it.

        Returns:
            The ConsensusResponse.

        Raises:
            ProtocolDecodeError: On malformed input, a reply for a
                different envelope, a territory voting both ways, or
                more territories than the network has.
        """
        reader = ByteReader(raw)
        envelope_hash = reader.read(ENVELOPE_HASH_SIZE)
        if expected_envelope_hash is not None and envelope_hash != expected_envelope_hash:
            raise ProtocolDecodeError(
                "Reply is for a different envelope "
                f"({envelope_hash.hex()[:16]} != {expected_envelope_hash.hex()[:16]})",
                offset=0,
            )

        hint_offset = reader.offset
        try:
            hint = ConsensusStatus(reader.read_byte())
        except ValueError as e:
            raise ProtocolDecodeError("Unknown status hint", offset=hint_offset) from e

        votes: dict[str, ConsensusVote] = {}
        for _ in range(reader.read_uvarint()):
            vote_offset = reader.offset
            territory_id = reader.read_prefixed_text()
            outcome_offset = reader.offset
            try:
                outcome = VoteOutcome(reader.read_byte())
            except ValueError as e:
                raise ProtocolDecodeError(
                    "Unknown vote outcome", offset=outcome_offset
                ) from e
            vote = ConsensusVote(territory_id, outcome, reader.read_prefixed())

            existing = votes.get(territory_id)
            if existing is not None:
                if existing.outcome is not outcome:
                    raise ProtocolDecodeError(
                        f"Territory {territory_id!r} voted both "
                        f"{existing.outcome.name} and {outcome.name}",
                        offset=vote_offset,
                    )
                continue
            votes[territory_id] = vote
        reader.expect_end()

        if len(votes) > quorum.total_territories:
            raise ProtocolDecodeError(
                f"Reply carries {len(votes)} territories, network has "
                f"{quorum.total_territories}"
            )

        return cls.from_votes(envelope_hash, votes.values(), quorum, node_status_hint=hint)

    @classmethod
    def from_votes(
        cls,
        envelope_hash: bytes,
        votes: Iterable[ConsensusVote],
        quorum: QuorumRule,
        node_status_hint: ConsensusStatus = ConsensusStatus.PENDING,
    ) -> ConsensusResponse:
        """Build a response from already-deduplicated votes."""
        by_territory = {vote.territory_id: vote for vote in votes}
        accepts = sum(1 for v in by_territory.values() if v.outcome is VoteOutcome.ACCEPT)
        rejects = len(by_territory) - accepts
        return cls(
            envelope_hash=envelope_hash,
            votes=by_territory,
            status=quorum.evaluate(accepts, rejects),
            quorum=quorum,
            node_status_hint=node_status_hint,
        )

    @property
    def accept_count(self) -> int:
        return sum(1 for v in self.votes.values() if v.outcome is VoteOutcome.ACCEPT)

    @property
    def reject_count(self) -> int:
        return len(self.votes) - self.accept_count

    @property
    def hint_disagrees(self) -> bool:
        """True when the node's hint differs from the local result."""
        return self.node_status_hint is not self.status

    def is_terminal(self) -> bool:
        return self.status is not ConsensusStatus.PENDING

    def raise_for_status(self) -> ConsensusResponse:
        """Raise QuorumUnreachableError if the transaction was rejected.

        Returns:
            self, for chaining.
        """
        if self.status is ConsensusStatus.REJECTED:
            raise QuorumUnreachableError(
                accepts=self.accept_count,
                rejects=self.reject_count,
                required=self.quorum.required_accepts,
                total=self.quorum.total_territories,
            )
        return self

    def verify_votes(
        self,
        territory_keys: Mapping[str, tuple[PublicIdentity, SignatureScheme]],
        verify: Callable[[bytes, Signature, PublicIdentity], bool],
    ) -> list[str]:
        """Check vote signatures against known territory identities.

        Args:
            territory_keys: Territory id to (identity, signature scheme).
            verify: Verification function, normally ``KeyMaterial.verify``.

        Returns:
            Sorted ids of territories whose vote is unverifiable: no
            known key, a signature that does not verify, or signature
            or key bytes the verifier cannot read.
        """
        failed: list[str] = []
        for territory_id, vote in self.votes.items():
            known = territory_keys.get(territory_id)
            if known is None:
                failed.append(territory_id)
                continue
            identity, scheme = known
            try:
                valid = verify(self.envelope_hash, Signature(scheme, vote.signature), identity)
            except (MalformedSignatureError, MalformedKeyError):
                valid = False
            if not valid:
                failed.append(territory_id)
        return sorted(failed)


def encode_node_reply(
    envelope_hash: bytes,
    votes: Iterable[tuple[str, VoteOutcome, bytes]],
    status_hint: ConsensusStatus = ConsensusStatus.PENDING,
) -> bytes:
    """Encode a node reply; used by node simulators and tests.

    Votes are written in the order given, duplicates included.
    """
    if len(envelope_hash) != ENVELOPE_HASH_SIZE:
        raise ValueError("envelope_hash must be 32 bytes")
    entries = list(votes)
    out = bytearray(envelope_hash)
    out.append(status_hint.value)
    out += encode_uvarint(len(entries))
    for territory_id, outcome, signature in entries:
        out += prefixed(territory_id.encode("utf-8"))
        out.append(outcome.value)
        out += prefixed(signature)
    return bytes(out)
