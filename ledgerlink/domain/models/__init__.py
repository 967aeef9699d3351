"""Domain models for ledgerlink."""

from ledgerlink.domain.models.connection_state import ConnectionState, can_transition
from ledgerlink.domain.models.consensus import (
    ConsensusResponse,
    ConsensusStatus,
    ConsensusVote,
    QuorumRule,
    VoteOutcome,
    encode_node_reply,
)
from ledgerlink.domain.models.credentials import Credentials
from ledgerlink.domain.models.envelope import TransactionEnvelope
from ledgerlink.domain.models.identity import (
    KeyAlgorithm,
    PublicIdentity,
    Signature,
    SignatureScheme,
)

__all__ = [
    "ConnectionState",
    "ConsensusResponse",
    "ConsensusStatus",
    "ConsensusVote",
    "Credentials",
    "KeyAlgorithm",
    "PublicIdentity",
    "QuorumRule",
    "Signature",
    "SignatureScheme",
    "TransactionEnvelope",
    "VoteOutcome",
    "can_transition",
    "encode_node_reply",
]
