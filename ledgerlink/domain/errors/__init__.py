"""Domain errors for ledgerlink.

Provides specific exception classes for different failure scenarios.
All exceptions inherit from LedgerLinkError.
"""

from ledgerlink.domain.errors.connection import (
    ConnectionFailureReason,
    ConnectionStateError,
    LedgerConnectionError,
    QuorumUnreachableError,
    SubmissionTimeoutError,
)
from ledgerlink.domain.errors.encoding import EncodingError, ProtocolDecodeError
from ledgerlink.domain.errors.key import (
    KeyMaterialError,
    MalformedKeyError,
    MalformedSignatureError,
    SigningFailureError,
    UnsupportedParameterError,
)

__all__: list[str] = [
    "ConnectionFailureReason",
    "ConnectionStateError",
    "EncodingError",
    "KeyMaterialError",
    "LedgerConnectionError",
    "MalformedKeyError",
    "MalformedSignatureError",
    "ProtocolDecodeError",
    "QuorumUnreachableError",
    "SigningFailureError",
    "SubmissionTimeoutError",
    "UnsupportedParameterError",
]
