"""Encoding and decoding errors.

EncodingError is raised while building canonical bytes (a data error on
the caller's side). ProtocolDecodeError is raised while reading bytes
that came from elsewhere: a received envelope or a node reply.
"""

from __future__ import annotations

from ledgerlink.domain.exceptions import ErrorStage, LedgerLinkError


class EncodingError(LedgerLinkError):
    """Raised when a payload value has no defined canonical encoding."""

    default_stage = ErrorStage.ENCODE

    def __init__(self, message: str, path: str = "$") -> None:
        """Initialize with the offending location.

        Args:
            message: Error description.
            path: JSON-path-like location of the value (e.g. "$.a[2]").
        """
        super().__init__(f"{message} at {path}")
        self.path = path


class ProtocolDecodeError(LedgerLinkError):
    """Raised on truncated, malformed or inconsistent wire input.

    Covers envelopes that fail to decode, node replies that fail to
    decode, and replies that contradict themselves (for example the same
    territory voting both accept and reject).
    """

    default_stage = ErrorStage.PARSE

    def __init__(
        self,
        message: str = "Malformed protocol data",
        offset: int | None = None,
        outcome_unknown: bool = False,
    ) -> None:
        """Initialize with an optional byte offset.

        Args:
            message: Error description.
            offset: Byte offset where decoding failed, if known.
            outcome_unknown: True if raised for the reply to a submission.
        """
        if offset is not None:
            message = f"{message} (offset {offset})"
        super().__init__(message, outcome_unknown=outcome_unknown)
        self.offset = offset
