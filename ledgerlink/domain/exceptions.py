"""Base exception classes for the ledgerlink domain layer."""

from __future__ import annotations

from enum import Enum


class ErrorStage(Enum):
    """Pipeline stage at which a failure happened.

    Callers use the stage (together with ``retryable`` and
    ``outcome_unknown``) to decide whether resubmitting is safe.
    """

    KEY = "key"
    ENCODE = "encode"
    CONNECT = "connect"
    SUBMIT = "submit"
    PARSE = "parse"


class LedgerLinkError(Exception):
    """Base exception for all ledgerlink errors.

    All library exceptions MUST inherit from this class. Messages must
    never contain private key material.

    Attributes:
        stage: Pipeline stage that failed.
        retryable: True if the caller may retry the same operation.
        outcome_unknown: True if a transaction may have reached the
            ledger even though no result was obtained.
    """

    default_stage: ErrorStage | None = None
    retryable: bool = False

    def __init__(
        self,
        message: str = "",
        stage: ErrorStage | None = None,
        outcome_unknown: bool = False,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            stage: Stage that failed. Defaults to the class stage.
            outcome_unknown: Whether the transaction outcome is unknown.
        """
        super().__init__(message)
        self.stage = stage if stage is not None else self.default_stage
        self.outcome_unknown = outcome_unknown

    @property
    def safe_to_resubmit(self) -> bool:
        """True only when retrying cannot duplicate ledger effects."""
        return self.retryable and not self.outcome_unknown
