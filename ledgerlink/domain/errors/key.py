"""Key material and signing errors.

Cryptographic errors indicate a programming or data error. They are
never retried automatically and always surface to the caller.
"""

from ledgerlink.domain.exceptions import ErrorStage, LedgerLinkError


class KeyMaterialError(LedgerLinkError):
    """Base class for key-stage errors."""

    default_stage = ErrorStage.KEY


class UnsupportedParameterError(KeyMaterialError):
    """Raised when an algorithm/parameter combination is not implemented.

    Examples: RSA modulus below 2048 bits, an unknown EC curve name.
    """

    def __init__(self, algorithm: str, parameter: object) -> None:
        """Initialize with the rejected combination.

        Args:
            algorithm: Algorithm tag that was requested.
            parameter: The rejected parameter value.
        """
        super().__init__(
            f"Unsupported parameter for {algorithm}: {parameter!r}"
        )
        self.algorithm = algorithm
        self.parameter = parameter


class MalformedKeyError(KeyMaterialError):
    """Raised when bytes do not decode to a valid key of the expected family."""

    def __init__(self, message: str = "Malformed key material") -> None:
        super().__init__(message)


class MalformedSignatureError(KeyMaterialError):
    """Raised for structurally invalid signatures.

    A well-formed signature that simply does not verify is NOT an error;
    verification returns False in that case.
    """

    def __init__(self, message: str = "Malformed signature") -> None:
        super().__init__(message)


class SigningFailureError(KeyMaterialError):
    """Raised when a signature cannot be produced."""

    def __init__(self, message: str = "Signing failed") -> None:
        super().__init__(message)
