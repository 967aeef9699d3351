"""Ledger client configuration.

Defines the settings a LedgerConnection is built from, with environment
variable overrides for deployment tuning. Loading credentials is not
part of this module; tokens and certificates are passed to connect().

Environment Variables:
- LEDGERLINK_ENDPOINT: Node base URL (default: http://localhost:5260)
- LEDGERLINK_STATUS_PATH: Status check path (default: /a/status)
- LEDGERLINK_SUBMIT_PATH: Submission path (default: /)
- LEDGERLINK_CONNECT_TIMEOUT: Connect timeout in seconds (default: 10, min: 0.1, max: 300)
- LEDGERLINK_SUBMIT_TIMEOUT: Submit timeout in seconds (default: 30, min: 0.1, max: 600)
- LEDGERLINK_TERRITORIES: Number of voting territories (default: 3, min: 1)
- LEDGERLINK_QUORUM: Minimum accept fraction, e.g. "2/3" or "0.5" (default: 2/3)
- LEDGERLINK_RSA_SCHEME: rsa-pkcs1v15 or rsa-pss (default: rsa-pkcs1v15)
- LEDGERLINK_ENCRYPT: Encrypt submissions to the node key (default: false)

Invalid values fall back to the default; out-of-range timeouts are
clamped.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from fractions import Fraction

from ledgerlink.domain.models.consensus import QuorumRule
from ledgerlink.domain.models.identity import KeyAlgorithm, SignatureScheme

ENV_PREFIX = "LEDGERLINK_"

DEFAULT_ENDPOINT = "http://localhost:5260"
DEFAULT_STATUS_PATH = "/a/status"
DEFAULT_SUBMIT_PATH = "/"

DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0
DEFAULT_SUBMIT_TIMEOUT_SECONDS = 30.0
MIN_TIMEOUT_SECONDS = 0.1
MAX_CONNECT_TIMEOUT_SECONDS = 300.0
MAX_SUBMIT_TIMEOUT_SECONDS = 600.0

DEFAULT_TOTAL_TERRITORIES = 3
DEFAULT_QUORUM_FRACTION = Fraction(2, 3)

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _get_env(key: str) -> str | None:
    value = os.environ.get(ENV_PREFIX + key)
    if value is None or not value.strip():
        return None
    return value.strip()


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Variable name without the LEDGERLINK_ prefix.
        default: Default value if not set or invalid.
    """
    value = _get_env(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    value = _get_env(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool_env(key: str, default: bool) -> bool:
    value = _get_env(key)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return default


def _get_fraction_env(key: str, default: Fraction) -> Fraction:
    value = _get_env(key)
    if value is None:
        return default
    try:
        fraction = Fraction(value)
    except (ValueError, ZeroDivisionError):
        return default
    if not 0 < fraction <= 1:
        return default
    return fraction


def _get_rsa_scheme_env(key: str, default: SignatureScheme) -> SignatureScheme:
    value = _get_env(key)
    if value is None:
        return default
    try:
        scheme = SignatureScheme(value.lower())
    except ValueError:
        return default
    if scheme.key_algorithm is not KeyAlgorithm.RSA:
        return default
    return scheme


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


@dataclass(frozen=True)
class LedgerClientConfig:
    """Settings for connecting to a ledger node and judging consensus.

    Attributes:
        endpoint: Node base URL.
        status_path: Path of the node status document.
        submit_path: Path envelopes are POSTed to.
        connect_timeout_seconds: Seconds allowed for connect().
        submit_timeout_seconds: Default seconds allowed for submit().
        total_territories: Voting territories in the network.
        quorum_fraction: Minimum fraction of territories that must accept.
        rsa_scheme: Signature scheme for RSA keys.
        encrypt: Encrypt submissions to the node's published key.
    """

    endpoint: str = DEFAULT_ENDPOINT
    status_path: str = DEFAULT_STATUS_PATH
    submit_path: str = DEFAULT_SUBMIT_PATH
    connect_timeout_seconds: float = DEFAULT_CONNECT_TIMEOUT_SECONDS
    submit_timeout_seconds: float = DEFAULT_SUBMIT_TIMEOUT_SECONDS
    total_territories: int = DEFAULT_TOTAL_TERRITORIES
    quorum_fraction: Fraction = DEFAULT_QUORUM_FRACTION
    rsa_scheme: SignatureScheme = SignatureScheme.RSA_PKCS1V15
    encrypt: bool = False

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.endpoint.startswith(("http://", "https://")):
            raise ValueError(f"endpoint must be an http(s) URL, got {self.endpoint!r}")
        for name in ("status_path", "submit_path"):
            if not getattr(self, name).startswith("/"):
                raise ValueError(f"{name} must start with '/'")
        if not MIN_TIMEOUT_SECONDS <= self.connect_timeout_seconds <= MAX_CONNECT_TIMEOUT_SECONDS:
            raise ValueError(
                f"connect_timeout_seconds must be between {MIN_TIMEOUT_SECONDS} "
                f"and {MAX_CONNECT_TIMEOUT_SECONDS}, got {self.connect_timeout_seconds}"
            )
        if not MIN_TIMEOUT_SECONDS <= self.submit_timeout_seconds <= MAX_SUBMIT_TIMEOUT_SECONDS:
            raise ValueError(
                f"submit_timeout_seconds must be between {MIN_TIMEOUT_SECONDS} "
                f"and {MAX_SUBMIT_TIMEOUT_SECONDS}, got {self.submit_timeout_seconds}"
            )
        if self.total_territories < 1:
            raise ValueError(
                f"total_territories must be >= 1, got {self.total_territories}"
            )
        if not 0 < self.quorum_fraction <= 1:
            raise ValueError(
                f"quorum_fraction must be in (0, 1], got {self.quorum_fraction}"
            )
        if self.rsa_scheme.key_algorithm is not KeyAlgorithm.RSA:
            raise ValueError(f"rsa_scheme must be an RSA scheme, got {self.rsa_scheme.value}")

    def quorum_rule(self) -> QuorumRule:
        """Build the QuorumRule for this network."""
        return QuorumRule(
            total_territories=self.total_territories,
            min_accept_fraction=self.quorum_fraction,
        )

    @classmethod
    def from_env(cls) -> LedgerClientConfig:
        """Create config from LEDGERLINK_* environment variables with defaults."""
        endpoint = _get_env("ENDPOINT") or DEFAULT_ENDPOINT
        if not endpoint.startswith(("http://", "https://")):
            endpoint = DEFAULT_ENDPOINT

        status_path = _get_env("STATUS_PATH") or DEFAULT_STATUS_PATH
        if not status_path.startswith("/"):
            status_path = DEFAULT_STATUS_PATH
        submit_path = _get_env("SUBMIT_PATH") or DEFAULT_SUBMIT_PATH
        if not submit_path.startswith("/"):
            submit_path = DEFAULT_SUBMIT_PATH

        # Clamp to valid range
        connect_timeout = _clamp(
            _get_float_env("CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT_SECONDS),
            MIN_TIMEOUT_SECONDS,
            MAX_CONNECT_TIMEOUT_SECONDS,
        )
        submit_timeout = _clamp(
            _get_float_env("SUBMIT_TIMEOUT", DEFAULT_SUBMIT_TIMEOUT_SECONDS),
            MIN_TIMEOUT_SECONDS,
            MAX_SUBMIT_TIMEOUT_SECONDS,
        )

        territories = _get_int_env("TERRITORIES", DEFAULT_TOTAL_TERRITORIES)
        if territories < 1:
            territories = DEFAULT_TOTAL_TERRITORIES

        return cls(
            endpoint=endpoint,
            status_path=status_path,
            submit_path=submit_path,
            connect_timeout_seconds=connect_timeout,
            submit_timeout_seconds=submit_timeout,
            total_territories=territories,
            quorum_fraction=_get_fraction_env("QUORUM", DEFAULT_QUORUM_FRACTION),
            rsa_scheme=_get_rsa_scheme_env("RSA_SCHEME", SignatureScheme.RSA_PKCS1V15),
            encrypt=_get_bool_env("ENCRYPT", False),
        )


# Default config: local node, three territories, two thirds must accept
DEFAULT_LEDGER_CLIENT_CONFIG = LedgerClientConfig()

# Testing config with short timeouts and a single territory
TEST_LEDGER_CLIENT_CONFIG = LedgerClientConfig(
    connect_timeout_seconds=1.0,
    submit_timeout_seconds=1.0,
    total_territories=1,
    quorum_fraction=Fraction(1),
)
