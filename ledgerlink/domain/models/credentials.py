"""Credentials presented when opening a session to a ledger node.

Loading credentials from files or secret stores is the caller's
concern; this is only the value handed to the transport.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Credentials:
    """Session credentials for a ledger node.

    Attributes:
        bearer_token: Optional API token sent as ``Authorization: Bearer``.
            Never included in repr().
        client_cert: Optional (certificate path, key path) for mutual TLS.
        ca_bundle: Optional CA bundle path used to verify the node.
        verify_tls: Whether to verify the node's TLS certificate.
    """

    bearer_token: str | None = field(default=None, repr=False)
    client_cert: tuple[str, str] | None = None
    ca_bundle: str | None = None
    verify_tls: bool = True

    @property
    def has_token(self) -> bool:
        return bool(self.bearer_token)
