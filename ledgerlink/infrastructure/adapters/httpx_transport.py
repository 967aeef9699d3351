"""HTTP transport adapter for ledger nodes using httpx.

Implements SecureTransportProtocol on top of ``httpx.AsyncClient``.
TLS, connection pooling and HTTP framing are httpx's job; this adapter
only maps the node's HTTP surface onto the port:

    open   GET  {endpoint}{status_path}   connectivity check (and node key)
    send   POST {endpoint}{submit_path}   envelope bytes -> reply bytes

Error mapping (every failure is a LedgerConnectionError):

    httpx.TimeoutException               TIMEOUT
    httpx.ConnectError caused by SSL     TLS
    any other httpx.HTTPError            REFUSED
    httpx.InvalidURL                     REFUSED
    non-2xx response                     REFUSED (status_code set)

The adapter never retries.
"""

from __future__ import annotations

import ssl
from typing import Any

import httpx
import structlog

from ledgerlink.application.ports.transport import (
    SecureTransportProtocol,
    TransportSession,
)
from ledgerlink.domain.errors import ConnectionFailureReason, LedgerConnectionError
from ledgerlink.domain.models.credentials import Credentials
from ledgerlink.infrastructure.crypto.node_encryption import NodeEncryptionKey

logger = structlog.get_logger(__name__)

DEFAULT_STATUS_PATH = "/a/status"
DEFAULT_SUBMIT_PATH = "/"
ENCRYPT_HEADER = "X-Ledger-Encrypt"
ENVELOPE_CONTENT_TYPE = "application/octet-stream"


class HttpxSession(TransportSession):
    """Open httpx client bound to one node endpoint."""

    def __init__(
        self,
        endpoint: str,
        client: httpx.AsyncClient,
        encryption_key: NodeEncryptionKey | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.client = client
        self.encryption_key = encryption_key

    @property
    def is_open(self) -> bool:
        return not self.client.is_closed


def _is_tls_failure(error: BaseException) -> bool:
    current: BaseException | None = error
    while current is not None:
        if isinstance(current, ssl.SSLError):
            return True
        current = current.__cause__ or current.__context__
    return False


def map_httpx_error(
    error: httpx.HTTPError | httpx.InvalidURL, endpoint: str
) -> LedgerConnectionError:
    """Translate an httpx exception into a LedgerConnectionError."""
    if isinstance(error, httpx.TimeoutException):
        reason = ConnectionFailureReason.TIMEOUT
    elif isinstance(error, httpx.ConnectError) and _is_tls_failure(error):
        reason = ConnectionFailureReason.TLS
    else:
        reason = ConnectionFailureReason.REFUSED
    return LedgerConnectionError(
        reason,
        message=type(error).__name__,
        endpoint=endpoint,
    )


def _verify_setting(credentials: Credentials | None) -> ssl.SSLContext | bool:
    if credentials is None:
        return True
    if not credentials.verify_tls:
        return False
    if credentials.ca_bundle is None and credentials.client_cert is None:
        return True
    context = ssl.create_default_context(cafile=credentials.ca_bundle)
    if credentials.client_cert is not None:
        certfile, keyfile = credentials.client_cert
        context.load_cert_chain(certfile=certfile, keyfile=keyfile)
    return context


class HttpxTransport(SecureTransportProtocol):
    """SecureTransportProtocol implementation over httpx.

    Example:
        transport = HttpxTransport(encrypt=True)
        session = await transport.open("https://node:5260", None, timeout=5.0)
        reply = await transport.send(session, envelope_bytes, timeout=30.0)
        await transport.close(session)
    """

    def __init__(
        self,
        status_path: str = DEFAULT_STATUS_PATH,
        submit_path: str = DEFAULT_SUBMIT_PATH,
        encrypt: bool = False,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            status_path: Path of the node status document.
            submit_path: Path envelopes are POSTed to.
            encrypt: Encrypt bodies to the node's published RSA key.
            http_transport: Optional httpx transport (e.g.
                ``httpx.MockTransport`` in tests).
        """
        self._status_path = status_path
        self._submit_path = submit_path
        self._encrypt = encrypt
        self._http_transport = http_transport
        self._log = logger.bind(component="httpx_transport")

    def describe(self) -> dict[str, Any]:
        return {
            "transport": type(self).__name__,
            "submit_path": self._submit_path,
            "encrypted": self._encrypt,
        }

    async def open(
        self,
        endpoint: str,
        credentials: Credentials | None,
        timeout: float,
    ) -> TransportSession:
        headers = {"User-Agent": "ledgerlink"}
        if credentials is not None and credentials.has_token:
            headers["Authorization"] = f"Bearer {credentials.bearer_token}"

        try:
            verify = _verify_setting(credentials)
        except (OSError, ValueError) as e:
            raise LedgerConnectionError(
                ConnectionFailureReason.TLS,
                message=f"cannot load TLS material ({type(e).__name__})",
                endpoint=endpoint,
            ) from e

        try:
            client = httpx.AsyncClient(
                base_url=endpoint,
                headers=headers,
                verify=verify,
                timeout=timeout,
                transport=self._http_transport,
            )
        except httpx.InvalidURL as e:
            raise map_httpx_error(e, endpoint) from e
        try:
            response = await client.get(self._status_path, timeout=timeout)
            if not response.is_success:
                raise LedgerConnectionError(
                    ConnectionFailureReason.REFUSED,
                    message="status check rejected",
                    endpoint=endpoint,
                    status_code=response.status_code,
                )
            encryption_key = self._node_key(response, endpoint) if self._encrypt else None
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            await client.aclose()
            raise map_httpx_error(e, endpoint) from e
        except BaseException:
            await client.aclose()
            raise

        self._log.debug(
            "node_status_checked",
            endpoint=endpoint,
            status_code=response.status_code,
            encrypted=encryption_key is not None,
        )
        return HttpxSession(endpoint, client, encryption_key)

    def _node_key(self, response: httpx.Response, endpoint: str) -> NodeEncryptionKey:
        try:
            document = response.json()
            pem_field = document["pem"]
            if not isinstance(pem_field, str):
                raise TypeError("pem is not a string")
            return NodeEncryptionKey.from_status_field(pem_field)
        except (ValueError, KeyError, TypeError) as e:
            raise LedgerConnectionError(
                ConnectionFailureReason.REFUSED,
                message="node did not publish a usable encryption key",
                endpoint=endpoint,
                status_code=response.status_code,
            ) from e

    async def send(self, session: TransportSession, data: bytes, timeout: float) -> bytes:
        if not isinstance(session, HttpxSession):
            raise TypeError(f"Expected HttpxSession, got {type(session).__name__}")
        if not session.is_open:
            raise LedgerConnectionError(
                ConnectionFailureReason.REFUSED,
                message="session is closed",
                endpoint=session.endpoint,
            )

        headers = {"Content-Type": ENVELOPE_CONTENT_TYPE}
        body = data
        if session.encryption_key is not None:
            try:
                body = session.encryption_key.encrypt(data)
            except ValueError as e:
                raise LedgerConnectionError(
                    ConnectionFailureReason.REFUSED,
                    message="cannot encrypt for node key",
                    endpoint=session.endpoint,
                ) from e
            headers[ENCRYPT_HEADER] = "1"

        try:
            response = await session.client.post(
                self._submit_path,
                content=body,
                headers=headers,
                timeout=timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise map_httpx_error(e, session.endpoint) from e

        if not response.is_success:
            self._log.warning(
                "node_rejected_submission",
                endpoint=session.endpoint,
                status_code=response.status_code,
            )
            raise LedgerConnectionError(
                ConnectionFailureReason.REFUSED,
                message="submission rejected",
                endpoint=session.endpoint,
                status_code=response.status_code,
            )
        return response.content

    async def close(self, session: TransportSession) -> None:
        if isinstance(session, HttpxSession) and session.is_open:
            await session.client.aclose()
