"""Asymmetric key material backed by the ``cryptography`` package.

A KeyMaterial owns exactly one private key, held as PKCS#8 DER inside a
bytearray that is overwritten with zeros on destroy(), on context
manager exit and when the handle is garbage collected. The key object
used for signing is rebuilt from those bytes for each operation and
dropped right after.

Supported parameters:

    RSA   modulus 2048..16384 bits (default 2048), public exponent 65537
          PKCS#1 v1.5 + SHA-256 (default) or PSS (MGF1-SHA-256,
          salt length = digest length)
    EC    secp256k1 (default), secp256r1, secp384r1, secp521r1
          ECDSA with SHA-256 / SHA-256 / SHA-384 / SHA-512

Private material leaves a handle only through export_private(), which
is logged as an audit event.
"""

from __future__ import annotations

from types import TracebackType
from typing import Any

import structlog
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from ledgerlink.domain.errors import (
    MalformedKeyError,
    MalformedSignatureError,
    SigningFailureError,
    UnsupportedParameterError,
)
from ledgerlink.domain.models.identity import (
    KeyAlgorithm,
    PublicIdentity,
    Signature,
    SignatureScheme,
)

logger = structlog.get_logger(__name__)

RSA_MIN_BITS = 2048
RSA_MAX_BITS = 16384
RSA_DEFAULT_BITS = 2048
RSA_PUBLIC_EXPONENT = 65537

EC_DEFAULT_CURVE = "secp256k1"

_CURVES: dict[str, type[ec.EllipticCurve]] = {
    "secp256k1": ec.SECP256K1,
    "secp256r1": ec.SECP256R1,
    "secp384r1": ec.SECP384R1,
    "secp521r1": ec.SECP521R1,
}

_CURVE_HASHES: dict[str, type[hashes.HashAlgorithm]] = {
    "secp256k1": hashes.SHA256,
    "secp256r1": hashes.SHA256,
    "secp384r1": hashes.SHA384,
    "secp521r1": hashes.SHA512,
}

PrivateKey = rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey
PublicKey = rsa.RSAPublicKey | ec.EllipticCurvePublicKey


def _rsa_padding(scheme: SignatureScheme) -> padding.AsymmetricPadding:
    if scheme is SignatureScheme.RSA_PSS:
        return padding.PSS(
            mgf=padding.MGF1(hashes.SHA256()),
            salt_length=padding.PSS.DIGEST_LENGTH,
        )
    return padding.PKCS1v15()


def _ecdsa(curve: ec.EllipticCurve) -> ec.ECDSA:
    return ec.ECDSA(_CURVE_HASHES[curve.name]())


def _check_supported(key: Any, algorithm: KeyAlgorithm) -> None:
    """Raise MalformedKeyError unless ``key`` is a usable key of ``algorithm``."""
    if algorithm is KeyAlgorithm.RSA:
        if not isinstance(key, rsa.RSAPrivateKey | rsa.RSAPublicKey):
            raise MalformedKeyError("Key is not an RSA key")
        if not RSA_MIN_BITS <= key.key_size <= RSA_MAX_BITS:
            raise MalformedKeyError(f"RSA key size {key.key_size} is not supported")
        return
    if not isinstance(key, ec.EllipticCurvePrivateKey | ec.EllipticCurvePublicKey):
        raise MalformedKeyError("Key is not an EC key")
    if key.curve.name not in _CURVES:
        raise MalformedKeyError(f"EC curve {key.curve.name} is not supported")


def _load_public(identity: PublicIdentity) -> PublicKey:
    try:
        key = serialization.load_der_public_key(identity.public_key)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise MalformedKeyError("Public key is not valid DER SubjectPublicKeyInfo") from e
    _check_supported(key, identity.algorithm)
    return key  # type: ignore[return-value]


def _scheme_for(algorithm: KeyAlgorithm, rsa_scheme: SignatureScheme) -> SignatureScheme:
    if algorithm is KeyAlgorithm.EC:
        return SignatureScheme.ECDSA
    if rsa_scheme.key_algorithm is not KeyAlgorithm.RSA:
        raise UnsupportedParameterError(algorithm.value, rsa_scheme.value)
    return rsa_scheme


class KeyMaterial:
    """Handle owning one RSA or EC private key.

    Create instances with generate(), import_private() or
    from_document(); the constructor is internal. Handles refuse to be
    copied or pickled, so the only way to duplicate a key is clone().

    Example:
        with KeyMaterial.generate(KeyAlgorithm.EC) as key:
            signature = key.sign(b"message")
            assert KeyMaterial.verify(b"message", signature, key.public_identity())
    """

    def __init__(
        self,
        private_key: PrivateKey,
        algorithm: KeyAlgorithm,
        scheme: SignatureScheme,
    ) -> None:
        self._algorithm = algorithm
        self._scheme = scheme
        self._private_der = bytearray(
            private_key.private_bytes(
                encoding=serialization.Encoding.DER,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            )
        )
        self._identity = PublicIdentity(
            algorithm=algorithm,
            public_key=private_key.public_key().public_bytes(
                encoding=serialization.Encoding.DER,
                format=serialization.PublicFormat.SubjectPublicKeyInfo,
            ),
        )
        self._destroyed = False
        self._log = logger.bind(
            component="key_material",
            algorithm=algorithm.value,
            fingerprint=self._identity.fingerprint,
        )

    # --- construction ---------------------------------------------------

    @classmethod
    def generate(
        cls,
        algorithm: KeyAlgorithm,
        parameters: int | str | None = None,
        rsa_scheme: SignatureScheme = SignatureScheme.RSA_PKCS1V15,
    ) -> KeyMaterial:
        """Generate a fresh keypair.

        Args:
            algorithm: Key family.
            parameters: RSA modulus bits, or EC curve name. None selects
                the default (2048 bits / secp256k1).
            rsa_scheme: Signature scheme for RSA keys.

        Returns:
            A new KeyMaterial.

        Raises:
            UnsupportedParameterError: For parameters outside the
                supported set.
        """
        scheme = _scheme_for(algorithm, rsa_scheme)
        private_key: PrivateKey
        if algorithm is KeyAlgorithm.RSA:
            bits = RSA_DEFAULT_BITS if parameters is None else parameters
            if (
                isinstance(bits, bool)
                or not isinstance(bits, int)
                or not RSA_MIN_BITS <= bits <= RSA_MAX_BITS
            ):
                raise UnsupportedParameterError(algorithm.value, parameters)
            private_key = rsa.generate_private_key(
                public_exponent=RSA_PUBLIC_EXPONENT, key_size=bits
            )
        else:
            curve_name = EC_DEFAULT_CURVE if parameters is None else parameters
            curve = _CURVES.get(curve_name) if isinstance(curve_name, str) else None
            if curve is None:
                raise UnsupportedParameterError(algorithm.value, parameters)
            private_key = ec.generate_private_key(curve())

        key = cls(private_key, algorithm, scheme)
        key._log.info("key_generated", parameters=parameters, scheme=scheme.value)
        return key

    @classmethod
    def import_private(
        cls,
        algorithm: KeyAlgorithm,
        data: bytes | str,
        rsa_scheme: SignatureScheme = SignatureScheme.RSA_PKCS1V15,
    ) -> KeyMaterial:
        """Import an unencrypted private key.

        Accepts PEM or DER, PKCS#8 or the traditional per-algorithm
        format.

        Args:
            algorithm: Expected key family.
            data: Encoded private key.
            rsa_scheme: Signature scheme for RSA keys.

        Raises:
            MalformedKeyError: If ``data`` is not a supported private key
                of ``algorithm``.
        """
        scheme = _scheme_for(algorithm, rsa_scheme)
        raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        if not raw:
            raise MalformedKeyError("Private key data is empty")
        try:
            if raw.lstrip().startswith(b"-----BEGIN"):
                private_key = serialization.load_pem_private_key(raw, password=None)
            else:
                private_key = serialization.load_der_private_key(raw, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm):
            # Underlying messages can echo input bytes; do not chain them
            raise MalformedKeyError(
                f"Data is not a valid unencrypted {algorithm.value} private key"
            ) from None
        _check_supported(private_key, algorithm)

        key = cls(private_key, algorithm, scheme)  # type: ignore[arg-type]
        key._log.info("key_imported", scheme=scheme.value)
        return key

    @classmethod
    def from_document(
        cls,
        document: dict[str, Any],
        expected_algorithm: KeyAlgorithm,
        rsa_scheme: SignatureScheme = SignatureScheme.RSA_PKCS1V15,
    ) -> KeyMaterial:
        """Reimport a key document produced by export_private().

        Raises:
            MalformedKeyError: On missing fields, a type that does not
                match ``expected_algorithm`` or an invalid key.
        """
        try:
            key_type = document["type"]
            private_pem = document["pem"]["private"]
        except (KeyError, TypeError):
            raise MalformedKeyError("Key document is missing type or pem.private") from None
        if key_type != expected_algorithm.value:
            raise MalformedKeyError(
                f"Key document type {key_type!r} does not match {expected_algorithm.value!r}"
            )
        if not isinstance(private_pem, str):
            raise MalformedKeyError("Key document pem.private must be a string")
        key = cls.import_private(expected_algorithm, private_pem, rsa_scheme)

        public_pem = document["pem"].get("public")
        if public_pem is not None and public_pem != key.public_identity().to_pem():
            key.destroy()
            raise MalformedKeyError("Key document public key does not match private key")
        return key

    # --- accessors ------------------------------------------------------

    @property
    def algorithm(self) -> KeyAlgorithm:
        return self._algorithm

    @property
    def scheme(self) -> SignatureScheme:
        return self._scheme

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def public_identity(self) -> PublicIdentity:
        return self._identity

    # --- operations -----------------------------------------------------

    def _load_private(self) -> PrivateKey:
        if self._destroyed:
            raise SigningFailureError("Key material has been destroyed")
        return serialization.load_der_private_key(  # type: ignore[return-value]
            bytes(self._private_der), password=None
        )

    def sign(self, message: bytes) -> Signature:
        """Sign ``message`` with this handle's scheme.

        Raises:
            SigningFailureError: If the handle was destroyed or the
                backend cannot produce a signature.
        """
        private_key = self._load_private()
        try:
            if isinstance(private_key, rsa.RSAPrivateKey):
                value = private_key.sign(
                    message, _rsa_padding(self._scheme), hashes.SHA256()
                )
            else:
                value = private_key.sign(message, _ecdsa(private_key.curve))
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            self._log.error("signing_failed", error_type=type(e).__name__)
            raise SigningFailureError(
                f"{self._scheme.value} signing failed"
            ) from None
        finally:
            del private_key
        return Signature(scheme=self._scheme, value=value)

    @staticmethod
    def verify(message: bytes, signature: Signature, identity: PublicIdentity) -> bool:
        """Verify ``signature`` over ``message`` against ``identity``.

        Returns:
            True if valid, False for a well-formed signature that does
            not match.

        Raises:
            MalformedSignatureError: Empty signature, scheme not matching
                the identity's key family, or RSA signature length not
                equal to the modulus length.
            MalformedKeyError: If the identity is not a valid key of its
                declared family.
        """
        if not signature.value:
            raise MalformedSignatureError("Signature value is empty")
        if signature.algorithm is not identity.algorithm:
            raise MalformedSignatureError(
                f"Signature scheme {signature.scheme.value} cannot verify "
                f"a {identity.algorithm.value} key"
            )
        public_key = _load_public(identity)
        try:
            if isinstance(public_key, rsa.RSAPublicKey):
                modulus_bytes = (public_key.key_size + 7) // 8
                if len(signature.value) != modulus_bytes:
                    raise MalformedSignatureError(
                        f"RSA signature is {len(signature.value)} bytes, "
                        f"expected {modulus_bytes}"
                    )
                public_key.verify(
                    signature.value,
                    message,
                    _rsa_padding(signature.scheme),
                    hashes.SHA256(),
                )
            else:
                public_key.verify(signature.value, message, _ecdsa(public_key.curve))
        except InvalidSignature:
            return False
        return True

    # --- export and lifecycle -------------------------------------------

    def export_private(self, name: str) -> dict[str, Any]:
        """Export the key as a key document.

        The document is ``{"name", "type", "pem": {"public", "private"}}``
        with a PKCS#8 PEM private key. This is the only way private
        material leaves the handle; every call is audit-logged.

        Raises:
            SigningFailureError: If the handle was destroyed.
        """
        private_key = self._load_private()
        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("ascii")
        del private_key
        self._log.warning("private_key_exported", key_name=name)
        return {
            "name": name,
            "type": self._algorithm.value,
            "pem": {
                "public": self._identity.to_pem(),
                "private": private_pem,
            },
        }

    def clone(self) -> KeyMaterial:
        """Return an independent handle for the same key (export + reimport)."""
        document = self.export_private(name=f"clone-{self._identity.fingerprint}")
        try:
            twin = KeyMaterial.from_document(document, self._algorithm, self._scheme)
        finally:
            document["pem"]["private"] = ""
        self._log.info("key_cloned")
        return twin

    def destroy(self) -> None:
        """Overwrite the private key bytes with zeros. Idempotent."""
        if self._destroyed:
            return
        self._wipe()
        self._log.debug("key_destroyed")

    def _wipe(self) -> None:
        self._private_der[:] = bytes(len(self._private_der))
        self._destroyed = True

    def __enter__(self) -> KeyMaterial:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.destroy()

    def __del__(self) -> None:
        # No logging here; the interpreter may be shutting down
        if getattr(self, "_destroyed", True) is False:
            self._wipe()

    def __copy__(self) -> KeyMaterial:
        raise TypeError("KeyMaterial cannot be copied; use clone()")

    def __deepcopy__(self, memo: dict[int, Any]) -> KeyMaterial:
        raise TypeError("KeyMaterial cannot be copied; use clone()")

    def __reduce__(self) -> Any:
        raise TypeError("KeyMaterial cannot be pickled; use export_private()")

    def __repr__(self) -> str:
        return (
            f"KeyMaterial(algorithm={self._algorithm.value}, "
            f"scheme={self._scheme.value}, "
            f"fingerprint={self._identity.fingerprint}, "
            f"destroyed={self._destroyed})"
        )
