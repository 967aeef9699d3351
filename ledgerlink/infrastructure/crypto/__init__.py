"""Cryptographic infrastructure backed by the cryptography package."""

from ledgerlink.infrastructure.crypto.key_material import KeyMaterial
from ledgerlink.infrastructure.crypto.node_encryption import NodeEncryptionKey

__all__: list[str] = [
    "KeyMaterial",
    "NodeEncryptionKey",
]
