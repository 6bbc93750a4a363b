"""KeyMaterial — Ed25519 keypair held for the lifetime of the process.

The private seed is only reachable through ``signing_key``; ``repr`` and
error messages never include it.
"""

from __future__ import annotations

import binascii
import hashlib

from nacl.signing import SigningKey

from core.exceptions import MalformedKeyMaterial

ED25519_SEED_LENGTH = 32
ED25519_PUBLIC_KEY_LENGTH = 32

# Signature-scheme flag prepended to the public key for address derivation.
_ED25519_ADDRESS_FLAG = b"\x00"


class KeyMaterial:
    """Ed25519 private seed plus its derived public key."""

    __slots__ = ("_signing_key", "_public_key")

    def __init__(self, signing_key: SigningKey) -> None:
        self._signing_key = signing_key
        self._public_key = bytes(signing_key.verify_key)

    # ── Constructors ─────────────────────────────────────────────

    @classmethod
    def from_bytes(cls, seed: bytes) -> KeyMaterial:
        """Build from a raw 32-byte seed."""
        if not isinstance(seed, (bytes, bytearray)):
            raise MalformedKeyMaterial(
                f"private key must be bytes, got {type(seed).__name__}"
            )
        if len(seed) != ED25519_SEED_LENGTH:
            raise MalformedKeyMaterial(
                f"private key must be {ED25519_SEED_LENGTH} bytes, got {len(seed)}"
            )
        return cls(SigningKey(bytes(seed)))

    @classmethod
    def from_hex(cls, private_key_hex: str) -> KeyMaterial:
        """Build from a hex seed, with or without a ``0x`` prefix."""
        if not isinstance(private_key_hex, str):
            raise MalformedKeyMaterial(
                f"private key must be a hex string, got {type(private_key_hex).__name__}"
            )
        text = private_key_hex.strip()
        if text[:2].lower() == "0x":
            text = text[2:]
        try:
            seed = binascii.unhexlify(text)
        except (binascii.Error, ValueError):
            raise MalformedKeyMaterial("private key is not valid hex") from None
        return cls.from_bytes(seed)

    @classmethod
    def generate(cls) -> KeyMaterial:
        """Fresh random keypair."""
        return cls(SigningKey.generate())

    # ── Accessors ────────────────────────────────────────────────

    @property
    def signing_key(self) -> SigningKey:
        return self._signing_key

    @property
    def public_key(self) -> bytes:
        """Raw 32-byte Ed25519 public key."""
        return self._public_key

    @property
    def sui_address(self) -> str:
        """Sui account address: ``0x`` + hex(blake2b-256(flag || pubkey))."""
        digest = hashlib.blake2b(
            _ED25519_ADDRESS_FLAG + self._public_key, digest_size=32,
        ).digest()
        return "0x" + digest.hex()

    def __repr__(self) -> str:
        return f"KeyMaterial(public_key={self._public_key.hex()})"
