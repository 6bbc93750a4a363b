"""Sui personal-message signing for wallet login and trade authorization.

Algorithm (``sign_personal_message``):

1. BCS-encode the message as a ULEB128 length-prefixed byte vector.
2. Prepend the 3-byte personal-message intent ``03 00 00``.
3. Hash with Blake2b, 32-byte digest.
4. Ed25519-sign the digest.
5. Assemble ``flag(0x00) || signature(64) || public_key(32)``: 97 bytes.
6. Base64 the envelope for transport.

Ed25519 is deterministic, so the same message under the same key always
yields the same envelope.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

import structlog
from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

from models.payloads import SIGNABLE_PAYLOAD_TYPES, AnySignablePayload
from sui_infra.bcs import serialize_bytes
from sui_infra.canonical_json import CanonicalFormat, encode
from sui_infra.keys import ED25519_PUBLIC_KEY_LENGTH, KeyMaterial

logger = structlog.get_logger("sui_infra.personal_message")

PERSONAL_MESSAGE_INTENT = b"\x03\x00\x00"
ED25519_SCHEME_FLAG = 0x00
ED25519_SIGNATURE_LENGTH = 64
ENVELOPE_LENGTH = 1 + ED25519_SIGNATURE_LENGTH + ED25519_PUBLIC_KEY_LENGTH

Message = Union[bytes, str]


@dataclass(frozen=True)
class SignatureEnvelope:
    """Fixed 97-byte scheme flag + signature + public key structure."""

    signature: bytes
    public_key: bytes
    scheme_flag: int = ED25519_SCHEME_FLAG

    def __post_init__(self) -> None:
        if self.scheme_flag != ED25519_SCHEME_FLAG:
            raise ValueError(f"unsupported signature scheme flag 0x{self.scheme_flag:02x}")
        if len(self.signature) != ED25519_SIGNATURE_LENGTH:
            raise ValueError(
                f"signature must be {ED25519_SIGNATURE_LENGTH} bytes, got {len(self.signature)}"
            )
        if len(self.public_key) != ED25519_PUBLIC_KEY_LENGTH:
            raise ValueError(
                f"public key must be {ED25519_PUBLIC_KEY_LENGTH} bytes, got {len(self.public_key)}"
            )

    def to_bytes(self) -> bytes:
        return bytes([self.scheme_flag]) + self.signature + self.public_key

    def to_base64(self) -> str:
        return base64.b64encode(self.to_bytes()).decode("ascii")

    @classmethod
    def from_bytes(cls, raw: bytes) -> SignatureEnvelope:
        if len(raw) != ENVELOPE_LENGTH:
            raise ValueError(f"envelope must be {ENVELOPE_LENGTH} bytes, got {len(raw)}")
        return cls(
            scheme_flag=raw[0],
            signature=bytes(raw[1:1 + ED25519_SIGNATURE_LENGTH]),
            public_key=bytes(raw[1 + ED25519_SIGNATURE_LENGTH:]),
        )

    @classmethod
    def from_base64(cls, encoded: str) -> SignatureEnvelope:
        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("envelope is not valid base64") from exc
        return cls.from_bytes(raw)


def personal_message_digest(message: Message) -> bytes:
    """Blake2b-256 over ``intent || bcs(message)``."""
    intent_message = PERSONAL_MESSAGE_INTENT + serialize_bytes(_as_bytes(message))
    return hashlib.blake2b(intent_message, digest_size=32).digest()


def sign_personal_message(message: Message, key: KeyMaterial) -> SignatureEnvelope:
    """Sign *message* as a Sui personal message."""
    digest = personal_message_digest(message)
    signed = key.signing_key.sign(digest)
    return SignatureEnvelope(signature=bytes(signed.signature), public_key=key.public_key)


def verify_personal_message(message: Message, envelope: Union[SignatureEnvelope, str]) -> bool:
    """Check *envelope* against *message* using the embedded public key."""
    if isinstance(envelope, str):
        envelope = SignatureEnvelope.from_base64(envelope)
    digest = personal_message_digest(message)
    try:
        VerifyKey(envelope.public_key).verify(digest, envelope.signature)
    except BadSignatureError:
        return False
    return True


def _as_bytes(message: Message) -> bytes:
    if isinstance(message, str):
        return message.encode("utf-8")
    return bytes(message)


# ── Signer ───────────────────────────────────────────────────────────


class MessageSigner:
    """Single audited entry point for every wallet signature.

    Parameters
    ----------
    key:
        The wallet's ``KeyMaterial``.  Owned by the signer; never logged.
    """

    def __init__(self, key: KeyMaterial) -> None:
        self._key = key

    @property
    def public_key(self) -> bytes:
        return self._key.public_key

    @property
    def address(self) -> str:
        """Sui address derived from the signing key."""
        return self._key.sui_address

    def sign_personal_message(self, message: Message) -> SignatureEnvelope:
        return sign_personal_message(message, self._key)

    def sign_login(self, fields: Mapping[str, Any]) -> str:
        """Sign the compact canonical JSON of a login request."""
        return self.sign_personal_message(encode(fields, CanonicalFormat.COMPACT)).to_base64()

    def sign_trade_request(self, payload: AnySignablePayload) -> str:
        """Sign the pretty canonical JSON of a trade payload.

        Every state-mutating trade action goes through here.

        Raises
        ------
        TypeError
            If *payload* is not one of the ``AnySignablePayload`` variants.
        """
        if not isinstance(payload, SIGNABLE_PAYLOAD_TYPES):
            raise TypeError(
                f"trade requests must be AnySignablePayload variants, got {type(payload).__name__}"
            )
        envelope = self.sign_personal_message(encode(payload, CanonicalFormat.PRETTY))
        logger.debug("signer.trade_request_signed", payload_type=payload.signable_fields()["type"])
        return envelope.to_base64()

    def __repr__(self) -> str:
        return f"MessageSigner(address={self.address})"
