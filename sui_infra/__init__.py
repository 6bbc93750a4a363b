"""Bluefin auth — sui_infra package.

Sui-native signing primitives:
- BCS length-prefix encoding
- Canonical JSON for signed payloads
- Ed25519 KeyMaterial and Sui address derivation
- Personal-message signing (MessageSigner)
"""

from .canonical_json import CanonicalFormat, encode, render
from .keys import KeyMaterial
from .personal_message import (
    ENVELOPE_LENGTH,
    PERSONAL_MESSAGE_INTENT,
    MessageSigner,
    SignatureEnvelope,
    personal_message_digest,
    sign_personal_message,
    verify_personal_message,
)

__all__ = [
    "CanonicalFormat",
    "ENVELOPE_LENGTH",
    "KeyMaterial",
    "MessageSigner",
    "PERSONAL_MESSAGE_INTENT",
    "SignatureEnvelope",
    "encode",
    "personal_message_digest",
    "render",
    "sign_personal_message",
    "verify_personal_message",
]
