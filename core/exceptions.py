"""Error taxonomy for wallet authentication and request signing.

Every error here is fatal for the call that raised it and is surfaced
to the immediate caller.  Messages never embed key material or tokens.
"""

from __future__ import annotations


class WalletAuthError(Exception):
    """Base class for all signing / session errors."""


class UnsupportedFieldType(WalletAuthError, TypeError):
    """A payload field holds a value the canonical encoder cannot render."""

    def __init__(self, field: str, value_type: type) -> None:
        self.field = field
        self.value_type = value_type
        super().__init__(
            f"field {field!r} has unsupported type {value_type.__name__}"
        )


class AuthenticationError(WalletAuthError):
    """Login or refresh failed at the transport or response level."""


class MalformedKeyMaterial(WalletAuthError, ValueError):
    """The private key is not a valid 32-byte Ed25519 seed."""
