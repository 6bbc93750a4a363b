"""Bluefin auth — core package (logging, errors)."""

from .exceptions import (
    AuthenticationError,
    MalformedKeyMaterial,
    UnsupportedFieldType,
    WalletAuthError,
)

__all__ = [
    "AuthenticationError",
    "MalformedKeyMaterial",
    "UnsupportedFieldType",
    "WalletAuthError",
]
