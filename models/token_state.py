"""TokenState — bearer/refresh token pair and its derived lifecycle status.

The status is never stored: it is recomputed from the timestamps and the
current time on every call, so there is no state to drift out of sync.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

DEFAULT_ACCESS_LIFETIME_SECONDS = 300.0
DEFAULT_REFRESH_LIFETIME_SECONDS = 2_592_000.0

# Renew once 80% of the access lifetime has elapsed.
ACCESS_RENEWAL_RATIO = 0.8
# Treat the refresh token as dead this many seconds before its hard expiry.
REFRESH_SAFETY_BUFFER_SECONDS = 60.0


class TokenStatus(str, Enum):
    """Lifecycle status of the access token."""

    ABSENT = "ABSENT"
    VALID = "VALID"
    EXPIRING = "EXPIRING"    # past the renewal threshold, not yet expired
    EXPIRED = "EXPIRED"

    @property
    def needs_renewal(self) -> bool:
        return self is not TokenStatus.VALID


@dataclass
class TokenState:
    """Credential state owned by a single SessionManager.

    Tokens are excluded from ``repr`` so the state can be logged safely.
    """

    access_token: Optional[str] = field(default=None, repr=False)
    refresh_token: Optional[str] = field(default=None, repr=False)
    issued_at_seconds: float = 0.0
    access_lifetime_seconds: float = DEFAULT_ACCESS_LIFETIME_SECONDS
    refresh_lifetime_seconds: float = DEFAULT_REFRESH_LIFETIME_SECONDS

    @property
    def has_access_token(self) -> bool:
        return bool(self.access_token)

    @property
    def has_refresh_token(self) -> bool:
        return bool(self.refresh_token)

    def status(
        self,
        now_seconds: float,
        renewal_ratio: float = ACCESS_RENEWAL_RATIO,
    ) -> TokenStatus:
        """Derive the access-token status at *now_seconds*."""
        if not self.has_access_token:
            return TokenStatus.ABSENT
        if now_seconds >= self.issued_at_seconds + self.access_lifetime_seconds:
            return TokenStatus.EXPIRED
        if now_seconds >= self.issued_at_seconds + self.access_lifetime_seconds * renewal_ratio:
            return TokenStatus.EXPIRING
        return TokenStatus.VALID

    def is_access_token_expired(
        self,
        now_seconds: float,
        renewal_ratio: float = ACCESS_RENEWAL_RATIO,
    ) -> bool:
        """True when the access token is absent or due for renewal."""
        return self.status(now_seconds, renewal_ratio).needs_renewal

    def is_refresh_token_valid(
        self,
        now_seconds: float,
        safety_buffer_seconds: float = REFRESH_SAFETY_BUFFER_SECONDS,
    ) -> bool:
        """True when a refresh token exists and is outside the safety buffer."""
        if not self.has_refresh_token:
            return False
        deadline = self.issued_at_seconds + self.refresh_lifetime_seconds - safety_buffer_seconds
        return now_seconds < deadline

    def overwrite(self, other: TokenState) -> None:
        """Replace every field with *other*'s in one synchronous step."""
        self.access_token = other.access_token
        self.refresh_token = other.refresh_token
        self.issued_at_seconds = other.issued_at_seconds
        self.access_lifetime_seconds = other.access_lifetime_seconds
        self.refresh_lifetime_seconds = other.refresh_lifetime_seconds

    def copy(self) -> TokenState:
        return dataclasses.replace(self)
