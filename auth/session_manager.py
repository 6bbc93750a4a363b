"""SessionManager — bearer-credential lifecycle for a single wallet.

Token status is derived from ``TokenState`` and the clock on every call:

- ``ABSENT``   no access token → full authentication
- ``VALID``    before 80% of the access lifetime → cached token
- ``EXPIRING`` / ``EXPIRED`` → refresh when the refresh token is still
  valid (falling back to authentication once if refresh fails),
  otherwise authenticate directly

At most one renewal is in flight.  ``get_credential`` callers that find a
renewal running await that same task and receive its token or its
``AuthenticationError``; a failed renewal is not retried for them.  The
task is dropped once it settles, so the next call starts afresh.
Forced ``authenticate`` / ``refresh`` calls share an ``asyncio.Lock``
with it.  New tokens only replace the old ones after the response is
validated.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Optional

import structlog

from auth.endpoints import EndpointGroup
from auth.transport import AuthTransport, HttpAuthTransport
from config.settings import settings
from core.exceptions import AuthenticationError
from models.payloads import AnySignablePayload
from models.token_state import TokenState, TokenStatus
from sui_infra.keys import KeyMaterial
from sui_infra.personal_message import MessageSigner

logger = structlog.get_logger("auth.session_manager")

Clock = Callable[[], int]


def _now_ms() -> int:
    return int(time.time() * 1000)


class SessionManager:
    """Owns the ``TokenState`` and hands out valid bearer credentials.

    Parameters
    ----------
    signer:
        ``MessageSigner`` holding the wallet key.
    transport:
        ``AuthTransport`` delivering login / refresh requests.
    account_address:
        Wallet address sent at login.  Defaults to
        ``BLUEFIN_WALLET_ADDRESS``, then to the key's Sui address.
    clock:
        Returns milliseconds since the epoch.
    token_state:
        Initial state.  Defaults to an empty one (authenticate on first use).
    audience:
        Login audience claim.  Defaults to ``AUTH_AUDIENCE``.
    renewal_ratio:
        Fraction of the access lifetime after which the token is renewed.
    refresh_safety_buffer_seconds:
        Seconds before hard expiry at which the refresh token stops counting.
    """

    def __init__(
        self,
        signer: MessageSigner,
        transport: AuthTransport,
        account_address: Optional[str] = None,
        clock: Optional[Clock] = None,
        token_state: Optional[TokenState] = None,
        audience: Optional[str] = None,
        renewal_ratio: Optional[float] = None,
        refresh_safety_buffer_seconds: Optional[float] = None,
    ) -> None:
        self._signer = signer
        self._transport = transport
        self._account_address = (
            account_address or settings.BLUEFIN_WALLET_ADDRESS or signer.address
        )
        self._clock = clock or _now_ms
        self._state = token_state if token_state is not None else TokenState()
        self._audience = audience or settings.AUTH_AUDIENCE
        self._renewal_ratio = (
            renewal_ratio if renewal_ratio is not None else settings.ACCESS_RENEWAL_RATIO
        )
        self._refresh_buffer = (
            refresh_safety_buffer_seconds
            if refresh_safety_buffer_seconds is not None
            else settings.REFRESH_SAFETY_BUFFER_SECONDS
        )
        self._lock = asyncio.Lock()
        self._renewal: Optional[asyncio.Task[str]] = None

    @classmethod
    def from_settings(cls, transport: Optional[AuthTransport] = None) -> SessionManager:
        """Build a manager from ``BLUEFIN_PRIVATE_KEY`` and friends."""
        key = KeyMaterial.from_hex(settings.BLUEFIN_PRIVATE_KEY.get_secret_value())
        return cls(
            signer=MessageSigner(key),
            transport=transport or HttpAuthTransport(),
        )

    # ── Properties ───────────────────────────────────────────────

    @property
    def account_address(self) -> str:
        return self._account_address

    @property
    def token_state(self) -> TokenState:
        """Copy of the current state; mutating it has no effect."""
        return self._state.copy()

    # ── Status ───────────────────────────────────────────────────

    def _now_seconds(self) -> float:
        return self._clock() / 1000

    def status(self) -> TokenStatus:
        return self._state.status(self._now_seconds(), self._renewal_ratio)

    def is_access_token_expired(self) -> bool:
        """True when there is no access token or it is due for renewal."""
        return self._state.is_access_token_expired(self._now_seconds(), self._renewal_ratio)

    def is_refresh_token_valid(self) -> bool:
        return self._state.is_refresh_token_valid(self._now_seconds(), self._refresh_buffer)

    # ── Public API ───────────────────────────────────────────────

    async def get_credential(self) -> str:
        """Return a bearer token, authenticating or refreshing as needed.

        Raises
        ------
        AuthenticationError
            If no credential could be obtained.
        """
        if self.status() is TokenStatus.VALID:
            logger.debug("session.credential_cached")
            return self._current_token()

        if self._renewal is None:
            self._renewal = asyncio.create_task(self._renew())
        else:
            logger.debug("session.renewal_joined")
        # cancelling one caller leaves the shared renewal running
        return await asyncio.shield(self._renewal)

    async def authenticate(self) -> dict[str, Any]:
        """Force a full signed login.  Returns the raw response."""
        async with self._lock:
            return await self._authenticate()

    async def refresh(self) -> dict[str, Any]:
        """Force a token refresh (or a login when no refresh token is held)."""
        async with self._lock:
            return await self._refresh()

    async def request_headers(self, group: EndpointGroup) -> dict[str, str]:
        """Headers for a request to *group*, with a bearer token if required."""
        headers = {"Content-Type": "application/json"}
        if group.requires_bearer:
            headers["Authorization"] = f"Bearer {await self.get_credential()}"
        return headers

    def sign_trade_request(self, payload: AnySignablePayload) -> str:
        return self._signer.sign_trade_request(payload)

    # ── Internal: shared renewal ─────────────────────────────────

    async def _renew(self) -> str:
        """One shared renewal; its token or error goes to every waiter."""
        try:
            async with self._lock:
                status = self.status()
                if status is TokenStatus.VALID:
                    # renewed by a forced authenticate/refresh while we waited
                    return self._current_token()

                if status is TokenStatus.ABSENT:
                    await self._authenticate()
                elif self.is_refresh_token_valid():
                    try:
                        await self._refresh()
                    except AuthenticationError as exc:
                        logger.warning("session.refresh_failed", error=str(exc), fallback="authenticate")
                        await self._authenticate()
                else:
                    await self._authenticate()

                return self._current_token()
        finally:
            self._renewal = None

    # ── Internal: login / refresh (caller holds the lock) ───────

    async def _authenticate(self) -> dict[str, Any]:
        now_ms = self._clock()
        login_request: dict[str, Any] = {
            "accountAddress": self._account_address,
            "signedAtMillis": now_ms,
            "audience": self._audience,
        }
        body = {
            **login_request,
            "payloadSignature": self._signer.sign_login(login_request),
        }

        logger.info("session.authenticating", account=self._account_address)
        response = await self._transport.login(body)

        self._state.overwrite(
            self._state_from_response(response, now_ms / 1000, operation="authenticate")
        )
        logger.info(
            "session.authenticated",
            account=self._account_address,
            access_lifetime_seconds=self._state.access_lifetime_seconds,
            refresh_lifetime_seconds=self._state.refresh_lifetime_seconds,
        )
        return response

    async def _refresh(self) -> dict[str, Any]:
        refresh_token = self._state.refresh_token
        if not refresh_token:
            return await self._authenticate()

        response = await self._transport.refresh({"refreshToken": refresh_token})

        self._state.overwrite(
            self._state_from_response(response, self._now_seconds(), operation="refresh")
        )
        logger.info(
            "session.refreshed",
            access_lifetime_seconds=self._state.access_lifetime_seconds,
        )
        return response

    def _state_from_response(
        self,
        response: dict[str, Any],
        issued_at_seconds: float,
        operation: str,
    ) -> TokenState:
        access_token = response.get("accessToken")
        if not isinstance(access_token, str) or not access_token:
            raise AuthenticationError(f"{operation} failed: no accessToken in response")

        refresh_token = response.get("refreshToken")
        if not isinstance(refresh_token, str) or not refresh_token:
            refresh_token = None

        return TokenState(
            access_token=access_token,
            refresh_token=refresh_token,
            issued_at_seconds=issued_at_seconds,
            access_lifetime_seconds=_lifetime(
                response, "accessTokenValidForSeconds", settings.ACCESS_TOKEN_LIFETIME_SECONDS,
            ),
            refresh_lifetime_seconds=_lifetime(
                response, "refreshTokenValidForSeconds", settings.REFRESH_TOKEN_LIFETIME_SECONDS,
            ),
        )

    def _current_token(self) -> str:
        token = self._state.access_token
        if not token:
            raise AuthenticationError("no access token available")
        return token


def _lifetime(response: dict[str, Any], key: str, default: float) -> float:
    value = response.get(key)
    if value is None or isinstance(value, bool):
        return float(default)
    try:
        return float(value)
    except (TypeError, ValueError):
        return float(default)
