"""Auth transport — the network boundary for login and token refresh.

The session manager only defines request bodies and interprets responses;
delivering them is the transport's job.  Any transport-level failure is
reported as ``AuthenticationError`` and never retried here.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

import httpx
import structlog

from auth.endpoints import LOGIN_PATH, REFRESH_PATH, EndpointGroup, base_url
from config.settings import settings
from core.exceptions import AuthenticationError

logger = structlog.get_logger("auth.transport")


class AuthTransport(Protocol):
    """What the session manager needs from the network."""

    async def login(self, body: dict[str, Any]) -> dict[str, Any]:
        ...

    async def refresh(self, body: dict[str, Any]) -> dict[str, Any]:
        ...


class HttpAuthTransport:
    """httpx-backed ``AuthTransport``.

    Parameters
    ----------
    base_url:
        Auth host.  Defaults to ``BLUEFIN_AUTH_URL`` or the production /
        staging host selected by ``BLUEFIN_SANDBOX``.
    timeout:
        Per-request timeout in seconds.
    client:
        Pre-built ``httpx.AsyncClient`` (tests inject a ``MockTransport``
        here).  A client passed in is not closed by ``close()``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = (base_url or _default_auth_url()).rstrip("/")
        self._timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self._client = client
        self._owns_client = client is None

    @property
    def base_url(self) -> str:
        return self._base_url

    # ── Lifecycle ────────────────────────────────────────────────

    async def start(self) -> None:
        """Open the HTTP client.  Idempotent."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
            self._owns_client = True
            logger.info("auth_transport.started", base_url=self._base_url)

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
            logger.info("auth_transport.closed")

    async def __aenter__(self) -> HttpAuthTransport:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # ── AuthTransport ────────────────────────────────────────────

    async def login(self, body: dict[str, Any]) -> dict[str, Any]:
        return await self._send("POST", LOGIN_PATH, body)

    async def refresh(self, body: dict[str, Any]) -> dict[str, Any]:
        return await self._send("PUT", REFRESH_PATH, body)

    async def _send(self, method: str, path: str, body: dict[str, Any]) -> dict[str, Any]:
        if self._client is None:
            await self.start()
        assert self._client is not None

        url = f"{self._base_url}{path}"
        try:
            resp = await self._client.request(
                method, url, json=body, headers={"Content-Type": "application/json"},
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "auth_transport.rejected",
                path=path,
                status_code=exc.response.status_code,
            )
            raise AuthenticationError(
                f"{method} {path} failed with HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("auth_transport.failed", path=path, error=type(exc).__name__)
            raise AuthenticationError(f"{method} {path} failed: {type(exc).__name__}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise AuthenticationError(f"{method} {path} returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise AuthenticationError(f"{method} {path} returned {type(data).__name__}, expected an object")
        return data


def _default_auth_url() -> str:
    if settings.BLUEFIN_AUTH_URL:
        return settings.BLUEFIN_AUTH_URL
    return base_url(EndpointGroup.AUTH, sandbox=settings.BLUEFIN_SANDBOX)
