"""Tests for auth/session_manager.py — token lifecycle and single-flight renewal."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock

import pytest
from pydantic import SecretStr

from auth.endpoints import EndpointGroup
from auth.session_manager import SessionManager
from config.settings import settings
from core.exceptions import AuthenticationError, MalformedKeyMaterial
from models.payloads import WithdrawalPayload
from models.token_state import TokenState, TokenStatus
from sui_infra.keys import KeyMaterial
from sui_infra.personal_message import MessageSigner, verify_personal_message

TEST_PRIVATE_KEY = "0x3427d19dcf5781f0874c36c78aec22c03acda435d69efcbf249e8821793567a1"
ACCOUNT = "0x" + "ab" * 32
START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, now_ms: int = START_MS) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += int(seconds * 1000)


def _login_response(n: int = 1, **extra: Any) -> dict[str, Any]:
    return {
        "accessToken": f"access-{n}",
        "refreshToken": f"refresh-{n}",
        "accessTokenValidForSeconds": 300,
        "refreshTokenValidForSeconds": 2_592_000,
        **extra,
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def signer() -> MessageSigner:
    return MessageSigner(KeyMaterial.from_hex(TEST_PRIVATE_KEY))


@pytest.fixture
def transport() -> AsyncMock:
    t = AsyncMock()
    t.login = AsyncMock(return_value=_login_response(1))
    t.refresh = AsyncMock(return_value=_login_response(2))
    return t


@pytest.fixture
def session(signer: MessageSigner, transport: AsyncMock, clock: FakeClock) -> SessionManager:
    return SessionManager(
        signer=signer,
        transport=transport,
        account_address=ACCOUNT,
        clock=clock,
        audience="api",
        renewal_ratio=0.8,
        refresh_safety_buffer_seconds=60,
    )


def _seeded_session(
    signer: MessageSigner,
    transport: AsyncMock,
    clock: FakeClock,
    issued_seconds_ago: float,
) -> SessionManager:
    state = TokenState(
        access_token="access-0",
        refresh_token="refresh-0",
        issued_at_seconds=clock() / 1000 - issued_seconds_ago,
        access_lifetime_seconds=300,
        refresh_lifetime_seconds=2_592_000,
    )
    return SessionManager(
        signer=signer,
        transport=transport,
        account_address=ACCOUNT,
        clock=clock,
        token_state=state,
        renewal_ratio=0.8,
        refresh_safety_buffer_seconds=60,
    )


class TestGetCredential:

    @pytest.mark.asyncio
    async def test_empty_state_authenticates_once(
        self, session: SessionManager, transport: AsyncMock,
    ) -> None:
        token = await session.get_credential()
        assert token == "access-1"
        transport.login.assert_awaited_once()
        transport.refresh.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_valid_token_served_from_cache(
        self, session: SessionManager, transport: AsyncMock, clock: FakeClock,
    ) -> None:
        await session.get_credential()
        clock.advance(100)
        assert await session.get_credential() == "access-1"
        assert transport.login.await_count == 1
        transport.refresh.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expiring_token_refreshed_once(
        self, signer: MessageSigner, transport: AsyncMock, clock: FakeClock,
    ) -> None:
        session = _seeded_session(signer, transport, clock, issued_seconds_ago=250)
        assert session.status() is TokenStatus.EXPIRING

        assert await session.get_credential() == "access-2"
        transport.refresh.assert_awaited_once_with({"refreshToken": "refresh-0"})
        transport.login.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refresh_failure_falls_back_to_login(
        self, signer: MessageSigner, transport: AsyncMock, clock: FakeClock,
    ) -> None:
        transport.refresh.side_effect = AuthenticationError("PUT /auth/token/refresh failed with HTTP 401")
        session = _seeded_session(signer, transport, clock, issued_seconds_ago=250)

        assert await session.get_credential() == "access-1"
        transport.refresh.assert_awaited_once()
        transport.login.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_dead_refresh_token_goes_straight_to_login(
        self, signer: MessageSigner, transport: AsyncMock, clock: FakeClock,
    ) -> None:
        session = _seeded_session(signer, transport, clock, issued_seconds_ago=2_592_000 - 30)
        assert not session.is_refresh_token_valid()

        assert await session.get_credential() == "access-1"
        transport.refresh.assert_not_awaited()
        transport.login.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_login_failure_propagates(
        self, session: SessionManager, transport: AsyncMock,
    ) -> None:
        transport.login.side_effect = AuthenticationError("POST /auth/v2/token failed with HTTP 401")
        with pytest.raises(AuthenticationError):
            await session.get_credential()
        assert session.status() is TokenStatus.ABSENT

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_login(
        self, session: SessionManager, transport: AsyncMock,
    ) -> None:
        async def slow_login(body: dict[str, Any]) -> dict[str, Any]:
            await asyncio.sleep(0.01)
            return _login_response(1)

        transport.login.side_effect = slow_login
        tokens = await asyncio.gather(*(session.get_credential() for _ in range(10)))
        assert set(tokens) == {"access-1"}
        assert transport.login.await_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_failed_login(
        self, session: SessionManager, transport: AsyncMock,
    ) -> None:
        async def failing_login(body: dict[str, Any]) -> dict[str, Any]:
            await asyncio.sleep(0.01)
            raise AuthenticationError("POST /auth/v2/token failed with HTTP 503")

        transport.login.side_effect = failing_login
        results = await asyncio.gather(
            *(session.get_credential() for _ in range(5)), return_exceptions=True,
        )
        assert all(isinstance(r, AuthenticationError) for r in results)
        assert transport.login.await_count == 1
        assert session.status() is TokenStatus.ABSENT

    @pytest.mark.asyncio
    async def test_failed_refresh_and_login_not_repeated_for_waiters(
        self, signer: MessageSigner, transport: AsyncMock, clock: FakeClock,
    ) -> None:
        async def failing(body: dict[str, Any]) -> dict[str, Any]:
            await asyncio.sleep(0.01)
            raise AuthenticationError("rejected")

        transport.refresh.side_effect = failing
        transport.login.side_effect = failing
        session = _seeded_session(signer, transport, clock, issued_seconds_ago=250)
        results = await asyncio.gather(
            *(session.get_credential() for _ in range(4)), return_exceptions=True,
        )
        assert all(isinstance(r, AuthenticationError) for r in results)
        assert transport.refresh.await_count == 1
        assert transport.login.await_count == 1

    @pytest.mark.asyncio
    async def test_next_call_after_failure_starts_new_renewal(
        self, session: SessionManager, transport: AsyncMock,
    ) -> None:
        transport.login.side_effect = [AuthenticationError("rejected"), _login_response(3)]
        with pytest.raises(AuthenticationError):
            await session.get_credential()
        assert await session.get_credential() == "access-3"
        assert transport.login.await_count == 2

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_shared_renewal(
        self, session: SessionManager, transport: AsyncMock,
    ) -> None:
        async def slow_login(body: dict[str, Any]) -> dict[str, Any]:
            await asyncio.sleep(0.02)
            return _login_response(1)

        transport.login.side_effect = slow_login
        first = asyncio.ensure_future(session.get_credential())
        second = asyncio.ensure_future(session.get_credential())
        await asyncio.sleep(0)
        first.cancel()
        assert await second == "access-1"
        assert transport.login.await_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(
        self, signer: MessageSigner, transport: AsyncMock, clock: FakeClock,
    ) -> None:
        async def slow_refresh(body: dict[str, Any]) -> dict[str, Any]:
            await asyncio.sleep(0.01)
            return _login_response(2)

        transport.refresh.side_effect = slow_refresh
        session = _seeded_session(signer, transport, clock, issued_seconds_ago=290)
        tokens = await asyncio.gather(*(session.get_credential() for _ in range(5)))
        assert set(tokens) == {"access-2"}
        assert transport.refresh.await_count == 1
        transport.login.assert_not_awaited()


class TestAuthenticate:

    @pytest.mark.asyncio
    async def test_login_body_is_signed_compact_json(
        self, session: SessionManager, transport: AsyncMock,
    ) -> None:
        await session.authenticate()
        body = transport.login.await_args.args[0]

        assert body["accountAddress"] == ACCOUNT
        assert body["signedAtMillis"] == START_MS
        assert body["audience"] == "api"

        signed = {k: body[k] for k in ("accountAddress", "signedAtMillis", "audience")}
        message = json.dumps(signed, separators=(",", ":")).encode("utf-8")
        assert verify_personal_message(message, body["payloadSignature"])

    @pytest.mark.asyncio
    async def test_state_records_lifetimes_and_issue_time(
        self, session: SessionManager,
    ) -> None:
        await session.authenticate()
        state = session.token_state
        assert state.access_token == "access-1"
        assert state.refresh_token == "refresh-1"
        assert state.issued_at_seconds == START_MS / 1000
        assert state.access_lifetime_seconds == 300
        assert state.refresh_lifetime_seconds == 2_592_000

    @pytest.mark.asyncio
    async def test_missing_lifetimes_use_defaults(
        self, session: SessionManager, transport: AsyncMock,
    ) -> None:
        transport.login.return_value = {"accessToken": "a", "refreshToken": "r"}
        await session.authenticate()
        state = session.token_state
        assert state.access_lifetime_seconds == 300
        assert state.refresh_lifetime_seconds == 2_592_000

    @pytest.mark.asyncio
    async def test_missing_access_token_keeps_previous_state(
        self, signer: MessageSigner, transport: AsyncMock, clock: FakeClock,
    ) -> None:
        session = _seeded_session(signer, transport, clock, issued_seconds_ago=10)
        before = session.token_state
        transport.login.return_value = {"refreshToken": "r"}

        with pytest.raises(AuthenticationError, match="no accessToken"):
            await session.authenticate()
        assert session.token_state == before

    @pytest.mark.asyncio
    async def test_empty_access_token_rejected(
        self, session: SessionManager, transport: AsyncMock,
    ) -> None:
        transport.login.return_value = {"accessToken": ""}
        with pytest.raises(AuthenticationError):
            await session.authenticate()

    @pytest.mark.asyncio
    async def test_refresh_without_refresh_token_authenticates(
        self, session: SessionManager, transport: AsyncMock,
    ) -> None:
        await session.refresh()
        transport.login.assert_awaited_once()
        transport.refresh.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refresh_issue_time_is_now(
        self, signer: MessageSigner, transport: AsyncMock, clock: FakeClock,
    ) -> None:
        session = _seeded_session(signer, transport, clock, issued_seconds_ago=250)
        await session.refresh()
        assert session.token_state.issued_at_seconds == clock() / 1000
        assert session.status() is TokenStatus.VALID


class TestHeadersAndSigning:

    @pytest.mark.asyncio
    async def test_public_group_has_no_bearer(
        self, session: SessionManager, transport: AsyncMock,
    ) -> None:
        headers = await session.request_headers(EndpointGroup.EXCHANGE)
        assert "Authorization" not in headers
        transport.login.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_account_group_has_bearer(self, session: SessionManager) -> None:
        headers = await session.request_headers(EndpointGroup.ACCOUNT)
        assert headers["Authorization"] == "Bearer access-1"
        assert headers["Content-Type"] == "application/json"

    def test_sign_trade_request_delegates(self, session: SessionManager, signer: MessageSigner) -> None:
        payload = WithdrawalPayload(
            eds="eds-1", asset_symbol="USDC", account=ACCOUNT,
            amount="1000000000", salt="1", signed_at=str(START_MS),
        )
        assert session.sign_trade_request(payload) == signer.sign_trade_request(payload)

    def test_token_state_is_a_copy(self, signer: MessageSigner, transport: AsyncMock, clock: FakeClock) -> None:
        session = _seeded_session(signer, transport, clock, issued_seconds_ago=10)
        snapshot = session.token_state
        snapshot.access_token = None
        assert session.status() is TokenStatus.VALID

    def test_account_defaults_to_key_address(
        self, signer: MessageSigner, transport: AsyncMock, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(settings, "BLUEFIN_WALLET_ADDRESS", "")
        session = SessionManager(signer=signer, transport=transport)
        assert session.account_address == signer.address

    def test_account_from_settings(
        self, signer: MessageSigner, transport: AsyncMock, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(settings, "BLUEFIN_WALLET_ADDRESS", ACCOUNT)
        session = SessionManager(signer=signer, transport=transport)
        assert session.account_address == ACCOUNT


class TestFromSettings:

    @pytest.mark.asyncio
    async def test_builds_working_manager_from_private_key(
        self, transport: AsyncMock, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(settings, "BLUEFIN_PRIVATE_KEY", SecretStr(TEST_PRIVATE_KEY))
        monkeypatch.setattr(settings, "BLUEFIN_WALLET_ADDRESS", "")
        session = SessionManager.from_settings(transport=transport)

        expected = KeyMaterial.from_hex(TEST_PRIVATE_KEY).sui_address
        assert session.account_address == expected
        assert await session.get_credential() == "access-1"

        body = transport.login.await_args.args[0]
        signed = {k: body[k] for k in ("accountAddress", "signedAtMillis", "audience")}
        message = json.dumps(signed, separators=(",", ":")).encode("utf-8")
        assert verify_personal_message(message, body["payloadSignature"])

    def test_empty_private_key(
        self, transport: AsyncMock, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(settings, "BLUEFIN_PRIVATE_KEY", SecretStr(""))
        with pytest.raises(MalformedKeyMaterial):
            SessionManager.from_settings(transport=transport)

    def test_malformed_private_key(
        self, transport: AsyncMock, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(settings, "BLUEFIN_PRIVATE_KEY", SecretStr("0xnothex"))
        with pytest.raises(MalformedKeyMaterial) as excinfo:
            SessionManager.from_settings(transport=transport)
        assert "nothex" not in str(excinfo.value)
