"""TradeRequestBuilder — signed request bodies for state-mutating trade calls.

Each builder converts natural-unit amounts to E9 strings, assembles the
matching ``SignablePayload`` variant, signs it through
``MessageSigner.sign_trade_request`` and returns the JSON body the
connector posts.  Transport and routing stay with the connector.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Iterable, Optional

import structlog

from config.settings import settings
from execution.e9_scaler import DecimalInput, to_e9
from models.payloads import (
    LeverageAdjustmentPayload,
    MarginAdjustmentPayload,
    OrderPayload,
    PositionSide,
    PositionType,
    WithdrawalPayload,
)
from sui_infra.personal_message import MessageSigner

logger = structlog.get_logger("execution.trade_requests")


def _now_ms() -> int:
    return int(time.time() * 1000)


def _microsecond_salt() -> str:
    return str(time.time_ns() // 1000)


class TradeRequestBuilder:
    """Builds signed trade request bodies for one wallet.

    Parameters
    ----------
    signer:
        ``MessageSigner`` for the wallet.
    account_address:
        Wallet address placed in payloads.  Defaults to the signer's address.
    clock:
        Returns milliseconds since the epoch.
    salt_factory:
        Returns a fresh numeric salt string per request.
    order_expiration_ms:
        Default order lifetime.  Defaults to ``ORDER_EXPIRATION_MS``.
    """

    def __init__(
        self,
        signer: MessageSigner,
        account_address: Optional[str] = None,
        clock: Optional[Callable[[], int]] = None,
        salt_factory: Optional[Callable[[], str]] = None,
        order_expiration_ms: Optional[int] = None,
    ) -> None:
        self._signer = signer
        self._account = account_address or signer.address
        self._clock = clock or _now_ms
        self._salt = salt_factory or _microsecond_salt
        self._order_expiration_ms = order_expiration_ms or settings.ORDER_EXPIRATION_MS

    # ── Orders ───────────────────────────────────────────────────

    def create_order(
        self,
        ids_id: str,
        market: str,
        side: str,
        quantity: DecimalInput,
        price: Optional[DecimalInput] = None,
        leverage: DecimalInput = "1",
        is_isolated: bool = False,
        order_type: str = "LIMIT",
        reduce_only: bool = False,
        post_only: bool = False,
        time_in_force: Optional[str] = None,
        client_order_id: Optional[str] = None,
        expires_at_ms: Optional[int] = None,
    ) -> dict[str, Any]:
        """Signed body for a new order.

        *price* and *quantity* are natural units; a market order omits
        *price* and signs ``0``.
        """
        now = self._clock()
        position_side = PositionSide.from_order_side(side)
        price_e9 = to_e9(price if price is not None else "0")
        quantity_e9 = to_e9(quantity)
        leverage_e9 = to_e9(leverage)
        expiration = expires_at_ms if expires_at_ms is not None else now + self._order_expiration_ms
        salt = self._salt()

        payload = OrderPayload(
            ids=ids_id,
            account=self._account,
            market=market,
            price=price_e9,
            quantity=quantity_e9,
            leverage=leverage_e9,
            side=position_side,
            position_type=PositionType.ISOLATED if is_isolated else PositionType.CROSS,
            expiration=str(expiration),
            salt=salt,
            signed_at=str(now),
        )

        request: dict[str, Any] = {
            "signedFields": {
                "symbol": market,
                "accountAddress": self._account,
                "priceE9": price_e9,
                "quantityE9": quantity_e9,
                "side": position_side.value,
                "leverageE9": leverage_e9,
                "isIsolated": is_isolated,
                "salt": salt,
                "idsId": ids_id,
                "expiresAtMillis": expiration,
                "signedAtMillis": now,
            },
            "signature": self._signer.sign_trade_request(payload),
            "type": order_type.upper(),
            "reduceOnly": reduce_only,
        }
        if post_only:
            request["postOnly"] = True
        if time_in_force is not None:
            request["timeInForce"] = time_in_force
        if client_order_id is not None:
            request["clientOrderId"] = client_order_id

        logger.info(
            "trade_request.order",
            market=market,
            side=position_side.value,
            order_type=request["type"],
        )
        return request

    def cancel_orders(
        self, order_hashes: Iterable[str], symbol: Optional[str] = None,
    ) -> dict[str, Any]:
        """Body for cancelling orders.  Bearer-only: no payload signature."""
        hashes = list(order_hashes)
        if not hashes:
            raise ValueError("cancel_orders requires at least one order hash")
        request: dict[str, Any] = {"orderHashes": hashes}
        if symbol is not None:
            request["symbol"] = symbol
        return request

    # ── Account adjustments ──────────────────────────────────────

    def adjust_leverage(self, ids_id: str, market: str, leverage: DecimalInput) -> dict[str, Any]:
        now = self._clock()
        leverage_e9 = to_e9(leverage)
        salt = self._salt()

        payload = LeverageAdjustmentPayload(
            ids=ids_id,
            account=self._account,
            market=market,
            leverage=leverage_e9,
            salt=salt,
            signed_at=str(now),
        )
        return {
            "signedFields": {
                "accountAddress": self._account,
                "symbol": market,
                "leverageE9": leverage_e9,
                "salt": salt,
                "idsId": ids_id,
                "signedAtMillis": now,
            },
            "signature": self._signer.sign_trade_request(payload),
        }

    def adjust_margin(
        self, ids_id: str, market: str, amount: DecimalInput, add: bool,
    ) -> dict[str, Any]:
        """Add (``add=True``) or remove isolated margin."""
        now = self._clock()
        amount_e9 = to_e9(amount)
        salt = self._salt()

        payload = MarginAdjustmentPayload(
            ids=ids_id,
            account=self._account,
            market=market,
            add=add,
            amount=amount_e9,
            salt=salt,
            signed_at=str(now),
        )
        return {
            "signedFields": {
                "idsId": ids_id,
                "accountAddress": self._account,
                "symbol": market,
                "operation": "Add" if add else "Remove",
                "quantityE9": amount_e9,
                "salt": salt,
                "signedAtMillis": now,
            },
            "signature": self._signer.sign_trade_request(payload),
        }

    def withdraw(self, eds_id: str, asset_symbol: str, amount: DecimalInput) -> dict[str, Any]:
        now = self._clock()
        amount_e9 = to_e9(amount)
        salt = self._salt()

        payload = WithdrawalPayload(
            eds=eds_id,
            asset_symbol=asset_symbol,
            account=self._account,
            amount=amount_e9,
            salt=salt,
            signed_at=str(now),
        )
        logger.info("trade_request.withdraw", asset=asset_symbol)
        return {
            "signedFields": {
                "assetSymbol": asset_symbol,
                "accountAddress": self._account,
                "amountE9": amount_e9,
                "salt": salt,
                "edsId": eds_id,
                "signedAtMillis": now,
            },
            "signature": self._signer.sign_trade_request(payload),
        }
