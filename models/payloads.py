"""Signable payloads — the closed set of trade actions a wallet authorizes.

Each variant serializes its fields in declaration order, type tag first.
That order is part of the signed bytes, so it is fixed here by the model
definition rather than by however a caller happens to build a dict.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

# Non-negative integer strings: E9-scaled amounts, salts, millisecond stamps.
IntegerString = Annotated[str, StringConstraints(pattern=r"^[0-9]+$")]


class PositionSide(str, Enum):
    """Direction of a perpetual order."""

    LONG = "LONG"
    SHORT = "SHORT"

    @classmethod
    def from_order_side(cls, side: str) -> PositionSide:
        """Map ``buy``/``sell`` (any case) to LONG/SHORT."""
        normalized = side.strip().lower()
        if normalized == "buy":
            return cls.LONG
        if normalized == "sell":
            return cls.SHORT
        raise ValueError(f"side must be 'buy' or 'sell', got {side!r}")


class PositionType(str, Enum):
    """Margin mode of the position an order opens."""

    ISOLATED = "ISOLATED"
    CROSS = "CROSS"


class SignablePayload(BaseModel):
    """Base for every signable variant."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    def signable_fields(self) -> dict[str, Any]:
        """Wire-named fields in signing order."""
        return self.model_dump(by_alias=True, mode="json")


class OrderPayload(SignablePayload):
    """Order placement."""

    type: Literal["Bluefin Pro Order"] = "Bluefin Pro Order"
    ids: str = Field(..., min_length=1, description="Internal data store object id")
    account: str = Field(..., min_length=1)
    market: str = Field(..., min_length=1)
    price: IntegerString
    quantity: IntegerString
    leverage: IntegerString
    side: PositionSide
    position_type: PositionType = Field(..., alias="positionType")
    expiration: IntegerString
    salt: IntegerString
    signed_at: IntegerString = Field(..., alias="signedAt")


class LeverageAdjustmentPayload(SignablePayload):
    """Per-market leverage change."""

    type: Literal["Bluefin Pro Leverage Adjustment"] = "Bluefin Pro Leverage Adjustment"
    ids: str = Field(..., min_length=1)
    account: str = Field(..., min_length=1)
    market: str = Field(..., min_length=1)
    leverage: IntegerString
    salt: IntegerString
    signed_at: IntegerString = Field(..., alias="signedAt")


class MarginAdjustmentPayload(SignablePayload):
    """Add or remove isolated margin."""

    type: Literal["Bluefin Pro Margin Adjustment"] = "Bluefin Pro Margin Adjustment"
    ids: str = Field(..., min_length=1)
    account: str = Field(..., min_length=1)
    market: str = Field(..., min_length=1)
    add: bool
    amount: IntegerString
    salt: IntegerString
    signed_at: IntegerString = Field(..., alias="signedAt")


class WithdrawalPayload(SignablePayload):
    """Collateral withdrawal."""

    type: Literal["Bluefin Pro Withdrawal"] = "Bluefin Pro Withdrawal"
    eds: str = Field(..., min_length=1, description="External data store object id")
    asset_symbol: str = Field(..., min_length=1, alias="assetSymbol")
    account: str = Field(..., min_length=1)
    amount: IntegerString
    salt: IntegerString
    signed_at: IntegerString = Field(..., alias="signedAt")


AnySignablePayload = Union[
    OrderPayload,
    LeverageAdjustmentPayload,
    MarginAdjustmentPayload,
    WithdrawalPayload,
]

SIGNABLE_PAYLOAD_TYPES: tuple[type[SignablePayload], ...] = (
    OrderPayload,
    LeverageAdjustmentPayload,
    MarginAdjustmentPayload,
    WithdrawalPayload,
)
