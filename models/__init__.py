"""Bluefin auth — models package."""

from .payloads import (
    SIGNABLE_PAYLOAD_TYPES,
    AnySignablePayload,
    LeverageAdjustmentPayload,
    MarginAdjustmentPayload,
    OrderPayload,
    PositionSide,
    PositionType,
    SignablePayload,
    WithdrawalPayload,
)
from .token_state import TokenState, TokenStatus

__all__ = [
    "AnySignablePayload",
    "LeverageAdjustmentPayload",
    "MarginAdjustmentPayload",
    "OrderPayload",
    "PositionSide",
    "PositionType",
    "SIGNABLE_PAYLOAD_TYPES",
    "SignablePayload",
    "TokenState",
    "TokenStatus",
    "WithdrawalPayload",
]
