"""E9 scaler — lossless conversion between natural and 10^9-scaled decimals.

Prices and quantities cross the wire as integer strings equal to the
natural value times 10^9.  Scaling here is a pure decimal-point shift on
the ``Decimal`` coefficient/exponent tuple: nothing is rounded and floats
are never accepted.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

E9_PLACES = 9

# Inputs beyond 10^±100 are rejected before any string is rendered.
MAX_ADJUSTED_EXPONENT = 100

DecimalInput = Union[str, int, Decimal]


def to_scaled(value: Optional[DecimalInput]) -> Optional[str]:
    """Convert an E9-scaled value to natural units (divide by 10^9).

    ``to_scaled("1000000000") == "1"``, ``to_scaled("500000000") == "0.5"``.
    ``None`` passes through unchanged.

    Raises
    ------
    TypeError
        If *value* is a ``float`` or another unsupported type.
    ValueError
        If *value* is not a finite decimal number.
    """
    if value is None:
        return None
    return _render(_shift(_parse(value), -E9_PLACES))


def to_natural(value: Optional[DecimalInput]) -> Optional[str]:
    """Convert natural units to the E9-scaled form (multiply by 10^9).

    ``to_natural("1") == "1000000000"``, ``to_natural("0.5") == "500000000"``.
    Inputs with more than 9 fractional digits keep every digit.
    ``None`` passes through unchanged.
    """
    if value is None:
        return None
    return _render(_shift(_parse(value), E9_PLACES))


# Wire-named aliases: "parse" an E9 field into human units, or produce one.
parse_e9 = to_scaled
to_e9 = to_natural


def format_decimal(value: DecimalInput) -> str:
    """Render *value* in canonical minimal form.

    No exponent, no leading zeros, no trailing fractional zeros, and
    negative zero collapses to ``"0"``.

    Raises
    ------
    ValueError
        If the magnitude is outside ``10^±MAX_ADJUSTED_EXPONENT``.
    """
    return _render(_parse(value))


def convert_e9_levels(levels: list[Any]) -> list[list[Optional[str]]]:
    """Convert ``[[priceE9, quantityE9], ...]`` book levels to natural units."""
    result: list[list[Optional[str]]] = []
    for level in levels:
        price = level[0] if len(level) > 0 else None
        quantity = level[1] if len(level) > 1 else None
        result.append([to_scaled(price), to_scaled(quantity)])
    return result


# ── Internal helpers ─────────────────────────────────────────────────


def _render(value: Decimal) -> str:
    sign, digits, exponent = value.as_tuple()
    coefficient = list(digits)

    while len(coefficient) > 1 and coefficient[-1] == 0:
        coefficient.pop()
        exponent += 1

    if coefficient == [0]:
        return "0"

    # format(..., "f") without a precision never rounds
    return format(Decimal((sign, tuple(coefficient), exponent)), "f")


def _parse(value: DecimalInput) -> Decimal:
    if isinstance(value, (bool, float)):
        raise TypeError(
            f"decimal value must be str, int or Decimal, got {type(value).__name__}"
        )
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, int):
        parsed = Decimal(value)
    elif isinstance(value, str):
        try:
            parsed = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"not a decimal number: {value!r}") from exc
    else:
        raise TypeError(
            f"decimal value must be str, int or Decimal, got {type(value).__name__}"
        )

    if not parsed.is_finite():
        raise ValueError(f"decimal value must be finite, got {value!r}")
    if not parsed.is_zero() and abs(parsed.adjusted()) > MAX_ADJUSTED_EXPONENT:
        raise ValueError(
            f"decimal magnitude out of range: exponent {parsed.adjusted()}, "
            f"limit is {MAX_ADJUSTED_EXPONENT}"
        )
    return parsed


def _shift(value: Decimal, places: int) -> Decimal:
    """Move the decimal point by *places* without touching the digits."""
    sign, digits, exponent = value.as_tuple()
    return Decimal((sign, digits, exponent + places))
