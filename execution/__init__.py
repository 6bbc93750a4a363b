"""Bluefin auth — execution package."""

from .e9_scaler import (
    convert_e9_levels,
    format_decimal,
    parse_e9,
    to_e9,
    to_natural,
    to_scaled,
)

__all__ = [
    "convert_e9_levels",
    "format_decimal",
    "parse_e9",
    "to_e9",
    "to_natural",
    "to_scaled",
]
