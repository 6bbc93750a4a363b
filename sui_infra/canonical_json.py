"""Canonical JSON — the exact bytes a remote verifier rebuilds and checks.

Two layouts are produced, both keeping keys in construction order:

- ``COMPACT`` matches ``JSON.stringify(obj)``
- ``PRETTY`` matches ``JSON.stringify(obj, null, 2)``

Any value the renderer does not know how to write raises
``UnsupportedFieldType`` instead of falling back to ``str()``: a wrong
rendering still produces a valid-looking signature that only the server
would reject.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from typing import Any, Union

from core.exceptions import UnsupportedFieldType
from execution.e9_scaler import format_decimal
from models.payloads import SignablePayload

_INDENT = "  "


class CanonicalFormat(str, Enum):
    """Whitespace layout of the canonical JSON."""

    COMPACT = "compact"
    PRETTY = "pretty"


Canonicalizable = Union[SignablePayload, Mapping[str, Any]]


def render(payload: Canonicalizable, fmt: CanonicalFormat = CanonicalFormat.PRETTY) -> str:
    """Render *payload* as canonical JSON text."""
    fields = payload.signable_fields() if isinstance(payload, SignablePayload) else payload
    if not isinstance(fields, Mapping):
        raise UnsupportedFieldType("<root>", type(fields))
    return _render_object(fields, fmt, depth=0)


def encode(payload: Canonicalizable, fmt: CanonicalFormat = CanonicalFormat.PRETTY) -> bytes:
    """Canonical JSON as UTF-8 bytes, ready for signing."""
    return render(payload, fmt).encode("utf-8")


# ── Rendering ────────────────────────────────────────────────────────


def _render_object(fields: Mapping[Any, Any], fmt: CanonicalFormat, depth: int) -> str:
    if not fields:
        return "{}"

    members: list[str] = []
    for key, value in fields.items():
        if not isinstance(key, str):
            raise UnsupportedFieldType(str(key), type(key))
        rendered = _render_value(key, value, fmt, depth)
        separator = ": " if fmt is CanonicalFormat.PRETTY else ":"
        members.append(f"{_quote(key, field=key)}{separator}{rendered}")

    if fmt is CanonicalFormat.COMPACT:
        return "{" + ",".join(members) + "}"

    inner = _INDENT * (depth + 1)
    outer = _INDENT * depth
    body = (",\n" + inner).join(members)
    return "{\n" + inner + body + "\n" + outer + "}"


def _render_value(key: str, value: Any, fmt: CanonicalFormat, depth: int) -> str:
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return _quote(value, field=key)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise UnsupportedFieldType(key, type(value))
        try:
            return format_decimal(value)
        except ValueError:
            raise UnsupportedFieldType(key, type(value)) from None
    if isinstance(value, Mapping):
        return _render_object(value, fmt, depth + 1)
    raise UnsupportedFieldType(key, type(value))


def _quote(text: str, field: str) -> str:
    # lone surrogates have no UTF-8 encoding
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        raise UnsupportedFieldType(field, str) from None
    return json.dumps(text, ensure_ascii=False)
