"""BCS helpers — ULEB128 integers and length-prefixed byte vectors."""

from __future__ import annotations


def uleb128_encode(value: int) -> bytes:
    """Encode a non-negative integer as unsigned LEB128.

    Seven data bits per byte, least-significant group first; every byte
    except the last carries the ``0x80`` continuation bit.
    """
    if value < 0:
        raise ValueError(f"ULEB128 value must be non-negative, got {value}")

    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def uleb128_decode(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a ULEB128 integer starting at *offset*.

    Returns ``(value, next_offset)``.
    """
    value = 0
    shift = 0
    position = offset
    while True:
        if position >= len(data):
            raise ValueError("truncated ULEB128 value")
        byte = data[position]
        position += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, position
        shift += 7


def serialize_bytes(data: bytes) -> bytes:
    """BCS-encode a byte vector: ULEB128 length followed by the raw bytes."""
    return uleb128_encode(len(data)) + bytes(data)
