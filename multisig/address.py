"""
Address helpers.

Addresses are raw bytes of a fixed width (``MultisigConfig.address_len``).
Public entry points accept hex strings (with or without "0x") and bytes-like
objects; everything is normalized to immutable ``bytes`` before it reaches
the registry or ledger.
"""

from __future__ import annotations

from typing import Union

from .errors import InvalidArgument

AddressLike = Union[bytes, bytearray, memoryview, str]


def _strip_0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def to_bytes(value: AddressLike) -> bytes:
    """
    Coerce `value` to bytes.
    - If str, interpret as hex (with or without '0x'); odd-length hex is rejected.
    - If a bytes-like object, copy to immutable bytes.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        h = _strip_0x(value.strip())
        if len(h) % 2 != 0:
            raise InvalidArgument(f"hex string must have even length, got {len(h)}")
        try:
            return bytes.fromhex(h)
        except ValueError as e:
            raise InvalidArgument(f"invalid hex string: {value!r}") from e
    raise InvalidArgument(f"cannot convert type {type(value).__name__} to bytes")


def to_hex(b: Union[bytes, bytearray, memoryview]) -> str:
    """Encode bytes as 0x-prefixed lowercase hex."""
    return "0x" + bytes(b).hex()


def to_address(value: AddressLike, length: int) -> bytes:
    """Normalize `value` to an address of exactly `length` bytes."""
    b = to_bytes(value)
    if len(b) != length:
        raise InvalidArgument(
            f"address must be exactly {length} bytes, got {len(b)}",
            details={"address": b},
        )
    return b


def is_null(addr: bytes) -> bool:
    return not any(addr)


__all__ = ["AddressLike", "to_bytes", "to_hex", "to_address", "is_null"]
