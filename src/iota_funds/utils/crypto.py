"""Hashing helpers."""

from __future__ import annotations

import hashlib


def blake2b256(data: bytes) -> bytes:
    """BLAKE2b with a 32-byte digest, the ledger's hash function."""
    return hashlib.blake2b(data, digest_size=32).digest()


def hex_to_bytes(value: str) -> bytes:
    """Decode a ``0x``-prefixed (or bare) hex string.

    Raises:
        TypeError: If *value* is not a string.
        ValueError: If *value* is not valid hex.
    """
    if not isinstance(value, str):
        msg = f"expected a hex string, got {type(value).__name__}"
        raise TypeError(msg)
    if value.startswith(("0x", "0X")):
        value = value[2:]
    return bytes.fromhex(value)


def bytes_to_hex(value: bytes) -> str:
    """Encode bytes as a ``0x``-prefixed lower-case hex string."""
    return "0x" + value.hex()
