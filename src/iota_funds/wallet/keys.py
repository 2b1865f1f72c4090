"""Private keys — Base58 decoding, Ed25519 signing, first-address derivation.

A private key here is a 32-byte Ed25519 seed, Base58 encoded without a
checksum. Each key controls exactly one address: the BLAKE2b-256 hash of
its public key.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ecdsa import Ed25519, SigningKey

from iota_funds.errors.wallet_errors import KeyDecodeError
from iota_funds.ledger.models import Address
from iota_funds.utils.crypto import blake2b256

if TYPE_CHECKING:
    from collections.abc import Iterable

PRIVATE_KEY_LENGTH = 32

# ---------------------------------------------------------------------------
# Base58 encoding / decoding
# ---------------------------------------------------------------------------

_B58_ALPHABET = b"123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def base58_encode(payload: bytes) -> str:
    """Encode raw bytes to Base58 (no checksum)."""
    n = int.from_bytes(payload, "big")
    result: list[int] = []
    while n > 0:
        n, remainder = divmod(n, 58)
        result.append(_B58_ALPHABET[remainder])
    # Preserve leading zero bytes
    for byte in payload:
        if byte == 0:
            result.append(_B58_ALPHABET[0])
        else:
            break
    return bytes(reversed(result)).decode("ascii")


def base58_decode(s: str) -> bytes:
    """Decode a Base58 string to raw bytes (no checksum).

    Raises:
        ValueError: On characters outside the Base58 alphabet.
    """
    n = 0
    for char in s:
        index = _B58_ALPHABET.find(char.encode("ascii", errors="replace"))
        if index < 0:
            msg = f"invalid Base58 character {char!r}"
            raise ValueError(msg)
        n = n * 58 + index
    result = n.to_bytes((n.bit_length() + 7) // 8, "big") if n > 0 else b""
    # Leading '1' chars are 0x00 bytes
    pad_count = len(s) - len(s.lstrip("1"))
    return b"\x00" * pad_count + result


# ---------------------------------------------------------------------------
# Signer
# ---------------------------------------------------------------------------


class PrivateKeySigner:
    """An Ed25519 private key able to derive its address and sign essences."""

    def __init__(self, seed: bytes) -> None:
        if len(seed) != PRIVATE_KEY_LENGTH:
            msg = f"private key must be {PRIVATE_KEY_LENGTH} bytes, got {len(seed)}"
            raise KeyDecodeError(msg)
        self._key = SigningKey.from_string(seed, curve=Ed25519)
        self._public_key = self._key.get_verifying_key().to_string()

    @classmethod
    def from_b58(cls, text: str) -> PrivateKeySigner:
        """Decode a Base58 encoded private key.

        Raises:
            KeyDecodeError: If *text* is not Base58 or not 32 bytes long.
        """
        try:
            seed = base58_decode(text.strip())
        except ValueError as exc:
            raise KeyDecodeError(str(exc)) from exc
        return cls(seed)

    @property
    def public_key(self) -> bytes:
        """The 32-byte Ed25519 public key."""
        return self._public_key

    def derive_first_address(self) -> Address:
        """The key's address at account index 0, address index 0."""
        return Address.ed25519(blake2b256(self._public_key))

    def sign(self, message: bytes) -> bytes:
        """Return the 64-byte Ed25519 signature of *message*."""
        return self._key.sign(message)

    def __repr__(self) -> str:
        return f"PrivateKeySigner(public_key={self._public_key.hex()})"


def decode_private_keys(keys: Iterable[str]) -> list[PrivateKeySigner]:
    """Decode every key up front; the first bad one aborts with its position.

    Raises:
        KeyDecodeError: Naming the zero-based index of the offending key.
    """
    signers = []
    for index, key in enumerate(keys):
        try:
            signers.append(PrivateKeySigner.from_b58(key))
        except KeyDecodeError as exc:
            raise KeyDecodeError(f"private key #{index} is invalid: {exc.message}") from exc
    if not signers:
        msg = "no private keys given"
        raise KeyDecodeError(msg)
    return signers
