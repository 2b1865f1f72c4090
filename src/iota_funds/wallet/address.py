"""Address encoding — bech32 (BIP-173) human readable addresses.

A bech32 address is ``<hrp>1<data><checksum>`` where the data part holds
the address kind byte followed by its 32-byte payload. The hrp names the
network (``iota``, ``smr``, ``atoi``, ``rms``).
"""

from __future__ import annotations

from iota_funds.errors.wallet_errors import AddressDecodeError
from iota_funds.ledger.models import Address, AddressKind

_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_GENERATOR = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)
_MAX_LENGTH = 90


def _polymod(values: list[int]) -> int:
    chk = 1
    for value in values:
        top = chk >> 25
        chk = (chk & 0x1FFFFFF) << 5 ^ value
        for i, gen in enumerate(_GENERATOR):
            if (top >> i) & 1:
                chk ^= gen
    return chk


def _hrp_expand(hrp: str) -> list[int]:
    return [ord(c) >> 5 for c in hrp] + [0] + [ord(c) & 31 for c in hrp]


def _create_checksum(hrp: str, data: list[int]) -> list[int]:
    polymod = _polymod(_hrp_expand(hrp) + data + [0] * 6) ^ 1
    return [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]


def convert_bits(data: bytes | list[int], from_bits: int, to_bits: int, *, pad: bool) -> list[int]:
    """Regroup *data* from *from_bits*-wide to *to_bits*-wide integers.

    Raises:
        ValueError: On out-of-range values or invalid padding.
    """
    acc = 0
    bits = 0
    result: list[int] = []
    max_value = (1 << to_bits) - 1
    for value in data:
        if value < 0 or value >> from_bits:
            msg = f"value {value} out of range for {from_bits} bits"
            raise ValueError(msg)
        acc = (acc << from_bits) | value
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            result.append((acc >> bits) & max_value)
    if pad:
        if bits:
            result.append((acc << (to_bits - bits)) & max_value)
    elif bits >= from_bits or ((acc << (to_bits - bits)) & max_value):
        msg = "invalid padding"
        raise ValueError(msg)
    return result


def bech32_encode(hrp: str, data: list[int]) -> str:
    """Encode 5-bit *data* under *hrp*."""
    combined = data + _create_checksum(hrp, data)
    return hrp + "1" + "".join(_CHARSET[d] for d in combined)


def bech32_decode(text: str) -> tuple[str, list[int]]:
    """Decode a bech32 string into (hrp, 5-bit data without checksum).

    Raises:
        ValueError: If the string is malformed or the checksum does not verify.
    """
    if text.lower() != text and text.upper() != text:
        msg = "mixed case bech32 string"
        raise ValueError(msg)
    text = text.lower()
    if len(text) > _MAX_LENGTH:
        msg = f"bech32 string longer than {_MAX_LENGTH} characters"
        raise ValueError(msg)
    pos = text.rfind("1")
    if pos < 1 or pos + 7 > len(text):
        msg = "missing bech32 separator or checksum"
        raise ValueError(msg)
    hrp = text[:pos]
    if any(ord(c) < 33 or ord(c) > 126 for c in hrp):
        msg = "invalid character in bech32 hrp"
        raise ValueError(msg)
    data = []
    for char in text[pos + 1 :]:
        index = _CHARSET.find(char)
        if index < 0:
            msg = f"invalid bech32 character {char!r}"
            raise ValueError(msg)
        data.append(index)
    if _polymod(_hrp_expand(hrp) + data) != 1:
        msg = "bech32 checksum mismatch"
        raise ValueError(msg)
    return hrp, data[:-6]


def to_bech32(address: Address, hrp: str) -> str:
    """Render *address* as a bech32 string for the network *hrp*."""
    return bech32_encode(hrp, convert_bits(address.to_bytes(), 8, 5, pad=True))


def parse_bech32_address(text: str, expected_hrp: str | None = None) -> tuple[str, Address]:
    """Decode a bech32 address.

    Args:
        text: The bech32 address.
        expected_hrp: If given, the address must belong to this network.

    Returns:
        Tuple of (hrp, address).

    Raises:
        AddressDecodeError: On any decoding failure or hrp mismatch.
    """
    try:
        hrp, data = bech32_decode(text.strip())
        raw = bytes(convert_bits(data, 5, 8, pad=False))
    except ValueError as exc:
        raise AddressDecodeError(f"invalid bech32 address {text!r}: {exc}") from exc
    if expected_hrp is not None and hrp != expected_hrp:
        raise AddressDecodeError(
            f"address {text!r} is for network '{hrp}', node expects '{expected_hrp}'"
        )
    if len(raw) != 33:
        raise AddressDecodeError(f"address {text!r} has a {len(raw)}-byte payload, expected 33")
    try:
        kind = AddressKind(raw[0])
    except ValueError as exc:
        raise AddressDecodeError(f"address {text!r} has unknown kind {raw[0]}") from exc
    return hrp, Address(kind, raw[1:])
