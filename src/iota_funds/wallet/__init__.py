"""Wallet primitives — private keys, bech32 addresses, transaction building."""

from iota_funds.wallet.address import parse_bech32_address, to_bech32
from iota_funds.wallet.keys import PrivateKeySigner, decode_private_keys

__all__ = ["PrivateKeySigner", "decode_private_keys", "parse_bech32_address", "to_bech32"]
