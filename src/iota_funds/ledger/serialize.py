"""Binary serialization — outputs, inputs, transaction essence and payload.

Pure-Python encoding of the Stardust objects the consolidation flow
needs to sign:
- Addresses, unlock conditions, features, native tokens, basic outputs
- UTXO inputs and the inputs commitment
- Regular transaction essence, signature / reference unlocks
- Transaction payload and its id
- Storage deposit (rent) calculation for outputs
"""

from __future__ import annotations

import struct
from typing import TYPE_CHECKING

from iota_funds.ledger.models import (
    BASIC_OUTPUT_TYPE,
    AddressUnlock,
    ExpirationUnlock,
    FeatureType,
    StorageDepositReturnUnlock,
    TimelockUnlock,
)
from iota_funds.utils.crypto import blake2b256, hex_to_bytes

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from iota_funds.ledger.models import (
        Address,
        BasicOutput,
        Feature,
        NativeToken,
        RentStructure,
        UnlockCondition,
    )

UTXO_INPUT_TYPE = 0
TRANSACTION_ESSENCE_TYPE = 1
TRANSACTION_PAYLOAD_TYPE = 6
SIGNATURE_UNLOCK_TYPE = 0
REFERENCE_UNLOCK_TYPE = 1
ED25519_SIGNATURE_TYPE = 0

MAX_INPUTS = 128
MAX_OUTPUTS = 128
MAX_NATIVE_TOKENS = 64

# Bytes an output occupies in the ledger besides its own serialization:
# output id (key) and block id, milestone index, milestone timestamp (data).
_OUTPUT_ID_BYTES = 32 + 2
_OUTPUT_METADATA_BYTES = 32 + 4 + 4

_U64_MAX = 2**64 - 1
_U256_MAX = 2**256 - 1


def _u8(n: int) -> bytes:
    return struct.pack("<B", n)


def _u16(n: int) -> bytes:
    return struct.pack("<H", n)


def _u32(n: int) -> bytes:
    return struct.pack("<I", n)


def _u64(n: int) -> bytes:
    if not 0 <= n <= _U64_MAX:
        msg = f"value {n} does not fit into u64"
        raise ValueError(msg)
    return struct.pack("<Q", n)


# ---------------------------------------------------------------------------
# Output parts
# ---------------------------------------------------------------------------


def serialize_address(address: Address) -> bytes:
    return address.to_bytes()


def serialize_unlock_condition(condition: UnlockCondition) -> bytes:
    """Serialize one unlock condition, prefixed by its type byte."""
    head = _u8(condition.type)
    if isinstance(condition, AddressUnlock):
        return head + serialize_address(condition.address)
    if isinstance(condition, StorageDepositReturnUnlock):
        return head + serialize_address(condition.return_address) + _u64(condition.amount)
    if isinstance(condition, TimelockUnlock):
        return head + _u32(condition.unix_time)
    if isinstance(condition, ExpirationUnlock):
        return head + serialize_address(condition.return_address) + _u32(condition.unix_time)
    msg = f"unknown unlock condition {condition!r}"
    raise TypeError(msg)


def serialize_feature(feature: Feature) -> bytes:
    head = _u8(feature.type)
    if feature.address is not None:
        return head + serialize_address(feature.address)
    if feature.type is FeatureType.METADATA:
        return head + _u16(len(feature.data)) + feature.data
    return head + _u8(len(feature.data)) + feature.data


def serialize_native_token(token: NativeToken) -> bytes:
    if not 0 <= token.amount <= _U256_MAX:
        msg = f"native token amount {token.amount} does not fit into u256"
        raise ValueError(msg)
    return token.token_id + token.amount.to_bytes(32, "little")


def serialize_output(output: BasicOutput) -> bytes:
    """Serialize a basic output; conditions, features and tokens are sorted."""
    tokens = sorted(output.native_tokens, key=lambda t: t.token_id)
    conditions = sorted(output.unlock_conditions, key=lambda c: c.type)
    features = sorted(output.features, key=lambda f: f.type)
    parts = [_u8(BASIC_OUTPUT_TYPE), _u64(output.amount), _u8(len(tokens))]
    parts.extend(serialize_native_token(t) for t in tokens)
    parts.append(_u8(len(conditions)))
    parts.extend(serialize_unlock_condition(c) for c in conditions)
    parts.append(_u8(len(features)))
    parts.extend(serialize_feature(f) for f in features)
    return b"".join(parts)


def min_storage_deposit(output: BasicOutput, rent: RentStructure) -> int:
    """Minimum amount the output must hold to cover its storage cost."""
    offset = (
        _OUTPUT_ID_BYTES * rent.v_byte_factor_key
        + _OUTPUT_METADATA_BYTES * rent.v_byte_factor_data
    )
    weight = len(serialize_output(output)) * rent.v_byte_factor_data
    return rent.v_byte_cost * (offset + weight)


# ---------------------------------------------------------------------------
# Inputs & essence
# ---------------------------------------------------------------------------


def output_id_to_input(output_id: str) -> tuple[bytes, int]:
    """Split a 34-byte output id into (transaction id, output index)."""
    raw = hex_to_bytes(output_id)
    if len(raw) != 34:
        msg = f"output id must be 34 bytes, got {len(raw)}"
        raise ValueError(msg)
    return raw[:32], struct.unpack("<H", raw[32:])[0]


def serialize_utxo_input(output_id: str) -> bytes:
    transaction_id, index = output_id_to_input(output_id)
    return _u8(UTXO_INPUT_TYPE) + transaction_id + _u16(index)


def inputs_commitment(consumed: Iterable[BasicOutput]) -> bytes:
    """BLAKE2b-256 over the concatenated hashes of the consumed outputs."""
    return blake2b256(b"".join(blake2b256(serialize_output(o)) for o in consumed))


def serialize_essence(
    network_id: int,
    input_ids: Sequence[str],
    commitment: bytes,
    outputs: Sequence[BasicOutput],
) -> bytes:
    """Serialize a regular transaction essence without tagged data payload."""
    if not 1 <= len(input_ids) <= MAX_INPUTS:
        msg = f"transaction needs 1..{MAX_INPUTS} inputs, got {len(input_ids)}"
        raise ValueError(msg)
    if not 1 <= len(outputs) <= MAX_OUTPUTS:
        msg = f"transaction needs 1..{MAX_OUTPUTS} outputs, got {len(outputs)}"
        raise ValueError(msg)
    parts = [_u8(TRANSACTION_ESSENCE_TYPE), _u64(network_id), _u16(len(input_ids))]
    parts.extend(serialize_utxo_input(i) for i in input_ids)
    parts.append(commitment)
    parts.append(_u16(len(outputs)))
    parts.extend(serialize_output(o) for o in outputs)
    parts.append(_u32(0))
    return b"".join(parts)


# ---------------------------------------------------------------------------
# Unlocks & payload
# ---------------------------------------------------------------------------


def serialize_signature_unlock(public_key: bytes, signature: bytes) -> bytes:
    return _u8(SIGNATURE_UNLOCK_TYPE) + _u8(ED25519_SIGNATURE_TYPE) + public_key + signature


def serialize_reference_unlock(reference: int) -> bytes:
    return _u8(REFERENCE_UNLOCK_TYPE) + _u16(reference)


def serialize_transaction_payload(essence: bytes, unlocks: Sequence[bytes]) -> bytes:
    return _u32(TRANSACTION_PAYLOAD_TYPE) + essence + _u16(len(unlocks)) + b"".join(unlocks)


def transaction_id(payload: bytes) -> bytes:
    """Transaction id: BLAKE2b-256 of the serialized transaction payload."""
    return blake2b256(payload)
