"""Shared test fixtures for the iota-funds test suite."""

from __future__ import annotations

import itertools
from typing import Any

import pytest

from iota_funds.ledger.models import (
    Address,
    AddressUnlock,
    BasicOutput,
    OutputMetadata,
    OutputWithMetadata,
    ProtocolParameters,
)

# RFC 8032 test vector 1
RFC8032_SECRET = bytes.fromhex("9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60")
RFC8032_PUBLIC = bytes.fromhex("d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a")

REFERENCE_TIME = 1_695_000_000


@pytest.fixture
def protocol_json() -> dict[str, Any]:
    return {
        "version": 2,
        "networkName": "testnet",
        "bech32Hrp": "rms",
        "minPowScore": 0,
        "rentStructure": {"vByteCost": 100, "vByteFactorData": 1, "vByteFactorKey": 10},
        "tokenSupply": "1813620509061365",
    }


@pytest.fixture
def protocol_params(protocol_json) -> ProtocolParameters:
    return ProtocolParameters.from_dict(protocol_json)


@pytest.fixture
def node_info_json(protocol_json) -> dict[str, Any]:
    return {
        "name": "HORNET",
        "version": "2.0.0",
        "status": {
            "isHealthy": True,
            "latestMilestone": {"index": 100, "timestamp": REFERENCE_TIME},
        },
        "protocol": protocol_json,
    }


@pytest.fixture
def owner() -> Address:
    return Address.ed25519(b"\x11" * 32)


@pytest.fixture
def make_output(owner):
    """Factory for unspent (by default) outputs with unique output ids."""
    counter = itertools.count(1)

    def _make(
        amount: int,
        *conditions: Any,
        spent: bool = False,
        booked: int = 1_690_000_000,
        output_id_seed: int | None = None,
    ) -> OutputWithMetadata:
        seed = next(counter) if output_id_seed is None else output_id_seed
        output = BasicOutput(amount=amount, unlock_conditions=(AddressUnlock(owner), *conditions))
        metadata = OutputMetadata(
            block_id="0x" + "bb" * 32,
            transaction_id="0x" + seed.to_bytes(32, "big").hex(),
            output_index=0,
            is_spent=spent,
            milestone_index_booked=10,
            milestone_timestamp_booked=booked,
        )
        return OutputWithMetadata(output, metadata)

    return _make
