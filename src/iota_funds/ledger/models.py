"""Ledger data models — addresses, unlock conditions, outputs, node info.

Data classes mirroring the Stardust core / indexer REST API JSON objects.
Only basic outputs are modelled; the unlock condition set is closed and
every variant is matched explicitly by the eligibility rules.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from iota_funds.errors.chain_errors import LedgerDataError
from iota_funds.utils.crypto import blake2b256, bytes_to_hex, hex_to_bytes

BASIC_OUTPUT_TYPE = 3

# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------


class AddressKind(enum.IntEnum):
    """Address type bytes."""

    ED25519 = 0
    ALIAS = 8
    NFT = 16


_ADDRESS_JSON_KEYS = {
    AddressKind.ED25519: "pubKeyHash",
    AddressKind.ALIAS: "aliasId",
    AddressKind.NFT: "nftId",
}


@dataclass(frozen=True)
class Address:
    """A 32-byte ledger address of a given kind."""

    kind: AddressKind
    payload: bytes

    def __post_init__(self) -> None:
        if len(self.payload) != 32:
            msg = f"address payload must be 32 bytes, got {len(self.payload)}"
            raise ValueError(msg)

    @classmethod
    def ed25519(cls, pub_key_hash: bytes) -> Address:
        return cls(AddressKind.ED25519, pub_key_hash)

    def to_bytes(self) -> bytes:
        """Serialized form: kind byte followed by the payload."""
        return bytes([self.kind]) + self.payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Address:
        try:
            kind = AddressKind(data["type"])
            return cls(kind, hex_to_bytes(data[_ADDRESS_JSON_KEYS[kind]]))
        except (KeyError, ValueError, TypeError) as exc:
            raise LedgerDataError(f"unsupported address: {data!r}") from exc

    def to_dict(self) -> dict[str, Any]:
        return {"type": int(self.kind), _ADDRESS_JSON_KEYS[self.kind]: bytes_to_hex(self.payload)}


# ---------------------------------------------------------------------------
# Unlock conditions
# ---------------------------------------------------------------------------


class UnlockConditionType(enum.IntEnum):
    """Unlock condition type bytes handled by this tool."""

    ADDRESS = 0
    STORAGE_DEPOSIT_RETURN = 1
    TIMELOCK = 2
    EXPIRATION = 3


@dataclass(frozen=True)
class AddressUnlock:
    """The owner of the output."""

    address: Address

    type = UnlockConditionType.ADDRESS

    def to_dict(self) -> dict[str, Any]:
        return {"type": int(self.type), "address": self.address.to_dict()}


@dataclass(frozen=True)
class StorageDepositReturnUnlock:
    """``amount`` must be returned to ``return_address`` when the output is spent."""

    return_address: Address
    amount: int

    type = UnlockConditionType.STORAGE_DEPOSIT_RETURN

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": int(self.type),
            "returnAddress": self.return_address.to_dict(),
            "amount": str(self.amount),
        }


@dataclass(frozen=True)
class TimelockUnlock:
    """The output cannot be spent before ``unix_time``."""

    unix_time: int

    type = UnlockConditionType.TIMELOCK

    def to_dict(self) -> dict[str, Any]:
        return {"type": int(self.type), "unixTime": self.unix_time}


@dataclass(frozen=True)
class ExpirationUnlock:
    """From ``unix_time`` on only ``return_address`` may spend the output."""

    return_address: Address
    unix_time: int

    type = UnlockConditionType.EXPIRATION

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": int(self.type),
            "returnAddress": self.return_address.to_dict(),
            "unixTime": self.unix_time,
        }


UnlockCondition = AddressUnlock | StorageDepositReturnUnlock | TimelockUnlock | ExpirationUnlock


def unlock_condition_from_dict(data: dict[str, Any]) -> UnlockCondition:
    """Parse one unlock condition; unknown types raise ``LedgerDataError``."""
    try:
        kind = UnlockConditionType(data["type"])
        if kind is UnlockConditionType.ADDRESS:
            return AddressUnlock(Address.from_dict(data["address"]))
        if kind is UnlockConditionType.STORAGE_DEPOSIT_RETURN:
            return StorageDepositReturnUnlock(
                Address.from_dict(data["returnAddress"]), int(data["amount"])
            )
        if kind is UnlockConditionType.TIMELOCK:
            return TimelockUnlock(int(data["unixTime"]))
        return ExpirationUnlock(Address.from_dict(data["returnAddress"]), int(data["unixTime"]))
    except (KeyError, ValueError, TypeError) as exc:
        raise LedgerDataError(f"unsupported unlock condition: {data!r}") from exc


# ---------------------------------------------------------------------------
# Features & native tokens
# ---------------------------------------------------------------------------


class FeatureType(enum.IntEnum):
    """Feature type bytes allowed on basic outputs."""

    SENDER = 0
    ISSUER = 1
    METADATA = 2
    TAG = 3


@dataclass(frozen=True)
class Feature:
    """A basic output feature.

    Sender / issuer features carry ``address``; metadata and tag features
    carry ``data``.
    """

    type: FeatureType
    address: Address | None = None
    data: bytes = b""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Feature:
        try:
            kind = FeatureType(data["type"])
            if kind in (FeatureType.SENDER, FeatureType.ISSUER):
                return cls(kind, address=Address.from_dict(data["address"]))
            key = "data" if kind is FeatureType.METADATA else "tag"
            return cls(kind, data=hex_to_bytes(data[key]))
        except (KeyError, ValueError, TypeError) as exc:
            raise LedgerDataError(f"unsupported feature: {data!r}") from exc

    def to_dict(self) -> dict[str, Any]:
        if self.address is not None:
            return {"type": int(self.type), "address": self.address.to_dict()}
        key = "data" if self.type is FeatureType.METADATA else "tag"
        return {"type": int(self.type), key: bytes_to_hex(self.data)}


@dataclass(frozen=True)
class NativeToken:
    """A native token balance held by an output (38-byte token id)."""

    token_id: bytes
    amount: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NativeToken:
        try:
            return cls(hex_to_bytes(data["id"]), int(data["amount"], 16))
        except (KeyError, ValueError, TypeError) as exc:
            raise LedgerDataError(f"invalid native token: {data!r}") from exc

    def to_dict(self) -> dict[str, Any]:
        return {"id": bytes_to_hex(self.token_id), "amount": hex(self.amount)}


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BasicOutput:
    """A basic output: an amount of base units plus its unlock conditions."""

    amount: int
    unlock_conditions: tuple[UnlockCondition, ...] = ()
    native_tokens: tuple[NativeToken, ...] = ()
    features: tuple[Feature, ...] = ()

    def _find(self, kind: type) -> Any:
        for condition in self.unlock_conditions:
            if isinstance(condition, kind):
                return condition
        return None

    def address(self) -> Address | None:
        condition = self._find(AddressUnlock)
        return condition.address if condition else None

    def timelock(self) -> TimelockUnlock | None:
        return self._find(TimelockUnlock)

    def expiration(self) -> ExpirationUnlock | None:
        return self._find(ExpirationUnlock)

    def storage_deposit_return(self) -> StorageDepositReturnUnlock | None:
        return self._find(StorageDepositReturnUnlock)

    def is_time_locked(self, now: int) -> bool:
        """True while the time-lock lies strictly in the future."""
        timelock = self.timelock()
        return timelock is not None and timelock.unix_time > now

    def is_expired(self, now: int) -> bool:
        """True once the expiration time has been reached."""
        expiration = self.expiration()
        return expiration is not None and expiration.unix_time <= now

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BasicOutput:
        """Create a BasicOutput from node JSON; other output types are rejected."""
        if data.get("type") != BASIC_OUTPUT_TYPE:
            raise LedgerDataError(f"unsupported output type: {data.get('type')!r}")
        try:
            amount = int(data["amount"])
        except (KeyError, ValueError, TypeError) as exc:
            raise LedgerDataError(f"invalid output amount: {data.get('amount')!r}") from exc
        return cls(
            amount=amount,
            unlock_conditions=tuple(
                unlock_condition_from_dict(uc) for uc in data.get("unlockConditions") or []
            ),
            native_tokens=tuple(
                NativeToken.from_dict(nt) for nt in data.get("nativeTokens") or []
            ),
            features=tuple(Feature.from_dict(f) for f in data.get("features") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": BASIC_OUTPUT_TYPE,
            "amount": str(self.amount),
            "unlockConditions": [uc.to_dict() for uc in self.unlock_conditions],
        }
        if self.native_tokens:
            data["nativeTokens"] = [nt.to_dict() for nt in self.native_tokens]
        if self.features:
            data["features"] = [f.to_dict() for f in self.features]
        return data


@dataclass(frozen=True)
class OutputMetadata:
    """Ledger state of an output.

    Attributes:
        block_id: Block that created the output.
        transaction_id: Transaction that created the output.
        output_index: Index of the output within that transaction.
        is_spent: Whether the output has been consumed.
        milestone_index_booked: Milestone that booked the output.
        milestone_timestamp_booked: Unix time of that milestone.
        ledger_index: Confirmed milestone index the data refers to.
    """

    block_id: str
    transaction_id: str
    output_index: int
    is_spent: bool
    milestone_index_booked: int = 0
    milestone_timestamp_booked: int = 0
    ledger_index: int = 0

    @property
    def output_id(self) -> str:
        """Transaction id followed by the little-endian u16 output index."""
        return self.transaction_id + self.output_index.to_bytes(2, "little").hex()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OutputMetadata:
        try:
            return cls(
                block_id=data.get("blockId", ""),
                transaction_id=data["transactionId"],
                output_index=int(data["outputIndex"]),
                is_spent=bool(data["isSpent"]),
                milestone_index_booked=int(data.get("milestoneIndexBooked", 0)),
                milestone_timestamp_booked=int(data.get("milestoneTimestampBooked", 0)),
                ledger_index=int(data.get("ledgerIndex", 0)),
            )
        except (KeyError, ValueError, TypeError) as exc:
            raise LedgerDataError(f"invalid output metadata: {data!r}") from exc


@dataclass(frozen=True)
class OutputWithMetadata:
    """An output together with its ledger metadata."""

    output: BasicOutput
    metadata: OutputMetadata

    @property
    def output_id(self) -> str:
        return self.metadata.output_id

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OutputWithMetadata:
        if "output" not in data or "metadata" not in data:
            raise LedgerDataError("output response lacks output or metadata")
        return cls(
            output=BasicOutput.from_dict(data["output"]),
            metadata=OutputMetadata.from_dict(data["metadata"]),
        )


# ---------------------------------------------------------------------------
# Node info / protocol parameters
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RentStructure:
    """Storage deposit parameters."""

    v_byte_cost: int = 250
    v_byte_factor_data: int = 1
    v_byte_factor_key: int = 10

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RentStructure:
        return cls(
            v_byte_cost=int(data.get("vByteCost", 250)),
            v_byte_factor_data=int(data.get("vByteFactorData", 1)),
            v_byte_factor_key=int(data.get("vByteFactorKey", 10)),
        )


@dataclass(frozen=True)
class ProtocolParameters:
    """Protocol parameters announced by the node."""

    version: int
    network_name: str
    bech32_hrp: str
    token_supply: int
    min_pow_score: int = 0
    rent_structure: RentStructure = field(default_factory=RentStructure)

    @property
    def network_id(self) -> int:
        """First 8 bytes of BLAKE2b-256(network name) as little-endian u64."""
        return int.from_bytes(blake2b256(self.network_name.encode())[:8], "little")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProtocolParameters:
        try:
            return cls(
                version=int(data["version"]),
                network_name=data["networkName"],
                bech32_hrp=data["bech32Hrp"],
                token_supply=int(data["tokenSupply"]),
                min_pow_score=int(data.get("minPowScore", 0)),
                rent_structure=RentStructure.from_dict(data.get("rentStructure", {})),
            )
        except (KeyError, ValueError, TypeError) as exc:
            raise LedgerDataError(f"invalid protocol parameters: {data!r}") from exc


@dataclass(frozen=True)
class NodeInfo:
    """Subset of ``/api/core/v2/info`` used by the tools."""

    name: str
    version: str
    latest_milestone_timestamp: int
    protocol: ProtocolParameters

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NodeInfo:
        try:
            latest = data["status"]["latestMilestone"]
            return cls(
                name=data.get("name", ""),
                version=data.get("version", ""),
                latest_milestone_timestamp=int(latest.get("timestamp", 0)),
                protocol=ProtocolParameters.from_dict(data["protocol"]),
            )
        except (KeyError, ValueError, TypeError, AttributeError) as exc:
            raise LedgerDataError("node info lacks status or protocol") from exc


# ---------------------------------------------------------------------------
# Block metadata
# ---------------------------------------------------------------------------


class LedgerInclusionState(enum.StrEnum):
    """Inclusion state of a block's transaction; ``PENDING`` until referenced."""

    PENDING = "pending"
    INCLUDED = "included"
    CONFLICTING = "conflicting"
    NO_TRANSACTION = "noTransaction"

    @classmethod
    def from_string(cls, value: str | None) -> LedgerInclusionState:
        try:
            return cls(value) if value else cls.PENDING
        except ValueError:
            return cls.PENDING


@dataclass(frozen=True)
class BlockMetadata:
    """Metadata of a submitted block."""

    block_id: str
    ledger_inclusion_state: LedgerInclusionState = LedgerInclusionState.PENDING
    referenced_by_milestone_index: int = 0
    conflict_reason: int = 0

    @property
    def is_included(self) -> bool:
        return self.ledger_inclusion_state is LedgerInclusionState.INCLUDED

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BlockMetadata:
        try:
            return cls(
                block_id=data.get("blockId", ""),
                ledger_inclusion_state=LedgerInclusionState.from_string(
                    data.get("ledgerInclusionState")
                ),
                referenced_by_milestone_index=int(data.get("referencedByMilestoneIndex", 0)),
                conflict_reason=int(data.get("conflictReason", 0)),
            )
        except (ValueError, TypeError) as exc:
            raise LedgerDataError(f"invalid block metadata: {data!r}") from exc
