"""Transaction building — consolidation output, signed transaction payloads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from iota_funds.errors.wallet_errors import OutputConstructionError
from iota_funds.ledger import serialize
from iota_funds.ledger.models import AddressUnlock, BasicOutput, NativeToken
from iota_funds.utils.crypto import blake2b256, bytes_to_hex

if TYPE_CHECKING:
    from collections.abc import Sequence

    from iota_funds.ledger.models import Address, ProtocolParameters
    from iota_funds.wallet.keys import PrivateKeySigner


@dataclass(frozen=True)
class SignedTransaction:
    """A signed transaction payload ready to be put into a block.

    Attributes:
        transaction_id: Hex id of the transaction.
        payload: JSON form of the transaction payload.
        input_ids: Output ids consumed, in input order.
        amount: Total amount moved into the outputs.
    """

    transaction_id: str
    payload: dict[str, Any]
    input_ids: tuple[str, ...]
    amount: int


def build_consolidation_output(
    amount: int,
    recipient: Address,
    params: ProtocolParameters,
    native_tokens: Sequence[NativeToken] = (),
) -> BasicOutput:
    """Build the single output receiving *amount*, unlockable by *recipient* only.

    Native tokens held by the consumed outputs are carried over so the
    transaction stays balanced.

    Raises:
        OutputConstructionError: If *amount* is below the output's storage
            deposit or above the token supply, or if it would carry more
            native tokens than an output may hold.
    """
    if len(native_tokens) > serialize.MAX_NATIVE_TOKENS:
        raise OutputConstructionError(
            f"output carries {len(native_tokens)} native tokens, "
            f"at most {serialize.MAX_NATIVE_TOKENS} allowed",
            amount=amount,
        )
    output = BasicOutput(
        amount=amount,
        unlock_conditions=(AddressUnlock(recipient),),
        native_tokens=tuple(native_tokens),
    )
    minimum = serialize.min_storage_deposit(output, params.rent_structure)
    if amount < minimum:
        raise OutputConstructionError(
            f"amount {amount} is below the minimum storage deposit {minimum}",
            amount=amount,
            minimum=minimum,
        )
    if amount > params.token_supply:
        raise OutputConstructionError(
            f"amount {amount} exceeds the token supply {params.token_supply}",
            amount=amount,
            minimum=minimum,
        )
    return output


def build_transaction(
    inputs: Sequence[tuple[str, BasicOutput]],
    outputs: Sequence[BasicOutput],
    signer: PrivateKeySigner,
    params: ProtocolParameters,
) -> SignedTransaction:
    """Sign a transaction spending *inputs* (all owned by *signer*) into *outputs*.

    The first input is unlocked by a signature, every following input by a
    reference to it.
    """
    input_ids = [output_id for output_id, _ in inputs]
    commitment = serialize.inputs_commitment(output for _, output in inputs)
    essence = serialize.serialize_essence(params.network_id, input_ids, commitment, outputs)
    signature = signer.sign(blake2b256(essence))

    unlocks = [serialize.serialize_signature_unlock(signer.public_key, signature)]
    unlocks.extend(serialize.serialize_reference_unlock(0) for _ in input_ids[1:])
    tx_id = serialize.transaction_id(serialize.serialize_transaction_payload(essence, unlocks))

    payload = {
        "type": serialize.TRANSACTION_PAYLOAD_TYPE,
        "essence": {
            "type": serialize.TRANSACTION_ESSENCE_TYPE,
            "networkId": str(params.network_id),
            "inputs": [_input_to_dict(output_id) for output_id in input_ids],
            "inputsCommitment": bytes_to_hex(commitment),
            "outputs": [output.to_dict() for output in outputs],
        },
        "unlocks": [
            {
                "type": serialize.SIGNATURE_UNLOCK_TYPE,
                "signature": {
                    "type": serialize.ED25519_SIGNATURE_TYPE,
                    "publicKey": bytes_to_hex(signer.public_key),
                    "signature": bytes_to_hex(signature),
                },
            }
        ]
        + [{"type": serialize.REFERENCE_UNLOCK_TYPE, "reference": 0} for _ in input_ids[1:]],
    }
    return SignedTransaction(
        transaction_id=bytes_to_hex(tx_id),
        payload=payload,
        input_ids=tuple(input_ids),
        amount=sum(output.amount for output in outputs),
    )


def batch_inputs(
    inputs: Sequence[tuple[str, BasicOutput]], size: int = serialize.MAX_INPUTS
) -> list[list[tuple[str, BasicOutput]]]:
    """Split *inputs* into consecutive batches a single transaction can consume."""
    return [list(inputs[i : i + size]) for i in range(0, len(inputs), size)]


def _input_to_dict(output_id: str) -> dict[str, Any]:
    transaction_id, index = serialize.output_id_to_input(output_id)
    return {
        "type": serialize.UTXO_INPUT_TYPE,
        "transactionId": bytes_to_hex(transaction_id),
        "transactionOutputIndex": index,
    }


def merge_native_tokens(outputs: Sequence[BasicOutput]) -> list[NativeToken]:
    """Sum the native tokens of *outputs* per token id, ordered by id."""
    totals: dict[bytes, int] = {}
    for output in outputs:
        for token in output.native_tokens:
            totals[token.token_id] = totals.get(token.token_id, 0) + token.amount
    return [NativeToken(token_id, amount) for token_id, amount in sorted(totals.items())]
