"""Consolidation — send every immediately spendable output of each key to one address.

Per key, strictly one after the other::

    derive address -> fetch outputs -> aggregate
        -> "No funds to send" notice            (total is zero)
        -> build transaction -> submit -> await confirmation

Token supply, protocol parameters and the reference time are sampled once
before the first key. Errors of the node connection or of the inputs
(keys, recipient) abort the run; errors building, submitting or
confirming one key's transaction are recorded for that key and the run
continues with the next one.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from iota_funds.engine.aggregator import select_spendable
from iota_funds.errors.chain_errors import NodeUnavailable
from iota_funds.errors.funds_errors import FundsError
from iota_funds.errors.wallet_errors import AddressDecodeError, KeyDecodeError
from iota_funds.ledger.client import OutputQuery
from iota_funds.wallet.address import parse_bech32_address, to_bech32
from iota_funds.wallet.transaction import (
    batch_inputs,
    build_consolidation_output,
    build_transaction,
    merge_native_tokens,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from iota_funds.ledger.client import NodeClient
    from iota_funds.ledger.models import Address, BasicOutput, ProtocolParameters
    from iota_funds.wallet.keys import PrivateKeySigner
    from iota_funds.wallet.transaction import SignedTransaction

logger = logging.getLogger(__name__)

_FATAL_ERRORS = (NodeUnavailable, KeyDecodeError, AddressDecodeError)


class Stage(enum.StrEnum):
    """Processing stages of one key."""

    DERIVE_ADDRESS = "derive_address"
    FETCH_OUTPUTS = "fetch_outputs"
    AGGREGATE = "aggregate"
    BUILD_TRANSACTION = "build_transaction"
    SUBMIT = "submit"
    AWAIT_CONFIRMATION = "await_confirmation"


class KeyStatus(enum.StrEnum):
    SENT = "sent"
    EMPTY = "empty"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass
class KeyOutcome:
    """What happened to one key.

    Attributes:
        key_index: Position of the key in the input list.
        address: Bech32 address of the key, empty if not derived.
        status: Final status.
        amount: Base units sent (or attempted).
        transaction_ids: Ids of transactions submitted for this key.
        error: The error that stopped this key, if any.
    """

    key_index: int
    address: str = ""
    status: KeyStatus = KeyStatus.EMPTY
    amount: int = 0
    transaction_ids: list[str] = field(default_factory=list)
    error: FundsError | None = None


@dataclass
class ConsolidationSummary:
    outcomes: list[KeyOutcome] = field(default_factory=list)

    @property
    def failed(self) -> list[KeyOutcome]:
        return [o for o in self.outcomes if o.status is KeyStatus.FAILED]

    @property
    def sent(self) -> list[KeyOutcome]:
        return [o for o in self.outcomes if o.status is KeyStatus.SENT]

    @property
    def total_sent(self) -> int:
        return sum(o.amount for o in self.sent)

    @property
    def ok(self) -> bool:
        return not self.failed


class ConsolidationOrchestrator:
    """Drives the consolidation of a list of keys into one recipient address.

    Usage::

        orchestrator = ConsolidationOrchestrator(node, "iota1q...")
        summary = await orchestrator.run(signers)
    """

    def __init__(
        self,
        node: NodeClient,
        recipient_address: str,
        *,
        echo: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            node: Connected node client, shared by all keys.
            recipient_address: Bech32 address receiving all funds.
            echo: Sink for user-facing lines; defaults to unbuffered ``print``.
        """
        self._node = node
        self._recipient_address = recipient_address
        self._echo = echo or _print

    async def run(self, signers: Sequence[PrivateKeySigner]) -> ConsolidationSummary:
        """Consolidate the funds of every key in order.

        Raises:
            NodeUnavailable: If the node cannot be used; aborts the run.
            AddressDecodeError: If the recipient is invalid for the node's network.
        """
        params = await self._node.get_protocol_parameters()
        _, recipient = parse_bech32_address(self._recipient_address, params.bech32_hrp)
        reference_time = await self._node.get_reference_time()
        logger.info(
            "Consolidating %d key(s) on %s at milestone time %d",
            len(signers),
            params.network_name,
            reference_time,
        )

        summary = ConsolidationSummary()
        seen: set[str] = set()
        for index, signer in enumerate(signers):
            outcome = await self._consolidate_key(
                index, signer, recipient, params, reference_time, seen
            )
            summary.outcomes.append(outcome)
        return summary

    async def _consolidate_key(
        self,
        index: int,
        signer: PrivateKeySigner,
        recipient: Address,
        params: ProtocolParameters,
        reference_time: int,
        seen: set[str],
    ) -> KeyOutcome:
        outcome = KeyOutcome(key_index=index)
        stage = Stage.DERIVE_ADDRESS
        try:
            address = to_bech32(signer.derive_first_address(), params.bech32_hrp)
            outcome.address = address
            if address in seen:
                logger.warning("Key #%d repeats address %s, skipping", index, address)
                outcome.status = KeyStatus.DUPLICATE
                return outcome
            seen.add(address)

            stage = Stage.FETCH_OUTPUTS
            output_ids = await self._node.basic_output_ids(
                OutputQuery(address=address, has_storage_deposit_return=False)
            )
            records = await self._node.get_outputs(output_ids)

            stage = Stage.AGGREGATE
            inputs = select_spendable(records, reference_time)
            outcome.amount = sum(output.amount for _, output in inputs)
            if outcome.amount == 0:
                self._echo(f"No funds to send from {address}")
                return outcome

            logger.info(
                "Sending %.6f IOTA from %s (%d outputs)",
                outcome.amount / 1_000_000,
                address,
                len(inputs),
            )
            for batch in batch_inputs(inputs):
                stage = Stage.BUILD_TRANSACTION
                transaction = _build_batch(batch, recipient, signer, params)
                transaction_id = transaction.transaction_id

                stage = Stage.SUBMIT
                block_id = await self._node.submit_block(transaction.payload)
                outcome.transaction_ids.append(transaction_id)
                self._echo(f"Transaction {transaction_id} sent in block {block_id}")

                stage = Stage.AWAIT_CONFIRMATION
                await self._node.await_confirmation(block_id)
                self._echo(f"Transaction {transaction_id} included in block {block_id}")
        except _FATAL_ERRORS as exc:
            raise exc.at(index, stage)
        except FundsError as exc:
            exc.at(index, stage)
            logger.error("Key #%d failed during %s: %s", index, stage, exc.message)
            outcome.status = KeyStatus.FAILED
            outcome.error = exc
            return outcome

        outcome.status = KeyStatus.SENT
        return outcome


def _build_batch(
    batch: list[tuple[str, BasicOutput]],
    recipient: Address,
    signer: PrivateKeySigner,
    params: ProtocolParameters,
) -> SignedTransaction:
    consumed = [output for _, output in batch]
    output = build_consolidation_output(
        sum(o.amount for o in consumed),
        recipient,
        params,
        merge_native_tokens(consumed),
    )
    transaction = build_transaction(batch, [output], signer, params)
    logger.debug(
        "Built transaction %s spending %d input(s)",
        transaction.transaction_id,
        len(transaction.input_ids),
    )
    return transaction


def _print(line: str) -> None:
    print(line, flush=True)
