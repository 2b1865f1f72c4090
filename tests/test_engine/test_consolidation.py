"""Tests for the consolidation orchestrator — uses a scripted node double."""

from __future__ import annotations

import pytest

from iota_funds.engine.consolidation import ConsolidationOrchestrator, KeyStatus, Stage
from iota_funds.errors.chain_errors import (
    ConfirmationTimeout,
    LedgerDataError,
    NodeRequestError,
    NodeUnavailable,
    SubmissionError,
)
from iota_funds.errors.wallet_errors import AddressDecodeError, OutputConstructionError
from iota_funds.ledger.models import Address, BlockMetadata, TimelockUnlock
from iota_funds.wallet.address import to_bech32
from iota_funds.wallet.keys import PrivateKeySigner

NOW = 1_695_000_000
RECIPIENT = to_bech32(Address.ed25519(b"\x33" * 32), "rms")


class FakeNode:
    """Node double: outputs per address, scripted submission / confirmation."""

    def __init__(self, params, outputs_by_address=None) -> None:
        self.params = params
        self.outputs_by_address = outputs_by_address or {}
        self.submitted: list[dict] = []
        self.confirm_errors: dict[int, Exception] = {}
        self.submit_errors: dict[int, Exception] = {}
        self.query_errors: dict[str, Exception] = {}
        self.reference_time_calls = 0

    async def get_protocol_parameters(self):
        return self.params

    async def get_reference_time(self):
        self.reference_time_calls += 1
        return NOW

    async def basic_output_ids(self, query):
        assert query.has_storage_deposit_return is False
        if query.address in self.query_errors:
            raise self.query_errors[query.address]
        return [o.output_id for o in self.outputs_by_address.get(query.address, [])]

    async def get_outputs(self, ids):
        everything = {o.output_id: o for v in self.outputs_by_address.values() for o in v}
        return [everything[i] for i in ids]

    async def submit_block(self, payload):
        index = len(self.submitted)
        self.submitted.append(payload)
        if index in self.submit_errors:
            raise self.submit_errors[index]
        return f"0xblock{index}"

    async def await_confirmation(self, block_id):
        index = int(block_id.removeprefix("0xblock"))
        if index in self.confirm_errors:
            raise self.confirm_errors[index]
        return BlockMetadata(block_id=block_id)


def _signer(n: int) -> PrivateKeySigner:
    return PrivateKeySigner(bytes([n]) * 32)


def _address(signer: PrivateKeySigner) -> str:
    return to_bech32(signer.derive_first_address(), "rms")


@pytest.fixture
def lines() -> list[str]:
    return []


def _orchestrator(node, lines) -> ConsolidationOrchestrator:
    return ConsolidationOrchestrator(node, RECIPIENT, echo=lines.append)


# ---------------------------------------------------------------------------
# Happy paths
# ---------------------------------------------------------------------------


class TestConsolidation:
    async def test_single_unlocked_output(self, protocol_params, make_output, lines) -> None:
        key = _signer(1)
        node = FakeNode(protocol_params, {_address(key): [make_output(5_000_000)]})

        summary = await _orchestrator(node, lines).run([key])

        assert summary.ok
        outcome = summary.outcomes[0]
        assert outcome.status is KeyStatus.SENT
        assert outcome.amount == 5_000_000
        assert len(node.submitted) == 1
        outputs = node.submitted[0]["essence"]["outputs"]
        assert outputs == [
            {
                "type": 3,
                "amount": "5000000",
                "unlockConditions": [
                    {"type": 0, "address": {"type": 0, "pubKeyHash": "0x" + "33" * 32}}
                ],
            }
        ]
        tx_id = outcome.transaction_ids[0]
        assert lines == [
            f"Transaction {tx_id} sent in block 0xblock0",
            f"Transaction {tx_id} included in block 0xblock0",
        ]

    async def test_no_funds_prints_notice(self, protocol_params, lines) -> None:
        key = _signer(1)
        node = FakeNode(protocol_params)

        summary = await _orchestrator(node, lines).run([key])

        assert lines == [f"No funds to send from {_address(key)}"]
        assert node.submitted == []
        assert summary.ok
        assert summary.outcomes[0].status is KeyStatus.EMPTY

    async def test_locked_outputs_are_left_alone(
        self, protocol_params, make_output, lines
    ) -> None:
        key = _signer(1)
        node = FakeNode(
            protocol_params,
            {
                _address(key): [
                    make_output(1_000_000),
                    make_output(2_000_000, TimelockUnlock(NOW + 1)),
                    make_output(4_000_000, spent=True),
                ]
            },
        )

        summary = await _orchestrator(node, lines).run([key])

        assert summary.outcomes[0].amount == 1_000_000
        assert len(node.submitted[0]["essence"]["inputs"]) == 1

    async def test_keys_processed_in_order(self, protocol_params, make_output, lines) -> None:
        a, b, c = _signer(1), _signer(2), _signer(3)
        node = FakeNode(
            protocol_params,
            {_address(a): [make_output(1_000_000)], _address(c): [make_output(2_000_000)]},
        )

        summary = await _orchestrator(node, lines).run([a, b, c])

        assert [o.status for o in summary.outcomes] == [
            KeyStatus.SENT,
            KeyStatus.EMPTY,
            KeyStatus.SENT,
        ]
        assert lines[2] == f"No funds to send from {_address(b)}"
        assert summary.total_sent == 3_000_000
        assert node.reference_time_calls == 1

    async def test_duplicate_key_is_skipped(self, protocol_params, make_output, lines) -> None:
        key = _signer(1)
        node = FakeNode(protocol_params, {_address(key): [make_output(1_000_000)]})

        summary = await _orchestrator(node, lines).run([key, _signer(1)])

        assert summary.outcomes[1].status is KeyStatus.DUPLICATE
        assert len(node.submitted) == 1

    async def test_many_inputs_are_batched(self, protocol_params, make_output, lines) -> None:
        key = _signer(1)
        node = FakeNode(
            protocol_params, {_address(key): [make_output(100_000) for _ in range(130)]}
        )

        summary = await _orchestrator(node, lines).run([key])

        assert summary.ok
        assert [len(p["essence"]["inputs"]) for p in node.submitted] == [128, 2]
        assert len(summary.outcomes[0].transaction_ids) == 2
        assert len(lines) == 4


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestConsolidationFailures:
    async def test_confirmation_timeout_keeps_sent_line(
        self, protocol_params, make_output, lines
    ) -> None:
        a, b = _signer(1), _signer(2)
        node = FakeNode(
            protocol_params,
            {_address(a): [make_output(5_000_000)], _address(b): [make_output(1_000_000)]},
        )
        node.confirm_errors[0] = ConfirmationTimeout("0xblock0", 40)

        summary = await _orchestrator(node, lines).run([a, b])

        failed = summary.outcomes[0]
        assert failed.status is KeyStatus.FAILED
        assert isinstance(failed.error, ConfirmationTimeout)
        assert failed.error.key_index == 0
        assert failed.error.stage == Stage.AWAIT_CONFIRMATION
        assert lines[0].endswith("sent in block 0xblock0")
        assert not any("included in block 0xblock0" in line for line in lines)
        # the next key still runs
        assert summary.outcomes[1].status is KeyStatus.SENT
        assert summary.ok is False

    async def test_below_storage_deposit(self, protocol_params, make_output, lines) -> None:
        key = _signer(1)
        node = FakeNode(protocol_params, {_address(key): [make_output(1_000)]})

        summary = await _orchestrator(node, lines).run([key])

        outcome = summary.outcomes[0]
        assert isinstance(outcome.error, OutputConstructionError)
        assert outcome.error.stage == Stage.BUILD_TRANSACTION
        assert outcome.error.minimum == 42_600
        assert node.submitted == []
        assert lines == []

    async def test_submission_rejected(self, protocol_params, make_output, lines) -> None:
        key = _signer(1)
        node = FakeNode(protocol_params, {_address(key): [make_output(5_000_000)]})
        node.submit_errors[0] = SubmissionError("rejected")

        summary = await _orchestrator(node, lines).run([key])

        assert summary.outcomes[0].error.stage == Stage.SUBMIT
        assert lines == []

    async def test_query_error_is_per_key(self, protocol_params, make_output, lines) -> None:
        a, b = _signer(1), _signer(2)
        node = FakeNode(protocol_params, {_address(b): [make_output(1_000_000)]})
        node.query_errors[_address(a)] = NodeRequestError("bad request", status_code=400)

        summary = await _orchestrator(node, lines).run([a, b])

        assert summary.outcomes[0].error.stage == Stage.FETCH_OUTPUTS
        assert summary.outcomes[1].status is KeyStatus.SENT

    async def test_malformed_ledger_data_is_per_key(
        self, protocol_params, make_output, lines
    ) -> None:
        a, b = _signer(1), _signer(2)
        node = FakeNode(protocol_params, {_address(b): [make_output(1_000_000)]})
        node.query_errors[_address(a)] = LedgerDataError("invalid native token: {}")

        summary = await _orchestrator(node, lines).run([a, b])

        assert summary.outcomes[0].status is KeyStatus.FAILED
        assert summary.outcomes[0].error.stage == Stage.FETCH_OUTPUTS
        assert summary.outcomes[1].status is KeyStatus.SENT

    async def test_submission_transport_failure_is_per_key(
        self, protocol_params, make_output, lines
    ) -> None:
        a, b = _signer(1), _signer(2)
        node = FakeNode(
            protocol_params,
            {_address(a): [make_output(1_000_000)], _address(b): [make_output(2_000_000)]},
        )
        node.submit_errors[0] = SubmissionError("block submission to https://node.test failed")

        summary = await _orchestrator(node, lines).run([a, b])

        assert summary.outcomes[0].error.stage == Stage.SUBMIT
        assert summary.outcomes[1].status is KeyStatus.SENT
        assert len(node.submitted) == 2

    async def test_node_unavailable_aborts_run(self, protocol_params, make_output, lines) -> None:
        a, b = _signer(1), _signer(2)
        node = FakeNode(protocol_params, {_address(b): [make_output(1_000_000)]})
        node.query_errors[_address(a)] = NodeUnavailable("connection refused")

        with pytest.raises(NodeUnavailable) as info:
            await _orchestrator(node, lines).run([a, b])

        assert info.value.key_index == 0
        assert info.value.stage == Stage.FETCH_OUTPUTS
        assert node.submitted == []

    async def test_recipient_for_other_network(self, protocol_params, lines) -> None:
        node = FakeNode(protocol_params)
        other = to_bech32(Address.ed25519(b"\x33" * 32), "iota")

        with pytest.raises(AddressDecodeError, match="node expects 'rms'"):
            await ConsolidationOrchestrator(node, other, echo=lines.append).run([_signer(1)])
