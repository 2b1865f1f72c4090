"""Balance aggregation — spendable totals and unlock-time buckets.

Amounts are plain ints in base units. Sums are not range checked: the
whole token supply fits into u64, so any realistic total does too.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from iota_funds.engine.eligibility import classify

if TYPE_CHECKING:
    from collections.abc import Iterable

    from iota_funds.ledger.models import BasicOutput, OutputWithMetadata


@dataclass(frozen=True)
class BalanceRow:
    """One unlock-time bucket with the running total up to and including it."""

    timestamp: int
    amount: int
    cumulative: int


def _unique(outputs: Iterable[OutputWithMetadata]) -> Iterable[OutputWithMetadata]:
    seen: set[str] = set()
    for item in outputs:
        if item.output_id in seen:
            continue
        seen.add(item.output_id)
        yield item


def select_spendable(
    outputs: Iterable[OutputWithMetadata], reference_time: int
) -> list[tuple[str, BasicOutput]]:
    """Return ``(output id, output)`` for every immediately spendable output.

    Zero-amount outputs are dropped; each output id appears at most once.
    """
    return [
        (item.output_id, item.output)
        for item in _unique(outputs)
        if item.output.amount > 0
        and classify(item.output, item.metadata, reference_time).spendable
    ]


def aggregate_spendable(outputs: Iterable[OutputWithMetadata], reference_time: int) -> int:
    """Sum of all immediately spendable amounts; 0 means nothing to send."""
    return sum(output.amount for _, output in select_spendable(outputs, reference_time))


def aggregate_by_unlock(
    outputs: Iterable[OutputWithMetadata],
    reference_time: int,
    into: dict[int, int] | None = None,
) -> dict[int, int]:
    """Add every reportable amount to the bucket of its unlock timestamp.

    Args:
        outputs: Outputs of one or more addresses.
        reference_time: The run's reference time.
        into: Mapping to merge into (shared across keys); a new one if omitted.

    Returns:
        The mapping ``timestamp -> amount``.
    """
    balances = {} if into is None else into
    for item in _unique(outputs):
        result = classify(item.output, item.metadata, reference_time)
        if not result.reportable or result.bucket_key is None:
            continue
        balances.setdefault(result.bucket_key, 0)
        balances[result.bucket_key] += item.output.amount
    return balances


def with_cumulative(balances: dict[int, int]) -> list[BalanceRow]:
    """Rows in ascending timestamp order, each carrying the running total."""
    rows = []
    cumulative = 0
    for timestamp in sorted(balances):
        amount = balances[timestamp]
        cumulative += amount
        rows.append(BalanceRow(timestamp, amount, cumulative))
    return rows
