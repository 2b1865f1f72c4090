"""Timed balance report — collect balances per unlock time and render them.

Balances of all keys are merged into one mapping keyed by unlock
timestamp (the time-lock if the output has one, else the time it was
booked). The renderer turns the cumulative view into a square-bordered
rich table:

    ┌─────────────────────┬───────────────┬───────────┬─ ...
    │         unlock_time │        amount │     value │
    ├─────────────────────┼───────────────┼───────────┼─ ...
    │ 2023-07-22 04:26:40 │ 3.000000 IOTA │  0.60 EUR │
    └─────────────────────┴───────────────┴───────────┴─ ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from rich import box
from rich.console import Console
from rich.table import Table

from iota_funds.engine.aggregator import aggregate_by_unlock
from iota_funds.engine.price import BASE_UNITS_PER_TOKEN, convert
from iota_funds.errors.chain_errors import NodeRequestError
from iota_funds.ledger.client import OutputQuery
from iota_funds.wallet.address import to_bech32

if TYPE_CHECKING:
    from collections.abc import Sequence

    from iota_funds.engine.aggregator import BalanceRow
    from iota_funds.errors.funds_errors import FundsError
    from iota_funds.ledger.client import NodeClient
    from iota_funds.wallet.keys import PrivateKeySigner

logger = logging.getLogger(__name__)

COLUMNS = ("unlock_time", "amount", "value", "cumulative_amount", "cumulative_value")

_CONSOLE_WIDTH = 240


@dataclass
class TimedBalances:
    """Merged balances of all keys plus the keys that could not be queried."""

    balances: dict[int, int] = field(default_factory=dict)
    failed: list[FundsError] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.balances.values())


async def collect_timed_balances(
    node: NodeClient,
    signers: Sequence[PrivateKeySigner],
    *,
    reference_time: int,
) -> TimedBalances:
    """Query every key's first address and merge its balances by unlock time.

    A key whose queries the node answers with an error is logged and
    skipped; connection failures propagate.
    """
    hrp = (await node.get_protocol_parameters()).bech32_hrp
    result = TimedBalances()
    seen: set[str] = set()
    for index, signer in enumerate(signers):
        address = to_bech32(signer.derive_first_address(), hrp)
        if address in seen:
            logger.warning("Key #%d repeats address %s, skipping", index, address)
            continue
        seen.add(address)
        try:
            output_ids = await node.basic_output_ids(
                OutputQuery(
                    address=address,
                    has_expiration=False,
                    has_storage_deposit_return=False,
                )
            )
            records = await node.get_outputs(output_ids)
        except NodeRequestError as exc:
            logger.error("Skipping key #%d (%s): %s", index, address, exc.message)
            result.failed.append(exc.at(index, "fetch_outputs"))
            continue
        logger.debug("Key #%d (%s): %d output(s)", index, address, len(records))
        aggregate_by_unlock(records, reference_time, into=result.balances)
    return result


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def format_unlock_time(timestamp: int) -> str:
    """Seconds since the epoch as ``YYYY-MM-DD HH:MM:SS`` in UTC."""
    return datetime.fromtimestamp(timestamp, tz=UTC).strftime("%Y-%m-%d %H:%M:%S")


def format_amount(amount: int, unit: str = "IOTA") -> str:
    return f"{amount / BASE_UNITS_PER_TOKEN:.6f} {unit}"


def format_value(amount: int, rate: float, currency: str) -> str:
    return f"{convert(amount, rate):.2f} {currency.upper()}"


def build_table(
    rows: Sequence[BalanceRow], rate: float, currency: str, *, unit: str = "IOTA"
) -> Table:
    """Build the cumulative balance table, every column right-aligned."""
    table = Table(box=box.SQUARE)
    for name in COLUMNS:
        table.add_column(name, justify="right", no_wrap=True)
    for row in rows:
        table.add_row(
            format_unlock_time(row.timestamp),
            format_amount(row.amount, unit),
            format_value(row.amount, rate, currency),
            format_amount(row.cumulative, unit),
            format_value(row.cumulative, rate, currency),
        )
    return table


def _console(**kwargs: Any) -> Console:
    # Wide enough that the table never wraps, whatever the terminal size
    return Console(width=_CONSOLE_WIDTH, highlight=False, **kwargs)


def render_table(
    rows: Sequence[BalanceRow], rate: float, currency: str, *, unit: str = "IOTA"
) -> str:
    """Render the table to plain text, without styling."""
    console = _console(color_system=None)
    with console.capture() as capture:
        console.print(build_table(rows, rate, currency, unit=unit))
    return "\n".join(line.rstrip() for line in capture.get().splitlines())


def print_table(
    rows: Sequence[BalanceRow],
    rate: float,
    currency: str,
    *,
    console: Console | None = None,
) -> None:
    """Print the table to *console* (standard output by default)."""
    (console or _console()).print(build_table(rows, rate, currency))
