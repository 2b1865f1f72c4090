#!/usr/bin/env python3
"""Display the time-locked balances of a list of private keys.

    timed-balance --node-url <url> --keys <key1>,<key2> [--currency usd]

Prints one row per unlock time with the amount unlocking then, its fiat
value and the cumulative totals.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

from iota_funds.engine.aggregator import with_cumulative
from iota_funds.engine.price import PriceService
from iota_funds.engine.report import collect_timed_balances, print_table
from iota_funds.ledger.client import NodeClient
from iota_funds.tools.common import (
    EXIT_FAILURE,
    EXIT_OK,
    base_parser,
    load_config,
    require,
    run,
    setup_logging,
)
from iota_funds.wallet.keys import decode_private_keys

if TYPE_CHECKING:
    from collections.abc import Sequence

    from iota_funds.config.settings import AppConfig

logger = logging.getLogger(__name__)


async def timed_balance(config: AppConfig) -> int:
    """Collect, price and print the timed balances; returns the exit code."""
    signers = decode_private_keys(config.keys)
    async with NodeClient(config.node_url, config.node) as node:
        reference_time = await node.get_reference_time()
        collected = await collect_timed_balances(node, signers, reference_time=reference_time)

    prices = PriceService(config.price)
    await prices.connect()
    try:
        rate = await prices.get_rate(config.price.currency)
    finally:
        await prices.close()

    print_table(with_cumulative(collected.balances), rate, config.price.currency)
    for error in collected.failed:
        print(f"error: {error}", file=sys.stderr)
    return EXIT_FAILURE if collected.failed else EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    parser = base_parser("Display the time-locked balances of a list of private keys.")
    parser.add_argument(
        "-c",
        "--currency",
        help="Currency to display the value in (default: eur) [env: IOTAFUNDS_PRICE__CURRENCY]",
    )
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose)

    config = load_config(parser, args, currency=args.currency)
    require(parser, config, "node_url", "private_keys")
    return run(lambda: timed_balance(config))


if __name__ == "__main__":
    sys.exit(main())
