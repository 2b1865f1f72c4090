#!/usr/bin/env python3
"""Send all unlocked funds of a list of private keys to one address.

    send-all --node-url <url> --keys <key1>,<key2> --recipient-address iota1q...

``NODE_URL``, ``PRIVATE_KEYS`` and ``RECIPIENT_ADDRESS`` may be given in
the environment or a ``.env`` file instead.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

from iota_funds.engine.consolidation import ConsolidationOrchestrator
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


async def send_all(config: AppConfig) -> int:
    """Consolidate the funds of all configured keys; returns the exit code."""
    signers = decode_private_keys(config.keys)
    async with NodeClient(config.node_url, config.node) as node:
        orchestrator = ConsolidationOrchestrator(node, config.recipient_address)
        summary = await orchestrator.run(signers)

    logger.info(
        "%d key(s) sent %.6f IOTA, %d failed",
        len(summary.sent),
        summary.total_sent / 1_000_000,
        len(summary.failed),
    )
    for outcome in summary.failed:
        print(f"error: {outcome.error}", file=sys.stderr)
    return EXIT_OK if summary.ok else EXIT_FAILURE


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    parser = base_parser("Send all unlocked funds of a list of private keys to one address.")
    parser.add_argument(
        "--recipient-address",
        help="Bech32 address receiving the funds [env: RECIPIENT_ADDRESS]",
    )
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose)

    config = load_config(parser, args, recipient_address=args.recipient_address)
    require(parser, config, "node_url", "private_keys", "recipient_address")
    return run(lambda: send_all(config))


if __name__ == "__main__":
    sys.exit(main())
