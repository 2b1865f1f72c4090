"""Shared command line plumbing for the tools."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from pydantic import ValidationError

from iota_funds import __version__
from iota_funds.config.settings import DEFAULT_ENV_FILE, AppConfig
from iota_funds.errors.funds_errors import FundsError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def base_parser(description: str) -> argparse.ArgumentParser:
    """Parser with the flags both tools share."""
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        "-n",
        "--node-url",
        help="Node URL to issue requests to [env: NODE_URL]",
    )
    parser.add_argument(
        "--keys",
        help="Comma separated Base58 encoded private keys [env: PRIVATE_KEYS]",
    )
    parser.add_argument(
        "--env-file",
        default=DEFAULT_ENV_FILE,
        help="Environment file loaded before parsing, if present (default: %(default)s)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


# Command line flag (and environment variable) behind each required field
_FIELD_FLAGS = {
    "node_url": "--node-url (NODE_URL)",
    "private_keys": "--keys (PRIVATE_KEYS)",
    "recipient_address": "--recipient-address (RECIPIENT_ADDRESS)",
}


def load_config(
    parser: argparse.ArgumentParser, args: argparse.Namespace, **extra: str | None
) -> AppConfig:
    """Merge parsed flags over the environment and the env file.

    Invalid values from any source end the program with a usage error.
    """
    try:
        return AppConfig.load(
            env_file=args.env_file,
            node_url=args.node_url,
            private_keys=args.keys,
            **extra,
        )
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        parser.error(f"invalid configuration: {problems}")


def require(parser: argparse.ArgumentParser, config: AppConfig, *fields: str) -> None:
    """Exit with a usage error if any of *fields* is empty."""
    missing = [name for name in fields if not getattr(config, name)]
    if missing:
        flags = ", ".join(_FIELD_FLAGS.get(name, name) for name in missing)
        parser.error(f"missing required value(s): {flags}")


def setup_logging(*, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def run(main: Callable[[], Awaitable[int]]) -> int:
    """Run an async entry point, mapping errors to exit codes."""
    try:
        return asyncio.run(main())
    except FundsError as exc:
        logger.debug("Aborted", exc_info=exc)
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    except KeyboardInterrupt:
        return 130

