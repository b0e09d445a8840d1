#!/usr/bin/env python3
"""Price Bridge.

Listens for new-round events of the ledger's price feeds, fetches current
USD quotes and submits them back to the ledger as signed transactions.

Usage: python -m price_bridge.main 127.0.0.1:9944
"""

import argparse
import asyncio
import logging
import os
import sys
from enum import IntEnum

from .src.fetchers import get_available_fetchers, get_fetcher
from .src.LedgerClient import LedgerConnectionError
from .src.PriceBridge import DEFAULT_RESYNC_AFTER, PriceBridge
from .src.PriceSource import PriceSource
from .src.SubstrateLedgerClient import SubstrateLedgerClient

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


class ExitCode(IntEnum):
    """Process exit codes."""

    OK = 0
    FATAL = 1
    USAGE = 2
    LEDGER_UNREACHABLE = 3
    INTERRUPTED = 130


def websocket_url(node: str) -> str:
    """Derive the node's websocket URL from its network address.

    :param node: "host:port" or a full ws:// / wss:// URL.
    :returns: Websocket URL.
    :raises ValueError: If the address is empty or has no port.

    .. code-block:: python

        >>> websocket_url("127.0.0.1:9944")
        'ws://127.0.0.1:9944'
    """
    node = node.strip()
    if node.startswith(("ws://", "wss://")):
        return node
    host, sep, port = node.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"Expected host:port, got '{node}'")
    return f"ws://{node}"


def parse_env_api_keys() -> dict[str, str]:
    """Parse API keys from individual environment variables.

    Looks for: API_KEY_COINGECKO, API_KEY_CRYPTOCOMPARE, etc.

    :returns: Dict mapping source names to API keys.
    """
    api_keys = {}
    prefixes = ["API_KEY_", "APIKEY_"]

    for key, value in os.environ.items():
        for prefix in prefixes:
            if key.startswith(prefix) and value:
                source = key[len(prefix):].lower()
                api_keys[source] = value
                break

    return api_keys


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    available_sources = get_available_fetchers()

    parser = argparse.ArgumentParser(
        description="Price Bridge: External quotes into on-chain price feeds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Available quote sources:
  {', '.join(available_sources)}

Examples:
  # Local development node with default dev accounts
  python -m price_bridge.main 127.0.0.1:9944

  # Remote node, CryptoCompare quotes, custom signer
  python -m price_bridge.main node.example.org:9944 \\
      --source cryptocompare --signer-uri "//Oracle"

Environment variables (CLI args take precedence):
  NODE_ADDRESS, SIGNER_URI, ADMIN_URI, ORACLE_ADMIN_URI, SOURCE,
  MORTALITY_PERIOD, RECONNECT_DELAY, MAX_RECONNECTS, RESYNC_AFTER,
  FETCH_TIMEOUT, API_KEY_COINGECKO, API_KEY_CRYPTOCOMPARE
""",
    )

    parser.add_argument(
        "node",
        nargs="?" if os.environ.get("NODE_ADDRESS") else None,
        help="Ledger node address as host:port (e.g., 127.0.0.1:9944)",
        default=os.environ.get("NODE_ADDRESS"),
    )

    parser.add_argument(
        "--signer-uri",
        dest="signer_uri",
        type=str,
        help="Secret URI of the account submitting prices (default: //Charlie)",
        default=os.environ.get("SIGNER_URI") or "//Charlie",
    )

    parser.add_argument(
        "--admin-uri",
        dest="admin_uri",
        type=str,
        help="Secret URI of the sudo account creating feeds (default: //Alice)",
        default=os.environ.get("ADMIN_URI") or "//Alice",
    )

    parser.add_argument(
        "--oracle-admin-uri",
        dest="oracle_admin_uri",
        type=str,
        help="Secret URI of the admin registered on created feeds (default: //Bob)",
        default=os.environ.get("ORACLE_ADMIN_URI") or "//Bob",
    )

    parser.add_argument(
        "--source",
        type=str,
        help=f"Quote source. Available: {', '.join(available_sources)}",
        default=os.environ.get("SOURCE") or "coingecko",
    )

    parser.add_argument(
        "--api-key",
        dest="api_key",
        type=str,
        help="API key for the quote source (or API_KEY_<SOURCE>)",
        default=None,
    )

    parser.add_argument(
        "--mortality-period",
        dest="mortality_period",
        type=int,
        help="Blocks a submission stays valid (default: 5)",
        default=os.environ.get("MORTALITY_PERIOD") or "5",
    )

    parser.add_argument(
        "--reconnect-delay",
        dest="reconnect_delay",
        type=float,
        help="Seconds to wait before reconnecting the event stream (default: 1.0)",
        default=os.environ.get("RECONNECT_DELAY") or "1.0",
    )

    parser.add_argument(
        "--max-reconnects",
        dest="max_reconnects",
        type=int,
        help="Consecutive reconnects before giving up (default: 0, never give up)",
        default=os.environ.get("MAX_RECONNECTS") or "0",
    )

    parser.add_argument(
        "--resync-after",
        dest="resync_after",
        type=int,
        help=(
            "Failed submissions in a row before the nonce is re-read from the "
            f"ledger (default: {DEFAULT_RESYNC_AFTER}, 0 to disable)"
        ),
        default=os.environ.get("RESYNC_AFTER") or str(DEFAULT_RESYNC_AFTER),
    )

    parser.add_argument(
        "--fetch-timeout",
        dest="fetch_timeout",
        type=float,
        help="Timeout for quote requests in seconds (default: 10.0)",
        default=os.environ.get("FETCH_TIMEOUT") or "10.0",
    )

    parser.add_argument(
        "--skip-bootstrap",
        dest="skip_bootstrap",
        action="store_true",
        help="Do not create feeds on startup",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the Price Bridge CLI.

    :param argv: Command line arguments (default: sys.argv[1:]).
    :returns: Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate arguments
    try:
        url = websocket_url(args.node)
    except ValueError as e:
        parser.error(str(e))

    if args.mortality_period < 1:
        parser.error("--mortality-period must be at least 1 block")

    if args.reconnect_delay < 0:
        parser.error("--reconnect-delay must not be negative")

    if args.max_reconnects < 0:
        parser.error("--max-reconnects must not be negative")

    if args.resync_after < 0:
        parser.error("--resync-after must not be negative")

    if args.fetch_timeout <= 0:
        parser.error("--fetch-timeout must be positive")

    source = args.source.strip().lower()
    if source not in get_available_fetchers():
        parser.error(
            f"Unknown source: {source}. "
            f"Available: {', '.join(get_available_fetchers())}"
        )

    api_key = args.api_key or parse_env_api_keys().get(source)

    # Log configuration
    logger.info("=" * 60)
    logger.info("Price Bridge - Chainlink Feed Submission")
    logger.info("=" * 60)
    logger.info(f"Node:              {url}")
    logger.info(f"Quote Source:      {source}{' [key]' if api_key else ''}")
    logger.info(f"Mortality:         {args.mortality_period} blocks")
    logger.info(f"Reconnect Delay:   {args.reconnect_delay}s")
    logger.info(
        f"Max Reconnects:    {args.max_reconnects}"
        if args.max_reconnects
        else "Max Reconnects:    unbounded"
    )
    logger.info(
        f"Nonce Resync:      after {args.resync_after} failures"
        if args.resync_after
        else "Nonce Resync:      startup only"
    )
    logger.info(f"Fetch Timeout:     {args.fetch_timeout}s")
    logger.info(f"Create Feeds:      {'no' if args.skip_bootstrap else 'if missing'}")
    logger.info("=" * 60)

    try:
        ledger = SubstrateLedgerClient(
            url,
            signer_uri=args.signer_uri,
            admin_uri=args.admin_uri,
            oracle_admin_uri=args.oracle_admin_uri,
        )
        price_source = PriceSource(
            get_fetcher(source, api_key=api_key, timeout=args.fetch_timeout),
            fetch_timeout=args.fetch_timeout,
        )
        bridge = PriceBridge(
            ledger=ledger,
            price_source=price_source,
            mortality_period=args.mortality_period,
            reconnect_delay=args.reconnect_delay,
            max_reconnects=args.max_reconnects or None,
            resync_after=args.resync_after,
            create_feeds=not args.skip_bootstrap,
        )
        asyncio.run(bridge.run())
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        return ExitCode.INTERRUPTED
    except LedgerConnectionError as e:
        logger.error(f"Ledger unreachable: {e}")
        return ExitCode.LEDGER_UNREACHABLE
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        return ExitCode.FATAL
    return ExitCode.OK


if __name__ == "__main__":
    sys.exit(main())
