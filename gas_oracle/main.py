#!/usr/bin/env python3
"""ROFL Gas Oracle.

Fetches gas prices from multiple EVM chains on a fixed interval, keeps a
rolling history per chain to flag buy signals, and publishes the results
to an on-chain GasOracle contract.

Start via Docker Compose with env vars. CLI args take precedence over the
environment.
"""

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Mapping

from .src.ChainConfig import DEFAULT_CHAINS, ConfigurationError, load_chains
from .src.GasOracle import GasOracle
from .src.fetchers import get_available_fetchers

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def parse_rpc_urls(rpc_str: str | None) -> dict[str, str]:
    """Parse comma-separated RPC overrides into a dictionary.

    Format: chain1=url1,chain2=url2
    Example: ethereum=https://eth.example.org,base=https://base.example.org

    :param rpc_str: Comma-separated RPC override string.
    :returns: Dict mapping chain names to RPC URLs.
    """
    if not rpc_str:
        return {}

    rpc_urls = {}
    for item in rpc_str.split(","):
        item = item.strip()
        if "=" in item:
            chain, url = item.split("=", 1)
            rpc_urls[chain.strip().lower()] = url.strip()
    return rpc_urls


def parse_chain_list(chains_str: str | None) -> list[str] | None:
    """Parse the comma-separated list of chains to enable.

    :param chains_str: Chain names, e.g. "ethereum,base". Empty or "all"
        enables every default chain.
    :returns: List of chain names, or None for all.
    """
    if not chains_str or chains_str.strip().lower() == "all":
        return None
    return [c.strip().lower() for c in chains_str.split(",") if c.strip()]


def env_float(environ: Mapping[str, str], key: str, default: float) -> float:
    return float(environ.get(key) or default)


def build_parser(environ: Mapping[str, str] = os.environ) -> argparse.ArgumentParser:
    """Build the argument parser with environment-based defaults."""
    available_fetchers = get_available_fetchers()
    default_chains = ", ".join(c.name for c in DEFAULT_CHAINS)

    parser = argparse.ArgumentParser(
        description="ROFL Gas Oracle: Multi-chain gas price feed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Default chains:
  {default_chains}

Examples:
  # Demo mode: fetch and log gas prices only
  python -m gas_oracle.main --chains ethereum,base

  # Publish to a GasOracle contract on Sapphire testnet every second
  python -m gas_oracle.main --network sapphire-testnet \\
      --oracle-address 0x... --interval-ms 1000

  # Monitor an extra chain
  python -m gas_oracle.main --chains ethereum,linea \\
      --rpc linea=https://rpc.linea.build

Environment variables (CLI args take precedence):
  CHAINS, UPDATE_INTERVAL_MS, BATCH_SIZE, HISTORY_SIZE, FETCH_TIMEOUT,
  MAX_CONCURRENCY, STATS_PERIOD, BUY_THRESHOLD_PERCENT, GRACE_PERIOD,
  NETWORK, ORACLE_ADDRESS, FETCHER, RPC_URLS, ETHEREUM_RPC, BASE_RPC, etc.
""",
    )

    parser.add_argument(
        "--chains",
        type=str,
        help="Comma-separated chains to monitor (default: all)",
        default=environ.get("CHAINS") or "all",
    )

    parser.add_argument(
        "--rpc",
        type=str,
        help="Comma-separated RPC overrides (e.g., ethereum=https://...,base=https://...)",
        default=environ.get("RPC_URLS"),
    )

    parser.add_argument(
        "--fetcher",
        type=str,
        choices=available_fetchers,
        help="How gas prices are read from each chain (default: gasprice)",
        default=environ.get("FETCHER") or "gasprice",
    )

    parser.add_argument(
        "--interval-ms",
        dest="interval_ms",
        type=int,
        help="Milliseconds between update cycles (default: 500)",
        default=int(environ.get("UPDATE_INTERVAL_MS") or "500"),
    )

    parser.add_argument(
        "--batch-size",
        dest="batch_size",
        type=int,
        help="Publish as one batch transaction from this many chains (default: 5)",
        default=int(environ.get("BATCH_SIZE") or "5"),
    )

    parser.add_argument(
        "--window-size",
        dest="window_size",
        type=int,
        help="Prices kept per chain for high/low (default: 1000)",
        default=int(environ.get("HISTORY_SIZE") or "1000"),
    )

    parser.add_argument(
        "--fetch-timeout",
        dest="fetch_timeout",
        type=float,
        help="Per-chain fetch timeout in seconds (default: 80%% of interval, max 10)",
        default=float(environ["FETCH_TIMEOUT"]) if environ.get("FETCH_TIMEOUT") else None,
    )

    parser.add_argument(
        "--max-concurrency",
        dest="max_concurrency",
        type=int,
        help="Maximum concurrent chain fetches (default: 10)",
        default=int(environ.get("MAX_CONCURRENCY") or "10"),
    )

    parser.add_argument(
        "--stats-period",
        dest="stats_period",
        type=float,
        help="Seconds between stats reports (default: 60)",
        default=env_float(environ, "STATS_PERIOD", 60.0),
    )

    parser.add_argument(
        "--buy-threshold",
        dest="buy_threshold",
        type=int,
        help="Savings percent above which a price is a buy signal (default: 10)",
        default=int(environ.get("BUY_THRESHOLD_PERCENT") or "10"),
    )

    parser.add_argument(
        "--grace-period",
        dest="grace_period",
        type=float,
        help="Seconds to wait for an in-flight cycle on shutdown (default: no limit)",
        default=float(environ["GRACE_PERIOD"]) if environ.get("GRACE_PERIOD") else None,
    )

    parser.add_argument(
        "--network",
        type=str,
        help="Network of the oracle contract (sapphire, sapphire-testnet, sapphire-localnet)",
        default=environ.get("NETWORK") or "sapphire-localnet",
    )

    parser.add_argument(
        "--oracle-address",
        dest="oracle_address",
        type=str,
        help="Address of the GasOracle contract (omit for demo mode)",
        default=environ.get("ORACLE_ADDRESS"),
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    return parser


def main() -> None:
    """Main entry point for the ROFL Gas Oracle CLI."""
    parser = build_parser()
    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate arguments
    if args.interval_ms < 1:
        parser.error("--interval-ms must be at least 1")

    if args.batch_size < 1:
        parser.error("--batch-size must be at least 1")

    if args.window_size < 1:
        parser.error("--window-size must be at least 1")

    if args.max_concurrency < 1:
        parser.error("--max-concurrency must be at least 1")

    interval = args.interval_ms / 1000

    try:
        chains = load_chains(
            enabled=parse_chain_list(args.chains),
            rpc_overrides=parse_rpc_urls(args.rpc),
        )
    except ConfigurationError as e:
        parser.error(str(e))

    enabled = [c for c in chains if c.enabled]

    # Log configuration
    logger.info("=" * 60)
    logger.info("ROFL Gas Oracle")
    logger.info("=" * 60)
    logger.info(f"Network:           {args.network}")
    logger.info(f"Oracle:            {args.oracle_address or 'demo mode'}")
    logger.info(f"Chains:            {', '.join(c.name for c in enabled)}")
    logger.info(f"Fetcher:           {args.fetcher}")
    logger.info(f"Update Interval:   {args.interval_ms}ms")
    logger.info(f"Batch Size:        {args.batch_size}")
    logger.info(f"History Size:      {args.window_size}")
    logger.info(f"Buy Threshold:     {args.buy_threshold}%")
    logger.info("=" * 60)

    try:
        gas_oracle = GasOracle(
            network_name=args.network,
            chains=chains,
            oracle_address=args.oracle_address,
            fetcher=args.fetcher,
            interval=interval,
            batch_size=args.batch_size,
            window_size=args.window_size,
            fetch_timeout=args.fetch_timeout,
            max_concurrency=args.max_concurrency,
            stats_period=args.stats_period,
            buy_threshold_percent=args.buy_threshold,
            grace_period=args.grace_period,
        )
        asyncio.run(gas_oracle.run())
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
