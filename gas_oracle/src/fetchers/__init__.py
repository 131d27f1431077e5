"""
Gas price fetchers for EVM chains.

This module provides a unified interface for fetching the current gas price
of a chain from its JSON-RPC endpoint.

Usage:
    from gas_oracle.src.fetchers import get_fetcher, get_available_fetchers

    # Get list of available fetchers
    available = get_available_fetchers()
    # ['basefee', 'gasprice']

    # Create a fetcher instance serving two chains
    fetcher = get_fetcher(
        "gasprice",
        endpoints={"ethereum": "https://eth.llamarpc.com", "base": "https://mainnet.base.org"},
    )
    sample = await fetcher.fetch_sample("ethereum")
"""

# Import base classes and utilities
from .base import (
    FETCHER_REGISTRY,
    BaseFetcher,
    FetcherConfigError,
    FetcherError,
    FetcherHTTPError,
    FetcherRPCError,
    RawSample,
    get_available_fetchers,
    get_fetcher,
    parse_quantity,
    register_fetcher,
)

# Import all fetcher implementations to trigger registration
from .basefee import BaseFeeFetcher
from .gasprice import GasPriceFetcher

__all__ = [
    # Base classes
    "BaseFetcher",
    "RawSample",
    "FetcherError",
    "FetcherConfigError",
    "FetcherHTTPError",
    "FetcherRPCError",
    # Registry functions
    "register_fetcher",
    "get_fetcher",
    "get_available_fetchers",
    "parse_quantity",
    "FETCHER_REGISTRY",
    # Fetcher implementations
    "BaseFeeFetcher",
    "GasPriceFetcher",
]
