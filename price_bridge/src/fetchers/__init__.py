"""
Quote fetchers for external price APIs.

This module provides a unified interface for fetching current USD quotes
for the bridged assets from public price APIs.

Usage:
    from price_bridge.src.fetchers import get_fetcher, get_available_fetchers

    # Get list of available fetchers
    available = get_available_fetchers()
    # ['coingecko', 'cryptocompare']

    # Create a fetcher instance
    fetcher = get_fetcher("coingecko")
    prices = await fetcher.fetch_prices(["eth", "btc"])
"""

# Import base classes and utilities
from .base import (
    FETCHER_REGISTRY,
    BaseFetcher,
    FetcherError,
    FetcherHTTPError,
    FetcherResponseError,
    get_available_fetchers,
    get_fetcher,
    register_fetcher,
)

# Import all fetcher implementations to trigger registration
from .coingecko import CoinGeckoFetcher
from .cryptocompare import CryptoCompareFetcher

__all__ = [
    # Base classes
    "BaseFetcher",
    "FetcherError",
    "FetcherHTTPError",
    "FetcherResponseError",
    # Registry functions
    "register_fetcher",
    "get_fetcher",
    "get_available_fetchers",
    "FETCHER_REGISTRY",
    # Fetcher implementations
    "CoinGeckoFetcher",
    "CryptoCompareFetcher",
]
