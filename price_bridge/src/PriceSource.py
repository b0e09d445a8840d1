"""PriceSource: Current USD quotes for registered assets.

One call to ``fetch_quotes()`` makes exactly one request to the quote API.
There is no caching and no retry; callers decide what a failed fetch
means for the round being processed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from .fetchers import FetcherError

if TYPE_CHECKING:
    from .FeedRegistry import Asset
    from .fetchers import BaseFetcher

logger = logging.getLogger(__name__)

QUOTE_CURRENCY = "usd"


class QuoteFetchError(Exception):
    """Raised when quotes cannot be obtained from the external source."""

    pass


@dataclass(frozen=True)
class PriceQuote:
    """Current USD price of an asset.

    :ivar asset: Quoted asset.
    :ivar usd_price: Price in USD.
    """

    asset: Asset
    usd_price: Decimal


class PriceSource:
    """Fetches quotes for assets through a single quote fetcher.

    :ivar fetcher: Quote API fetcher.
    :ivar fetch_timeout: Overall timeout for one fetch in seconds.
    """

    def __init__(self, fetcher: BaseFetcher, fetch_timeout: float = 10.0) -> None:
        self.fetcher = fetcher
        self.fetch_timeout = fetch_timeout

    async def fetch_quotes(self, assets: Iterable[Asset]) -> dict[Asset, PriceQuote]:
        """Fetch current USD quotes.

        :param assets: Assets to quote.
        :returns: Dict mapping every requested asset to its quote.
        :raises QuoteFetchError: If the source cannot price an asset, is
            unreachable, answers with an unexpected body or leaves out a
            requested asset.
        """
        wanted = list(dict.fromkeys(assets))
        if not wanted:
            return {}

        unsupported = [a.name for a in wanted if not self.fetcher.supports_symbol(a.symbol)]
        if unsupported:
            raise QuoteFetchError(f"[{self.fetcher.name}] Cannot quote {unsupported}")

        symbols = [asset.symbol for asset in wanted]
        try:
            prices = await asyncio.wait_for(
                self.fetcher.fetch_prices(symbols, QUOTE_CURRENCY),
                timeout=self.fetch_timeout,
            )
        except asyncio.TimeoutError as e:
            raise QuoteFetchError(
                f"[{self.fetcher.name}] Timeout after {self.fetch_timeout}s"
            ) from e
        except FetcherError as e:
            raise QuoteFetchError(f"[{self.fetcher.name}] {e}") from e

        missing = [asset.name for asset in wanted if asset.symbol not in prices]
        if missing:
            raise QuoteFetchError(f"[{self.fetcher.name}] No quote for {missing}")

        quotes = {asset: PriceQuote(asset, prices[asset.symbol]) for asset in wanted}
        logger.debug(
            "Quotes from %s: %s",
            self.fetcher.name,
            ", ".join(f"{a.name}=${q.usd_price}" for a, q in quotes.items()),
        )
        return quotes
