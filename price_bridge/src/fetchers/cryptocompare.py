"""CryptoCompare fetcher.

Endpoint: https://min-api.cryptocompare.com/data/pricemulti
Rate Limit: 100,000 calls/month (free tier)
"""

import logging
from decimal import Decimal

from .base import BaseFetcher, FetcherResponseError, register_fetcher

logger = logging.getLogger(__name__)


@register_fetcher
class CryptoCompareFetcher(BaseFetcher):
    """Fetcher for CryptoCompare API.

    Uses the min-api pricemulti endpoint which has generous free tier limits.
    """

    name = "cryptocompare"
    BASE_URL = "https://min-api.cryptocompare.com/data"

    async def fetch_prices(
        self, symbols: list[str], quote: str = "usd"
    ) -> dict[str, Decimal]:
        """Fetch prices for several symbols in a single API call.

        :param symbols: Ticker symbols (e.g., ["eth", "btc"]).
        :param quote: Quote currency (default: "usd").
        :returns: Dict mapping symbol to price for every symbol in the response.
        :raises FetcherError: On transport or HTTP errors.
        :raises FetcherResponseError: On API errors or unexpected bodies.
        """
        if not symbols:
            return {}

        headers = {}
        if self.api_key:
            headers["authorization"] = f"Apikey {self.api_key}"

        quote_upper = quote.upper()
        response = await self._get(
            f"{self.BASE_URL}/pricemulti",
            params={
                "fsyms": ",".join(s.upper() for s in symbols),
                "tsyms": quote_upper,
            },
            headers=headers if headers else None,
        )
        data = self._json(response)
        if not isinstance(data, dict):
            raise FetcherResponseError(f"Unexpected response: {data!r}")

        # Check for error response
        if data.get("Response") == "Error":
            message = data.get("Message", "Unknown error")
            raise FetcherResponseError(f"API error: {message}")

        # Response format: {"BTC": {"USD": 12345.67}, "ETH": {"USD": 456.78}}
        prices: dict[str, Decimal] = {}
        for symbol in symbols:
            entry = data.get(symbol.upper())
            if entry is None:
                continue
            if not isinstance(entry, dict) or quote_upper not in entry:
                raise FetcherResponseError(
                    f"No {quote_upper} price for {symbol.upper()}: {entry!r}"
                )
            prices[symbol.lower()] = self._to_decimal(entry[quote_upper])
        return prices
