"""CoinGecko fetcher.

Endpoint: https://api.coingecko.com/api/v3/simple/price?ids={ids}&vs_currencies={quote}
Rate Limit: 30 calls/min (free), higher with API key
"""

import logging
from decimal import Decimal

from .base import BaseFetcher, FetcherResponseError, register_fetcher

logger = logging.getLogger(__name__)


@register_fetcher
class CoinGeckoFetcher(BaseFetcher):
    """Fetcher for the CoinGecko simple price API.

    API tiers:
        - Free: api.coingecko.com (no key, 30 calls/min)
        - Demo: api.coingecko.com + x-cg-demo-api-key header
        - Pro: pro-api.coingecko.com + x-cg-pro-api-key header

    To use a demo key, prefix with "demo:": API_KEY_COINGECKO=demo:CG-xxxxx
    Pro keys need no prefix: API_KEY_COINGECKO=xxxxx
    """

    name = "coingecko"
    BASE_URL_FREE = "https://api.coingecko.com/api/v3"
    BASE_URL_PRO = "https://pro-api.coingecko.com/api/v3"

    # Map ticker symbols to CoinGecko IDs
    COIN_IDS = {
        "btc": "bitcoin",
        "eth": "ethereum",
        "dot": "polkadot",
        "ksm": "kusama",
    }

    def __init__(self, api_key: str | None = None, timeout: float | None = None):
        """Initialize with optional demo: prefix handling."""
        self._is_demo = False
        if api_key and api_key.lower().startswith("demo:"):
            self._is_demo = True
            api_key = api_key[5:]  # Strip "demo:" prefix
        super().__init__(api_key=api_key, timeout=timeout)

    @property
    def base_url(self) -> str:
        """Return appropriate base URL based on API key type."""
        if not self.has_api_key:
            return self.BASE_URL_FREE
        # Demo keys use free URL, pro keys use pro URL
        return self.BASE_URL_FREE if self._is_demo else self.BASE_URL_PRO

    @property
    def api_header(self) -> tuple[str, str] | None:
        """Return appropriate header name and value for API key."""
        if not self.api_key:
            return None
        header_name = "x-cg-demo-api-key" if self._is_demo else "x-cg-pro-api-key"
        return (header_name, self.api_key)

    def supports_symbol(self, symbol: str) -> bool:
        return symbol.lower() in self.COIN_IDS

    async def fetch_prices(
        self, symbols: list[str], quote: str = "usd"
    ) -> dict[str, Decimal]:
        """Fetch prices for several coins in a single API call.

        :param symbols: Ticker symbols (e.g., ["eth", "btc"]).
        :param quote: Quote currency (default: "usd").
        :returns: Dict mapping symbol to price for every coin in the response.
        :raises FetcherError: On transport or HTTP errors.
        :raises FetcherResponseError: If the body has an unexpected shape.
        """
        ids = {
            self.COIN_IDS[s.lower()]: s.lower()
            for s in symbols
            if s.lower() in self.COIN_IDS
        }
        unknown = [s for s in symbols if s.lower() not in self.COIN_IDS]
        if unknown:
            logger.warning(f"[coingecko] Unknown coins: {unknown}")
        if not ids:
            return {}

        headers = {}
        if self.api_header:
            header_name, header_value = self.api_header
            headers[header_name] = header_value

        quote_lower = quote.lower()
        response = await self._get(
            f"{self.base_url}/simple/price",
            params={"ids": ",".join(ids), "vs_currencies": quote_lower},
            headers=headers if headers else None,
        )
        data = self._json(response)
        if not isinstance(data, dict):
            raise FetcherResponseError(f"Unexpected response: {data!r}")

        # Response format: {"bitcoin": {"usd": 12345.67}, "ethereum": {"usd": 456.78}}
        prices: dict[str, Decimal] = {}
        for coin_id, symbol in ids.items():
            entry = data.get(coin_id)
            if entry is None:
                continue
            if not isinstance(entry, dict) or quote_lower not in entry:
                raise FetcherResponseError(
                    f"No {quote_lower} price for {coin_id}: {entry!r}"
                )
            prices[symbol] = self._to_decimal(entry[quote_lower])
        return prices
