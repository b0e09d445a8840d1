"""Base quote fetcher interface and shared HTTP client management.

All quote fetchers inherit from BaseFetcher and implement fetch_prices().
A shared httpx.AsyncClient is used across all fetchers to avoid connection
overhead. Prices are returned as Decimal parsed straight from the JSON
body so no precision is lost before fixed-point conversion.

.. code-block:: python

    @register_fetcher
    class MyFetcher(BaseFetcher):
        name = "myfetcher"

        async def fetch_prices(
            self, symbols: list[str], quote: str = "usd"
        ) -> dict[str, Decimal]:
            response = await self._get("https://api.example.com/prices")
            data = self._json(response)
            return {s: Decimal(str(data[s])) for s in symbols}
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, ClassVar

import httpx

logger = logging.getLogger(__name__)


class FetcherError(Exception):
    """Base exception for fetcher errors."""

    pass


class FetcherHTTPError(FetcherError):
    """Raised when HTTP request fails.

    :ivar status_code: HTTP status code from the failed request.
    """

    def __init__(self, status_code: int, message: str):
        """Initialize the HTTP error.

        :param status_code: HTTP status code.
        :param message: Error message from response.
        """
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {message}")


class FetcherResponseError(FetcherError):
    """Raised when a response does not have the expected shape."""

    pass


class BaseFetcher(ABC):
    """Abstract base class for quote fetchers.

    Subclasses must implement:
        - name: Class variable identifying the source (e.g., "coingecko")
        - fetch_prices(): Async method returning prices for many symbols

    :cvar name: Unique identifier for this fetcher.
    :cvar DEFAULT_TIMEOUT: Default HTTP request timeout in seconds.
    :ivar api_key: Optional API key for authenticated endpoints.
    :ivar timeout: Request timeout in seconds.
    """

    # Class-level shared HTTP client
    _shared_client: ClassVar[httpx.AsyncClient | None] = None

    # Fetcher identification
    name: ClassVar[str] = ""

    # Default timeout for HTTP requests (seconds)
    DEFAULT_TIMEOUT = 10.0

    def __init__(self, api_key: str | None = None, timeout: float | None = None):
        """Initialize the fetcher.

        :param api_key: Optional API key for authenticated endpoints.
        :param timeout: Request timeout in seconds (default: 10).
        """
        self.api_key = api_key
        self.timeout = timeout or self.DEFAULT_TIMEOUT

    @property
    def has_api_key(self) -> bool:
        """Check if this fetcher has an API key configured."""
        return self.api_key is not None and len(self.api_key) > 0

    @classmethod
    def get_shared_client(cls) -> httpx.AsyncClient:
        """Get or create the shared HTTP client.

        The client is shared across all fetcher instances to reuse connections.

        :returns: Shared httpx.AsyncClient instance.
        """
        if cls._shared_client is None or cls._shared_client.is_closed:
            cls._shared_client = httpx.AsyncClient(
                timeout=httpx.Timeout(30.0, connect=10.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
                follow_redirects=True,
            )
        return cls._shared_client

    @classmethod
    def set_shared_client(cls, client: httpx.AsyncClient | None) -> None:
        """Replace the shared HTTP client (e.g. with a mock transport in tests)."""
        cls._shared_client = client

    @classmethod
    async def close_shared_client(cls) -> None:
        """Close the shared HTTP client."""
        if cls._shared_client is not None and not cls._shared_client.is_closed:
            await cls._shared_client.aclose()
            cls._shared_client = None

    @abstractmethod
    async def fetch_prices(
        self, symbols: list[str], quote: str = "usd"
    ) -> dict[str, Decimal]:
        """Fetch current prices for several symbols in one request.

        :param symbols: Lowercase ticker symbols (e.g., ["eth", "dot"]).
        :param quote: Quote currency symbol (default: "usd").
        :returns: Dict mapping each symbol found in the response to its price.
            Symbols missing from the response are left out.
        :raises FetcherError: On transport, HTTP or parse errors.
        """
        pass

    def supports_symbol(self, symbol: str) -> bool:
        """Check if this fetcher can price the given symbol.

        :param symbol: Ticker symbol.
        :returns: True if supported.
        """
        return True

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        """Decode a JSON body with floats parsed as Decimal.

        :raises FetcherResponseError: If the body is not valid JSON.
        """
        try:
            return response.json(parse_float=Decimal)
        except ValueError as e:
            raise FetcherResponseError(f"Invalid JSON body: {e}") from e

    @staticmethod
    def _to_decimal(value: Any) -> Decimal:
        """Convert a JSON number to Decimal.

        :raises FetcherResponseError: If the value is not a finite number.
        """
        if isinstance(value, bool) or not isinstance(value, (int, Decimal)):
            raise FetcherResponseError(f"Expected a number, got {value!r}")
        price = Decimal(value)
        if not price.is_finite():
            raise FetcherResponseError(f"Expected a finite number, got {value!r}")
        return price

    async def _get(
        self,
        url: str,
        *,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> httpx.Response:
        """Make an HTTP GET request using the shared client.

        :param url: Request URL.
        :param params: Optional query parameters.
        :param headers: Optional request headers.
        :returns: httpx.Response object.
        :raises FetcherHTTPError: On non-2xx response.
        :raises FetcherError: On network/timeout errors.
        """
        client = self.get_shared_client()
        try:
            response = await client.get(
                url,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
            if not response.is_success:
                logger.debug(
                    "HTTP GET %s failed with status %s: %s",
                    url,
                    response.status_code,
                    response.text[:200],
                )
                raise FetcherHTTPError(response.status_code, response.text[:200])
            return response
        except httpx.TimeoutException as e:
            raise FetcherError(f"Request timeout: {e}") from e
        except httpx.RequestError as e:
            raise FetcherError(f"Request failed: {e}") from e


# Registry of available fetchers (populated by subclass imports)
FETCHER_REGISTRY: dict[str, type[BaseFetcher]] = {}


def register_fetcher(cls: type[BaseFetcher]) -> type[BaseFetcher]:
    """Decorator to register a fetcher class in the global registry.

    :param cls: Fetcher class to register.
    :returns: The registered class (unchanged).
    :raises ValueError: If fetcher has no name defined.
    """
    if not cls.name:
        raise ValueError(f"Fetcher {cls.__name__} must define a 'name' class variable")
    FETCHER_REGISTRY[cls.name] = cls
    return cls


def get_fetcher(
    name: str, api_key: str | None = None, timeout: float | None = None
) -> BaseFetcher:
    """Get a fetcher instance by name.

    :param name: Fetcher name (e.g., "coingecko").
    :param api_key: Optional API key.
    :param timeout: Optional request timeout in seconds.
    :returns: Fetcher instance.
    :raises ValueError: If fetcher name is unknown.
    """
    if name not in FETCHER_REGISTRY:
        available = ", ".join(sorted(FETCHER_REGISTRY.keys()))
        raise ValueError(f"Unknown fetcher '{name}'. Available: {available}")
    return FETCHER_REGISTRY[name](api_key=api_key, timeout=timeout)


def get_available_fetchers() -> list[str]:
    """Get list of available fetcher names.

    :returns: Sorted list of registered fetcher names.
    """
    return sorted(FETCHER_REGISTRY.keys())
