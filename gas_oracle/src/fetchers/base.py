"""Base fetcher interface and shared HTTP client management.

All gas price fetchers inherit from BaseFetcher and implement fetch_sample().
A fetcher serves every chain it has an RPC endpoint for, and a shared
httpx.AsyncClient is used across all fetchers to avoid connection overhead.

.. code-block:: python

    @register_fetcher
    class MyFetcher(BaseFetcher):
        name = "myfetcher"

        async def fetch_sample(self, source_id: str) -> RawSample:
            result = await self._rpc(source_id, "eth_gasPrice")
            return self._sample(source_id, parse_quantity(result))
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from itertools import count
from typing import Any, ClassVar

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawSample:
    """A single gas price observation.

    :ivar source_id: Chain the price was fetched from.
    :ivar value: Gas price in wei.
    :ivar observed_at: Unix timestamp of the observation.
    """

    source_id: str
    value: int
    observed_at: float


class FetcherError(Exception):
    """Base exception for fetcher errors."""

    pass


class FetcherConfigError(FetcherError):
    """Raised when fetcher configuration is invalid (e.g., unknown chain)."""

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


class FetcherRPCError(FetcherError):
    """Raised when a JSON-RPC node answers with an error object.

    :ivar code: JSON-RPC error code, if the node sent one.
    """

    def __init__(self, code: int | None, message: str):
        """Initialize the RPC error.

        :param code: JSON-RPC error code.
        :param message: Error message from the node.
        """
        self.code = code
        super().__init__(f"RPC error {code}: {message}")


def parse_quantity(value: Any) -> int:
    """Decode a JSON-RPC hex quantity such as "0x3b9aca00".

    :param value: Quantity as returned by the node.
    :returns: Decoded non-negative integer.
    :raises FetcherError: If the value is not a hex quantity.
    """
    if not isinstance(value, str) or not value.startswith("0x") or len(value) < 3:
        raise FetcherError(f"Malformed quantity: {value!r}")
    try:
        return int(value, 16)
    except ValueError as e:
        raise FetcherError(f"Malformed quantity: {value!r}") from e


class BaseFetcher(ABC):
    """Abstract base class for gas price fetchers.

    Subclasses must implement:
        - name: Class variable identifying the fetcher (e.g., "gasprice")
        - fetch_sample(): Async method returning the gas price of a chain

    :cvar name: Unique identifier for this fetcher.
    :cvar DEFAULT_TIMEOUT: Default HTTP request timeout in seconds.
    :ivar endpoints: Dict mapping chain names to RPC URLs.
    :ivar timeout: Request timeout in seconds.
    """

    # Class-level shared HTTP client
    _shared_client: ClassVar[httpx.AsyncClient | None] = None

    # Fetcher identification
    name: ClassVar[str] = ""

    # Default timeout for HTTP requests (seconds)
    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self, endpoints: dict[str, str] | None = None, timeout: float | None = None
    ):
        """Initialize the fetcher.

        :param endpoints: Dict mapping chain names to JSON-RPC URLs.
        :param timeout: Request timeout in seconds (default: 10).
        """
        self.endpoints = dict(endpoints or {})
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self._request_ids = count(1)

    @classmethod
    def get_shared_client(cls) -> httpx.AsyncClient:
        """Get or create the shared HTTP client.

        The client is shared across all fetcher instances to reuse connections.

        :returns: Shared httpx.AsyncClient instance.
        """
        if BaseFetcher._shared_client is None or BaseFetcher._shared_client.is_closed:
            BaseFetcher._shared_client = httpx.AsyncClient(
                timeout=httpx.Timeout(30.0, connect=10.0),
                limits=httpx.Limits(max_connections=50, max_keepalive_connections=20),
                follow_redirects=True,
            )
        return BaseFetcher._shared_client

    @classmethod
    async def close_shared_client(cls) -> None:
        """Close the shared HTTP client."""
        client = BaseFetcher._shared_client
        if client is not None and not client.is_closed:
            await client.aclose()
        BaseFetcher._shared_client = None

    def supports_source(self, source_id: str) -> bool:
        """Check if this fetcher has an endpoint for the given chain.

        :param source_id: Chain name.
        :returns: True if the chain is served by this fetcher.
        """
        return source_id in self.endpoints

    @abstractmethod
    async def fetch_sample(self, source_id: str) -> RawSample:
        """Fetch the current gas price of a chain.

        :param source_id: Chain name (e.g., "ethereum", "base").
        :returns: RawSample with the gas price in wei.
        :raises FetcherError: If the price cannot be fetched or parsed.
        """
        pass

    def _sample(self, source_id: str, value: int) -> RawSample:
        return RawSample(source_id=source_id, value=value, observed_at=time.time())

    async def _rpc(self, source_id: str, method: str, params: list | None = None) -> Any:
        """Call a JSON-RPC method on a chain's endpoint.

        :param source_id: Chain name.
        :param method: JSON-RPC method (e.g., "eth_gasPrice").
        :param params: Optional positional parameters.
        :returns: The ``result`` member of the response.
        :raises FetcherConfigError: If the chain has no endpoint.
        :raises FetcherRPCError: If the node returns an error or no result.
        :raises FetcherHTTPError: On non-2xx response.
        :raises FetcherError: On network/timeout errors or invalid JSON.
        """
        url = self.endpoints.get(source_id)
        if url is None:
            raise FetcherConfigError(f"[{self.name}] No RPC endpoint for {source_id}")

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params or [],
        }
        response = await self._post(url, json=payload)

        try:
            body = response.json()
        except ValueError as e:
            raise FetcherError(f"Invalid JSON from {source_id}: {e}") from e

        if not isinstance(body, dict):
            raise FetcherError(f"Unexpected response from {source_id}: {body!r}")

        error = body.get("error")
        if error is not None:
            if isinstance(error, dict):
                raise FetcherRPCError(error.get("code"), str(error.get("message", "")))
            raise FetcherRPCError(None, str(error))

        if "result" not in body:
            raise FetcherRPCError(None, f"No result in response for {method}")

        return body["result"]

    async def _post(
        self,
        url: str,
        *,
        json: dict | None = None,
        headers: dict | None = None,
    ) -> httpx.Response:
        """Make an HTTP POST request using the shared client.

        :param url: Request URL.
        :param json: Optional JSON body.
        :param headers: Optional request headers.
        :returns: httpx.Response object.
        :raises FetcherHTTPError: On non-2xx response.
        :raises FetcherError: On network/timeout errors.
        """
        client = self.get_shared_client()
        try:
            response = await client.post(
                url,
                json=json,
                headers=headers,
                timeout=self.timeout,
            )
            if not response.is_success:
                logger.debug(
                    "HTTP POST %s failed with status %s: %s",
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
    name: str,
    endpoints: dict[str, str] | None = None,
    timeout: float | None = None,
) -> BaseFetcher:
    """Get a fetcher instance by name.

    :param name: Fetcher name (e.g., "gasprice", "basefee").
    :param endpoints: Dict mapping chain names to RPC URLs.
    :param timeout: Optional request timeout in seconds.
    :returns: Fetcher instance.
    :raises ValueError: If fetcher name is unknown.
    """
    if name not in FETCHER_REGISTRY:
        available = ", ".join(sorted(FETCHER_REGISTRY.keys()))
        raise ValueError(f"Unknown fetcher '{name}'. Available: {available}")
    return FETCHER_REGISTRY[name](endpoints=endpoints, timeout=timeout)


def get_available_fetchers() -> list[str]:
    """Get list of available fetcher names.

    :returns: Sorted list of registered fetcher names.
    """
    return sorted(FETCHER_REGISTRY.keys())
