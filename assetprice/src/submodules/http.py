"""Off-chain price feed reading a JSON field over HTTP.

Params: ``abi.encode(string url, string field_path)`` where ``field_path`` is
a dotted path into the JSON body, with integer segments indexing lists
(e.g. ``"data.amount"`` or ``"result.0.price"``).

A shared ``httpx.Client`` is used across instances to avoid connection
overhead. Calls are synchronous because aggregation runs inside a single
atomic engine step.

.. code-block:: python

    params = encode(
        ["string", "string"],
        ["https://api.exchange.coinbase.com/products/ETH-USD/ticker", "price"],
    )
    feed = Component("PRICE.HTTP", "get_json_price", params)
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar

import httpx
from eth_abi import decode
from eth_abi.exceptions import DecodingError

from ..errors import SubmoduleError
from .base import PriceSubmodule, register_submodule

logger = logging.getLogger(__name__)


class HttpFeedError(SubmoduleError):
    """Raised when an HTTP feed cannot produce a price."""

    pass


class HttpFeedHTTPError(HttpFeedError):
    """Raised when the HTTP request returns a non-2xx status.

    :ivar status_code: HTTP status code from the failed request.
    """

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {message}")


def extract_field(data: Any, field_path: str) -> Any:
    """Walk a dotted path through nested dicts and lists.

    :param data: Decoded JSON document.
    :param field_path: Dotted path; integer segments index lists.
    :returns: The value found at the path.
    :raises HttpFeedError: If a segment is missing.

    .. code-block:: python

        >>> extract_field({"data": [{"p": "1.5"}]}, "data.0.p")
        '1.5'
    """
    value = data
    for segment in field_path.split("."):
        try:
            if isinstance(value, list):
                value = value[int(segment)]
            else:
                value = value[segment]
        except (KeyError, IndexError, ValueError, TypeError) as e:
            raise HttpFeedError(f"Field '{field_path}' not found at '{segment}'") from e
    return value


@register_submodule
class HttpJsonPriceFeed(PriceSubmodule):
    """Feed reading a decimal price from a JSON HTTP endpoint.

    :cvar DEFAULT_TIMEOUT: Default HTTP request timeout in seconds.
    :ivar timeout: Request timeout in seconds.
    :ivar headers: Extra headers sent with every request.
    """

    keycode = "PRICE.HTTP"

    # Class-level shared HTTP client
    _shared_client: ClassVar[httpx.Client | None] = None

    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the feed.

        :param timeout: Request timeout in seconds (default: 10).
        :param headers: Extra request headers (e.g., API keys).
        :param client: Client to use instead of the shared one.
        """
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.headers = headers or {}
        self._client = client

    @classmethod
    def get_shared_client(cls) -> httpx.Client:
        """Get or create the shared HTTP client."""
        if cls._shared_client is None or cls._shared_client.is_closed:
            cls._shared_client = httpx.Client(
                timeout=httpx.Timeout(30.0, connect=10.0),
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
                follow_redirects=True,
            )
        return cls._shared_client

    @classmethod
    def close_shared_client(cls) -> None:
        """Close the shared HTTP client."""
        if cls._shared_client is not None and not cls._shared_client.is_closed:
            cls._shared_client.close()
            cls._shared_client = None

    def _get(self, url: str) -> httpx.Response:
        client = self._client or self.get_shared_client()
        try:
            response = client.get(url, headers=self.headers, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise HttpFeedError(f"Request timeout: {e}") from e
        except httpx.RequestError as e:
            raise HttpFeedError(f"Request failed: {e}") from e
        if not response.is_success:
            logger.debug(
                "HTTP GET %s failed with status %s: %s",
                url,
                response.status_code,
                response.text[:200],
            )
            raise HttpFeedHTTPError(response.status_code, response.text[:200])
        return response

    def get_json_price(self, asset: str, output_decimals: int, params: bytes) -> int:
        """Fetch the price at ``field_path`` of the JSON served at ``url``.

        :param asset: Asset being priced (unused; the endpoint is fixed by params).
        :param output_decimals: Decimals of the returned price.
        :param params: ``abi.encode(string url, string field_path)``.
        :returns: Price scaled to ``output_decimals``, truncated.
        :raises HttpFeedError: On request, parse or value errors.
        """
        try:
            url, field_path = decode(["string", "string"], params)
        except DecodingError as e:
            raise HttpFeedError(f"Cannot decode params: {e}") from e

        response = self._get(url)
        try:
            data = response.json()
        except ValueError as e:
            raise HttpFeedError(f"Invalid JSON from {url}: {e}") from e

        raw = extract_field(data, field_path)
        try:
            price = Decimal(str(raw))
        except InvalidOperation as e:
            raise HttpFeedError(f"Value {raw!r} at '{field_path}' is not a number") from e
        if not price.is_finite() or price <= 0:
            raise HttpFeedError(f"Value {raw!r} at '{field_path}' is not a positive price")

        logger.debug(f"[http] {url} {field_path}={price}")
        return int(price.scaleb(output_decimals))
