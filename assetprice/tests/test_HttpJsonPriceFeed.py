"""Unit tests for HttpJsonPriceFeed using an in-memory transport."""

import httpx
import pytest
from eth_abi import encode

from assetprice.src.submodules import HttpFeedError, HttpFeedHTTPError, HttpJsonPriceFeed
from assetprice.src.submodules.http import extract_field

TICKER_URL = "https://api.example.test/products/ETH-USD/ticker"


def params(url: str, field_path: str) -> bytes:
    return encode(["string", "string"], [url, field_path])


def make_feed(handler) -> HttpJsonPriceFeed:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpJsonPriceFeed(client=client, headers={"X-Api-Key": "secret"})


class TestExtractField:
    """Test dotted path lookups."""

    def test_nested_dict(self) -> None:
        """Dotted segments should walk nested dicts."""
        assert extract_field({"data": {"amount": "1.5"}}, "data.amount") == "1.5"

    def test_list_index(self) -> None:
        """Integer segments should index lists."""
        assert extract_field({"result": [{"p": 2}, {"p": 3}]}, "result.1.p") == 3

    def test_missing(self) -> None:
        """Missing segments should raise HttpFeedError."""
        with pytest.raises(HttpFeedError, match="not found at 'price'"):
            extract_field({"data": {}}, "data.price")


class TestGetJsonPrice:
    """Test get_json_price against mocked endpoints."""

    def test_decimal_string(self) -> None:
        """A decimal string should be scaled exactly."""
        feed = make_feed(lambda request: httpx.Response(200, json={"price": "3012.34"}))
        assert feed.get_json_price("", 18, params(TICKER_URL, "price")) == 301234 * 10**16

    def test_truncates_extra_precision(self) -> None:
        """Digits beyond the output decimals should be dropped."""
        feed = make_feed(lambda request: httpx.Response(200, json={"p": "1.23456789"}))
        assert feed.get_json_price("", 4, params(TICKER_URL, "p")) == 12345

    def test_numeric_value(self) -> None:
        """Plain JSON numbers should be accepted."""
        feed = make_feed(lambda request: httpx.Response(200, json={"data": [{"v": 2}]}))
        assert feed.get_json_price("", 6, params(TICKER_URL, "data.0.v")) == 2 * 10**6

    def test_sends_headers_to_url(self) -> None:
        """The request should go to the configured URL with the extra headers."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"price": "1"})

        make_feed(handler).get_json_price("", 0, params(TICKER_URL, "price"))

        assert str(seen[0].url) == TICKER_URL
        assert seen[0].headers["X-Api-Key"] == "secret"

    def test_http_error(self) -> None:
        """Non-2xx responses should raise HttpFeedHTTPError."""
        feed = make_feed(lambda request: httpx.Response(503, text="maintenance"))

        with pytest.raises(HttpFeedHTTPError) as exc:
            feed.get_json_price("", 18, params(TICKER_URL, "price"))
        assert exc.value.status_code == 503

    def test_connection_error(self) -> None:
        """Transport failures should raise HttpFeedError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(HttpFeedError, match="Request failed"):
            make_feed(handler).get_json_price("", 18, params(TICKER_URL, "price"))

    def test_invalid_json(self) -> None:
        """A non-JSON body should raise HttpFeedError."""
        feed = make_feed(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(HttpFeedError, match="Invalid JSON"):
            feed.get_json_price("", 18, params(TICKER_URL, "price"))

    @pytest.mark.parametrize("value", ["0", "-1", "abc", "NaN", None])
    def test_rejects_unusable_values(self, value) -> None:
        """Zero, negative and non-numeric values should raise."""
        feed = make_feed(lambda request: httpx.Response(200, json={"price": value}))

        with pytest.raises(HttpFeedError):
            feed.get_json_price("", 18, params(TICKER_URL, "price"))

    def test_bad_params(self) -> None:
        """Undecodable params should raise HttpFeedError."""
        feed = make_feed(lambda request: httpx.Response(200, json={}))

        with pytest.raises(HttpFeedError, match="decode"):
            feed.get_json_price("", 18, b"")


class TestSharedClient:
    """Test the shared client lifecycle."""

    def test_reused_and_recreated(self) -> None:
        """The shared client should be reused until closed."""
        first = HttpJsonPriceFeed.get_shared_client()
        assert HttpJsonPriceFeed.get_shared_client() is first

        HttpJsonPriceFeed.close_shared_client()

        assert first.is_closed
        second = HttpJsonPriceFeed.get_shared_client()
        assert second is not first
        HttpJsonPriceFeed.close_shared_client()

    def test_not_a_selector(self) -> None:
        """Client helpers should not be callable as price selectors."""
        assert HttpJsonPriceFeed().selectors() == ["get_json_price"]
