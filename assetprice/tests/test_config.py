"""Unit tests for configuration loading."""

import json
from unittest.mock import MagicMock

import pytest
from conftest import ADMIN, FREQUENCY, START_TIME, UNIT, WETH, MockPriceFeed
from eth_abi import decode, encode

from assetprice.src.config import (
    ConfigError,
    apply_config,
    build_submodule,
    load_config,
    parse_asset,
    parse_params,
)
from assetprice.src.PriceModule import PriceModule
from assetprice.src.submodules import (
    ChainlinkPriceFeeds,
    HttpJsonPriceFeed,
    SimplePriceFeedStrategy,
)


def write_config(tmp_path, data) -> str:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data))
    return str(path)


class TestParseParams:
    """Test params encoding."""

    def test_none(self) -> None:
        """Missing params should be empty."""
        assert parse_params(None) == b""

    def test_hex(self) -> None:
        """Hex strings should decode with or without a prefix."""
        assert parse_params("0x0102") == b"\x01\x02"
        assert parse_params("0102") == b"\x01\x02"

    def test_types_and_values(self) -> None:
        """Typed values should be ABI encoded."""
        raw = {"types": ["string", "uint48"], "values": ["eth", 60]}
        assert decode(["string", "uint48"], parse_params(raw)) == ("eth", 60)

    @pytest.mark.parametrize(
        "raw", ["0xzz", {"types": ["uint8"], "values": [300]}, {"types": ["uint8"]}, 5]
    )
    def test_invalid(self, raw) -> None:
        """Malformed params should raise ConfigError."""
        with pytest.raises(ConfigError):
            parse_params(raw)


class TestParseAsset:
    """Test asset entries."""

    def test_full_entry(self) -> None:
        """Every field should be parsed, with observations from strings."""
        asset = parse_asset(
            {
                "address": WETH,
                "store_moving_average": True,
                "moving_average_duration": 7200,
                "last_observation_time": 5,
                "observations": ["3000000000000000000000", 1],
                "strategy": {"target": "PRICE.SIMPLESTRATEGY", "selector": "get_first_price"},
                "feeds": [{"target": "PRICE.MOCK", "selector": "get_price", "params": "0x"}],
            }
        )

        assert asset.observations == [3000 * UNIT, 1]
        assert asset.strategy.selector == "get_first_price"
        assert asset.feeds[0].params == b""
        assert asset.use_moving_average is False

    def test_missing_feeds(self) -> None:
        """Assets without feeds should be rejected."""
        with pytest.raises(ConfigError, match="feeds"):
            parse_asset({"address": WETH})

    def test_missing_selector(self) -> None:
        """Components without a selector should be rejected."""
        with pytest.raises(ConfigError, match="selector"):
            parse_asset({"address": WETH, "feeds": [{"target": "PRICE.MOCK"}]})


class TestLoadConfig:
    """Test reading configuration files."""

    def test_load(self, tmp_path) -> None:
        """A valid file should produce submodules and assets."""
        path = write_config(
            tmp_path,
            {
                "submodules": {"PRICE.SIMPLESTRATEGY": {}},
                "assets": [{"address": WETH, "feeds": [{"target": "A", "selector": "b"}]}],
            },
        )

        config = load_config(path)

        assert config.submodules == {"PRICE.SIMPLESTRATEGY": {}}
        assert [a.address for a in config.assets] == [WETH]

    def test_missing_file(self, tmp_path) -> None:
        """A missing file should raise ConfigError."""
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(tmp_path / "nope.json")

    def test_not_an_object(self, tmp_path) -> None:
        """The top level must be a JSON object."""
        with pytest.raises(ConfigError, match="JSON object"):
            load_config(write_config(tmp_path, [1, 2]))


class TestBuildSubmodule:
    """Test submodule construction."""

    def test_strategy(self) -> None:
        """Plain submodules are built from their options."""
        assert isinstance(build_submodule("PRICE.SIMPLESTRATEGY", {}), SimplePriceFeedStrategy)

    def test_chainlink_needs_rpc(self) -> None:
        """Chainlink feeds need a web3 connection."""
        with pytest.raises(ConfigError, match="RPC"):
            build_submodule("PRICE.CHAINLINK", {})

        sub = build_submodule("PRICE.CHAINLINK", {}, w3=MagicMock())
        assert isinstance(sub, ChainlinkPriceFeeds)

    def test_http_options(self) -> None:
        """HTTP feeds take timeout and headers from options or defaults."""
        sub = build_submodule("PRICE.HTTP", {"headers": {"k": "v"}}, http_timeout=3.0)

        assert isinstance(sub, HttpJsonPriceFeed)
        assert sub.timeout == 3.0
        assert sub.headers == {"k": "v"}

    def test_unknown(self) -> None:
        """Unknown keycodes should raise ConfigError."""
        with pytest.raises(ConfigError, match="Unknown submodule"):
            build_submodule("PRICE.NOPE", {})


class TestApplyConfig:
    """Test configuring an engine from a file."""

    def test_apply(self, tmp_path, authority, clock) -> None:
        """Submodules should be installed and assets registered in order."""
        price = PriceModule(authority, decimals=18, observation_frequency=FREQUENCY, clock=clock)
        mock = MockPriceFeed()
        mock.prices.update({"a": 100, "b": 300})
        price.install_submodule(mock, caller=ADMIN)

        feed_params = [
            {"types": ["string"], "values": [name]} for name in ("a", "b")
        ]
        path = write_config(
            tmp_path,
            {
                "submodules": {"PRICE.SIMPLESTRATEGY": None},
                "assets": [
                    {
                        "address": WETH.lower(),
                        "store_moving_average": True,
                        "moving_average_duration": 2 * FREQUENCY,
                        "last_observation_time": START_TIME,
                        "observations": ["150", "250"],
                        "strategy": {
                            "target": "PRICE.SIMPLESTRATEGY",
                            "selector": "get_average_price",
                        },
                        "feeds": [
                            {"target": "PRICE.MOCK", "selector": "get_price", "params": p}
                            for p in feed_params
                        ],
                    }
                ],
            },
        )

        apply_config(price, load_config(path), caller=ADMIN)

        assert price.get_submodules() == ["PRICE.MOCK", "PRICE.SIMPLESTRATEGY"]
        assert price.get_assets() == [WETH]
        assert price.get_asset_data(WETH).feeds[1].params == encode(["string"], ["b"])
        assert price.get_current_price(WETH).price == 200
