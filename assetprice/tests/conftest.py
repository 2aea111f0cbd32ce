"""Shared fixtures for price engine tests."""

from typing import Callable

import pytest
from eth_abi import decode, encode
from web3 import Web3

from assetprice.src.Asset import Component
from assetprice.src.Authority import RolesAuthority
from assetprice.src.Clock import ManualClock
from assetprice.src.PriceModule import PriceModule
from assetprice.src.submodules import PriceSubmodule, SimplePriceFeedStrategy

WETH = Web3.to_checksum_address("0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2")
OHM = Web3.to_checksum_address("0x64aa3364f17a4d01c6f1751fd97c2bd3d7e7f1d5")
DAI = Web3.to_checksum_address("0x6b175474e89094c44da98b954eedeac495271d0f")

START_TIME = 1_700_000_000
FREQUENCY = 3600
UNIT = 10**18

ADMIN = "admin"
HEART = "heart"

ALL_ACTIONS = (
    "install_submodule",
    "upgrade_submodule",
    "add_asset",
    "remove_asset",
    "update_asset_price_feeds",
    "update_asset_price_strategy",
    "update_asset_moving_average",
    "store_price",
    "store_observations",
)


class MockPriceFeed(PriceSubmodule):
    """Feed returning prices set by the test, keyed by a name in params."""

    keycode = "PRICE.MOCK"

    def __init__(self) -> None:
        self.prices: dict[str, int] = {}
        self.failing: set[str] = set()
        self.calls = 0

    def get_price(self, asset: str, output_decimals: int, params: bytes) -> int:
        self.calls += 1
        (name,) = decode(["string"], params)
        if name in self.failing:
            raise RuntimeError(f"feed {name} is down")
        return self.prices.get(name, 0)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START_TIME)


@pytest.fixture
def authority() -> RolesAuthority:
    auth = RolesAuthority()
    auth.grant(ADMIN, *ALL_ACTIONS)
    auth.grant(HEART, "store_price", "store_observations")
    return auth


@pytest.fixture
def mock_feed() -> MockPriceFeed:
    return MockPriceFeed()


@pytest.fixture
def price(
    authority: RolesAuthority, clock: ManualClock, mock_feed: MockPriceFeed
) -> PriceModule:
    module = PriceModule(authority, decimals=18, observation_frequency=FREQUENCY, clock=clock)
    module.install_submodule(mock_feed, caller=ADMIN)
    module.install_submodule(SimplePriceFeedStrategy(), caller=ADMIN)
    return module


@pytest.fixture
def feed() -> Callable[[str], Component]:
    """Factory for mock feed components."""

    def make(name: str) -> Component:
        return Component("PRICE.MOCK", "get_price", encode(["string"], [name]))

    return make


@pytest.fixture
def strategy() -> Callable[..., Component]:
    """Factory for simple strategy components."""

    def make(selector: str = "get_average_price", params: bytes = b"") -> Component:
        return Component("PRICE.SIMPLESTRATEGY", selector, params)

    return make
