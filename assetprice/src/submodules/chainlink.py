"""Chainlink AggregatorV3 price feeds read over web3.

Params:
    - ``get_one_feed_price``: ``abi.encode(address feed, uint48 update_threshold)``
    - ``get_two_feed_price_mul`` / ``get_two_feed_price_div``:
      ``abi.encode(address first, uint48 first_threshold, address second, uint48 second_threshold)``

A round is rejected if its answer is not positive, if it was last updated
more than ``update_threshold`` seconds ago, or if it was carried over from
an earlier round.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from eth_abi import decode
from eth_abi.exceptions import DecodingError

from ..Clock import Clock, SystemClock
from ..errors import SubmoduleError
from .base import PriceSubmodule, register_submodule

if TYPE_CHECKING:
    from web3 import Web3
    from web3.contract import Contract

logger = logging.getLogger(__name__)

AGGREGATOR_V3_ABI = [
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "latestRoundData",
        "outputs": [
            {"internalType": "uint80", "name": "roundId", "type": "uint80"},
            {"internalType": "int256", "name": "answer", "type": "int256"},
            {"internalType": "uint256", "name": "startedAt", "type": "uint256"},
            {"internalType": "uint256", "name": "updatedAt", "type": "uint256"},
            {"internalType": "uint80", "name": "answeredInRound", "type": "uint80"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]


class ChainlinkFeedInvalid(SubmoduleError):
    """Raised when a Chainlink feed returns unusable data.

    :ivar feed: Address of the aggregator contract.
    """

    def __init__(self, feed: str, message: str):
        self.feed = feed
        super().__init__(f"Chainlink feed {feed}: {message}")


@dataclass(frozen=True)
class RoundData:
    """Subset of ``latestRoundData`` checked before use."""

    round_id: int
    answer: int
    started_at: int
    updated_at: int
    answered_in_round: int


@register_submodule
class ChainlinkPriceFeeds(PriceSubmodule):
    """Prices from one or two Chainlink aggregators.

    :ivar w3: Web3 instance used for contract calls.
    :ivar clock: Clock used for the staleness check.
    """

    keycode = "PRICE.CHAINLINK"

    def __init__(self, w3: Web3, clock: Clock | None = None) -> None:
        """Initialize the submodule.

        :param w3: Connected Web3 instance.
        :param clock: Clock for staleness checks, normally the engine's
            ``PriceModule.clock`` so the check uses the step time
            (default: wall clock).
        """
        self.w3 = w3
        self.clock = clock or SystemClock()
        self._contracts: dict[str, Contract] = {}

    def _contract(self, feed: str) -> Contract:
        if feed not in self._contracts:
            self._contracts[feed] = self.w3.eth.contract(address=feed, abi=AGGREGATOR_V3_ABI)
        return self._contracts[feed]

    def _feed_price(self, feed: str, update_threshold: int, output_decimals: int) -> int:
        """Read and validate one aggregator, scaled to ``output_decimals``."""
        contract = self._contract(feed)
        feed_decimals = contract.functions.decimals().call()
        round_data = RoundData(*contract.functions.latestRoundData().call())

        if round_data.answer <= 0:
            raise ChainlinkFeedInvalid(feed, f"non-positive answer {round_data.answer}")
        if round_data.updated_at < self.clock.now() - update_threshold:
            raise ChainlinkFeedInvalid(
                feed, f"stale round updated at {round_data.updated_at}"
            )
        if round_data.answered_in_round < round_data.round_id:
            raise ChainlinkFeedInvalid(
                feed,
                f"round {round_data.round_id} answered in {round_data.answered_in_round}",
            )

        logger.debug(f"[chainlink] {feed} answer={round_data.answer} decimals={feed_decimals}")
        return round_data.answer * 10**output_decimals // 10**feed_decimals

    def get_one_feed_price(self, asset: str, output_decimals: int, params: bytes) -> int:
        """Price from a single aggregator.

        :param asset: Asset being priced (unused; the feed is fixed by params).
        :param output_decimals: Decimals of the returned price.
        :param params: ``abi.encode(address, uint48)``.
        """
        try:
            feed, threshold = decode(["address", "uint48"], params)
        except DecodingError as e:
            raise ChainlinkFeedInvalid("?", f"cannot decode params: {e}") from e
        return self._feed_price(feed, threshold, output_decimals)

    def _two_feeds(self, params: bytes, output_decimals: int) -> tuple[int, int]:
        try:
            first, first_threshold, second, second_threshold = decode(
                ["address", "uint48", "address", "uint48"], params
            )
        except DecodingError as e:
            raise ChainlinkFeedInvalid("?", f"cannot decode params: {e}") from e
        return (
            self._feed_price(first, first_threshold, output_decimals),
            self._feed_price(second, second_threshold, output_decimals),
        )

    def get_two_feed_price_mul(self, asset: str, output_decimals: int, params: bytes) -> int:
        """Product of two aggregators, e.g. ASSET/ETH × ETH/USD."""
        first, second = self._two_feeds(params, output_decimals)
        return first * second // 10**output_decimals

    def get_two_feed_price_div(self, asset: str, output_decimals: int, params: bytes) -> int:
        """Quotient of two aggregators, e.g. ASSET/USD ÷ ETH/USD."""
        first, second = self._two_feeds(params, output_decimals)
        return first * 10**output_decimals // second
