"""Simple price strategies combining several feed prices into one.

Zero entries are treated as failed feeds and ignored. Strategies return 0
when every input is zero; the engine turns that into a ``PriceZero`` error.

Deviation strategies take ``abi.encode(uint256 deviation_bps)`` params,
expressed in basis points of ``DEVIATION_MAX`` (10_000 = 100%).
"""

from __future__ import annotations

import logging

from eth_abi import decode
from eth_abi.exceptions import DecodingError

from .base import (
    StrategyParamsInvalid,
    StrategyPriceCountInvalid,
    StrategySubmodule,
    register_submodule,
)

logger = logging.getLogger(__name__)

DEVIATION_MAX = 10_000


def _non_zero(prices: list[int]) -> list[int]:
    return [p for p in prices if p != 0]


def _average(prices: list[int]) -> int:
    return sum(prices) // len(prices)


def _median(prices: list[int]) -> int:
    ordered = sorted(prices)
    middle = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[middle - 1] + ordered[middle]) // 2
    return ordered[middle]


def _decode_deviation(params: bytes) -> int:
    try:
        (deviation_bps,) = decode(["uint256"], params)
    except (DecodingError, TypeError) as e:
        raise StrategyParamsInvalid(f"Cannot decode deviation params: {e}") from e
    if deviation_bps == 0 or deviation_bps >= DEVIATION_MAX:
        raise StrategyParamsInvalid(
            f"Deviation must be between 1 and {DEVIATION_MAX - 1} bps, got {deviation_bps}"
        )
    return deviation_bps


def _deviates(prices: list[int], reference: int, deviation_bps: int) -> bool:
    """Check whether any price strays from ``reference`` beyond the threshold."""
    for price in prices:
        if abs(price - reference) * DEVIATION_MAX > reference * deviation_bps:
            return True
    return False


@register_submodule
class SimplePriceFeedStrategy(StrategySubmodule):
    """Stateless strategies over a list of prices.

    .. code-block:: python

        >>> strategy = SimplePriceFeedStrategy()
        >>> strategy.get_average_price([0, 100, 200], b"")
        150
        >>> strategy.get_median_price([300, 100, 0, 200], b"")
        200
    """

    keycode = "PRICE.SIMPLESTRATEGY"

    def get_first_price(self, prices: list[int], params: bytes) -> int:
        """Return the first non-zero price, or 0 if there is none.

        :param prices: Prices in feed priority order.
        :param params: Unused.
        """
        if len(prices) < 1:
            raise StrategyPriceCountInvalid(len(prices), 1)
        for price in prices:
            if price != 0:
                return price
        return 0

    def get_average_price(self, prices: list[int], params: bytes) -> int:
        """Return the truncated mean of the non-zero prices.

        :param prices: At least two prices.
        :param params: Unused.
        """
        if len(prices) < 2:
            raise StrategyPriceCountInvalid(len(prices), 2)
        valid = _non_zero(prices)
        if not valid:
            return 0
        return _average(valid)

    def get_median_price(self, prices: list[int], params: bytes) -> int:
        """Return the median of the non-zero prices.

        With fewer than three non-zero prices the median is undefined in any
        useful sense, so their mean is returned instead.

        :param prices: At least three prices.
        :param params: Unused.
        """
        if len(prices) < 3:
            raise StrategyPriceCountInvalid(len(prices), 3)
        valid = _non_zero(prices)
        if not valid:
            return 0
        if len(valid) < 3:
            return _average(valid)
        return _median(valid)

    def get_average_price_if_deviation(self, prices: list[int], params: bytes) -> int:
        """Return the first non-zero price unless the prices disagree.

        If any non-zero price deviates from the first non-zero price by more
        than the configured basis points, the mean is returned instead.

        :param prices: At least two prices.
        :param params: ``abi.encode(uint256 deviation_bps)``.
        """
        if len(prices) < 2:
            raise StrategyPriceCountInvalid(len(prices), 2)
        deviation_bps = _decode_deviation(params)
        valid = _non_zero(prices)
        if not valid:
            return 0
        if len(valid) == 1:
            return valid[0]
        if _deviates(valid, valid[0], deviation_bps):
            logger.debug(f"Prices {valid} deviate beyond {deviation_bps} bps, averaging")
            return _average(valid)
        return valid[0]

    def get_median_price_if_deviation(self, prices: list[int], params: bytes) -> int:
        """Return the first non-zero price unless the prices disagree.

        On disagreement the median is returned (the mean when fewer than three
        non-zero prices remain).

        :param prices: At least three prices.
        :param params: ``abi.encode(uint256 deviation_bps)``.
        """
        if len(prices) < 3:
            raise StrategyPriceCountInvalid(len(prices), 3)
        deviation_bps = _decode_deviation(params)
        valid = _non_zero(prices)
        if not valid:
            return 0
        if len(valid) == 1:
            return valid[0]
        if not _deviates(valid, valid[0], deviation_bps):
            return valid[0]
        logger.debug(f"Prices {valid} deviate beyond {deviation_bps} bps, taking median")
        if len(valid) < 3:
            return _average(valid)
        return _median(valid)
