"""FeedAggregator: Current price of an asset from its feeds and strategy.

Algorithm:
    1. Query every feed; a failing, zero or malformed result becomes a zero
       input and marks the result as degraded
    2. Optionally append the stored moving average, which must not be stale
    3. A single input is returned as is (it must be non-zero)
    4. Several inputs are reduced by the configured strategy, which must
       succeed and return a non-zero price

Feeds are data sources that may break independently, so their failures are
tolerated; the moving average and the strategy are part of the asset's
configuration, so their failures are errors.

.. code-block:: python

    >>> aggregator = FeedAggregator(state)
    >>> result = aggregator.compute_current_price(asset, record, now=1000)
    >>> result.price, result.timestamp, result.all_feeds_succeeded
    (1500000000000000000000, 1000, True)
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from .Asset import Asset, Component
from .errors import (
    MovingAverageStale,
    PriceZero,
    StrategyExecutionFailed,
    StrategyInsufficient,
)
from .PriceState import PriceState
from .submodules import PriceSubmodule, StrategySubmodule

logger = logging.getLogger(__name__)


class CurrentPrice(NamedTuple):
    """Result of a current price computation.

    :ivar price: Aggregated price, scaled to the engine decimals.
    :ivar timestamp: Time of the computation.
    :ivar all_feeds_succeeded: False if any feed failed or returned zero.
    """

    price: int
    timestamp: int
    all_feeds_succeeded: bool


def _is_price(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


class FeedAggregator:
    """Computes current prices from an asset's configured components.

    :ivar state: Shared engine state (decimals and installed submodules).
    """

    def __init__(self, state: PriceState) -> None:
        self.state = state

    def query_feed(self, asset: str, feed: Component) -> int | None:
        """Call one feed, converting any failure to None.

        :param asset: Address of the asset being priced.
        :param feed: Feed component to call.
        :returns: The non-zero price, or None if the feed failed.
        """
        submodule = self.state.submodules.get(feed.target)
        if submodule is None:
            logger.warning(f"[{feed}] Submodule not installed, skipping feed for {asset}")
            return None
        if not isinstance(submodule, PriceSubmodule) or feed.selector not in submodule.selectors():
            logger.warning(f"[{feed}] Not a price selector of {submodule!r}, skipping {asset}")
            return None

        try:
            value = getattr(submodule, feed.selector)(asset, self.state.decimals, feed.params)
        except Exception as e:
            logger.warning(f"[{feed}] Feed failed for {asset}: {e}")
            return None

        if not _is_price(value) or value == 0:
            logger.warning(f"[{feed}] Feed returned unusable price {value!r} for {asset}")
            return None
        return value

    def compute_current_price(
        self,
        asset: str,
        record: Asset,
        now: int,
        *,
        include_moving_average: bool = True,
    ) -> CurrentPrice:
        """Compute the current price of an asset.

        The record is only read, so the same call validates candidate
        configurations before they are committed.

        :param asset: Address of the asset.
        :param record: Configuration and observations of the asset.
        :param now: Timestamp of the current step.
        :param include_moving_average: Append the stored moving average as an
            input when the asset is configured to use it.
        :returns: The price, ``now`` and whether every feed succeeded.
        :raises MovingAverageStale: If the moving average input is too old.
        :raises PriceZero: If the resolved price is zero.
        :raises StrategyExecutionFailed: If the strategy call fails.
        :raises SubmoduleNotInstalled: If the strategy is not installed.
        """
        prices: list[int] = []
        all_succeeded = True
        for feed in record.feeds:
            price = self.query_feed(asset, feed)
            if price is None:
                all_succeeded = False
                price = 0
            prices.append(price)

        if include_moving_average and record.use_moving_average:
            if record.last_observation_time + record.moving_average_duration <= now:
                raise MovingAverageStale(asset, record.last_observation_time)
            prices.append(record.observations.average())

        if len(prices) == 1:
            if prices[0] == 0:
                raise PriceZero(asset)
            return CurrentPrice(prices[0], now, all_succeeded)

        price = self._apply_strategy(asset, record, prices)
        if not all_succeeded:
            logger.info(f"{asset}: priced at {price} with degraded inputs {prices}")
        return CurrentPrice(price, now, all_succeeded)

    def _apply_strategy(self, asset: str, record: Asset, prices: list[int]) -> int:
        """Reduce several prices with the asset's strategy."""
        if record.strategy is None:
            raise StrategyInsufficient(asset, len(prices))

        submodule = self.state.get_submodule(record.strategy.target)
        if (
            not isinstance(submodule, StrategySubmodule)
            or record.strategy.selector not in submodule.selectors()
        ):
            raise StrategyExecutionFailed(
                asset, f"{record.strategy} is not a strategy selector of {submodule!r}"
            )
        try:
            price = getattr(submodule, record.strategy.selector)(
                list(prices), record.strategy.params
            )
        except Exception as e:
            raise StrategyExecutionFailed(asset, str(e)) from e

        if not _is_price(price):
            raise StrategyExecutionFailed(asset, f"strategy returned {price!r}")
        if price == 0:
            raise PriceZero(asset)
        return price
