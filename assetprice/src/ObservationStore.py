"""ObservationStore: Periodic price storage and the cached read paths.

Stored prices are computed without the moving average input, otherwise the
average would feed on itself.
"""

from __future__ import annotations

import logging

from .errors import MovingAverageNotStored
from .EventLog import EventLog, PriceStored
from .FeedAggregator import FeedAggregator
from .PriceState import PriceState

logger = logging.getLogger(__name__)


class ObservationStore:
    """Writes observations into asset buffers and reads them back.

    :ivar state: Shared engine state.
    :ivar aggregator: Aggregator computing the prices to store.
    :ivar events: Log receiving ``PriceStored`` events.
    """

    def __init__(self, state: PriceState, aggregator: FeedAggregator, events: EventLog) -> None:
        self.state = state
        self.aggregator = aggregator
        self.events = events

    def _compute(self, asset: str, now: int) -> int:
        record = self.state.approved_asset(asset)
        result = self.aggregator.compute_current_price(
            asset, record, now, include_moving_average=False
        )
        return result.price

    def _write(self, asset: str, price: int, now: int) -> None:
        record = self.state.assets[asset]
        evicted = record.observations.push(price, now)
        logger.info(
            f"{asset}: stored price {price} at {now} "
            f"(evicted {evicted}, slot {record.next_obs_index})"
        )

    def store_price(self, asset: str, now: int) -> int:
        """Compute the current price and append it to the asset's buffer.

        :param asset: Checksum address of an approved asset.
        :param now: Timestamp of the current step.
        :returns: The stored price.
        :raises AssetNotApproved: If the asset is not registered.
        """
        price = self._compute(asset, now)
        self._write(asset, price, now)
        self.events.emit(PriceStored(asset, price, now))
        return price

    def store_observations(self, now: int) -> dict[str, int]:
        """Store a price for every asset keeping a moving average.

        Prices are computed for all assets before any is written, so a
        failure on one asset stores nothing. Events follow once every
        asset has been written.

        :param now: Timestamp of the current step.
        :returns: Dict mapping asset address to the stored price.
        """
        pending: dict[str, int] = {}
        for asset in self.state.asset_list:
            if not self.state.assets[asset].store_moving_average:
                continue
            pending[asset] = self._compute(asset, now)

        for asset, price in pending.items():
            self._write(asset, price, now)
        for asset, price in pending.items():
            self.events.emit(PriceStored(asset, price, now))
        return pending

    def get_last_price(self, asset: str) -> tuple[int, int]:
        """Return the most recent observation and its timestamp."""
        return self.state.approved_asset(asset).observations.last()

    def get_moving_average_price(self, asset: str) -> tuple[int, int]:
        """Return the moving average and the time of its newest observation.

        :raises MovingAverageNotStored: If the asset keeps no moving average.
        """
        record = self.state.approved_asset(asset)
        if not record.store_moving_average:
            raise MovingAverageNotStored(asset)
        return record.observations.average(), record.last_observation_time
