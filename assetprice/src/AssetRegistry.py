"""AssetRegistry: Registration and configuration of priced assets.

Every change is applied to a copy of the asset record, validated, and then
dry-run through the :class:`FeedAggregator` so a configuration that cannot
produce a price is never committed. Only when all of that succeeds does the
copy replace the stored record and the matching event get emitted.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Callable

from .Asset import Asset, Component
from .errors import (
    AssetAlreadyApproved,
    AssetNotContract,
    ComponentInvalid,
    DuplicatePriceFeed,
    InvalidObservationCount,
    LastObservationTimeInvalid,
    MovingAverageDurationInvalid,
    ObservationZero,
    PriceFeedInsufficient,
    StoreMovingAverageRequired,
    StrategyInsufficient,
)
from .EventLog import (
    AssetAdded,
    AssetMovingAverageUpdated,
    AssetPriceFeedsUpdated,
    AssetPriceStrategyUpdated,
    AssetRemoved,
    EventLog,
)
from .FeedAggregator import FeedAggregator
from .ObservationBuffer import ObservationBuffer
from .PriceState import PriceState
from .submodules import PriceSubmodule, StrategySubmodule, Submodule

logger = logging.getLogger(__name__)

# Observation count is stored as a u16 index on-chain.
MAX_OBSERVATIONS = 2**16 - 1


class AssetRegistry:
    """Owns the set of approved assets and their configuration.

    :ivar state: Shared engine state.
    :ivar aggregator: Aggregator used to dry-run configurations.
    :ivar events: Log receiving configuration events.
    :ivar is_contract: Callable telling whether an address has deployed code.
    """

    def __init__(
        self,
        state: PriceState,
        aggregator: FeedAggregator,
        events: EventLog,
        is_contract: Callable[[str], bool],
    ) -> None:
        self.state = state
        self.aggregator = aggregator
        self.events = events
        self.is_contract = is_contract

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _check_component(
        self, asset: str, component: Component, kind: type[Submodule]
    ) -> None:
        """Require ``component`` to name a selector of an installed ``kind``."""
        submodule = self.state.get_submodule(component.target)
        if not isinstance(submodule, kind):
            raise ComponentInvalid(asset, str(component), f"does not target a {kind.__name__}")
        if component.selector not in submodule.selectors():
            raise ComponentInvalid(
                asset, str(component), f"is not one of {submodule.selectors()}"
            )

    def _check_feeds(self, asset: str, feeds: Sequence[Component]) -> None:
        if not feeds:
            raise PriceFeedInsufficient(asset)

        seen: set[bytes] = set()
        for index, feed in enumerate(feeds):
            self._check_component(asset, feed, PriceSubmodule)
            feed_hash = feed.hash()
            if feed_hash in seen:
                raise DuplicatePriceFeed(asset, index)
            seen.add(feed_hash)

    def _check_strategy(self, asset: str, record: Asset) -> None:
        if record.use_moving_average and not record.store_moving_average:
            raise StoreMovingAverageRequired(asset)

        if record.strategy is None:
            if record.input_count > 1:
                raise StrategyInsufficient(asset, record.input_count)
        else:
            self._check_component(asset, record.strategy, StrategySubmodule)

    def _build_observations(
        self,
        asset: str,
        store_moving_average: bool,
        moving_average_duration: int,
        last_observation_time: int,
        observations: Sequence[int],
        now: int,
    ) -> ObservationBuffer:
        """Validate seed observations and build a fresh buffer from them."""
        frequency = self.state.observation_frequency
        if store_moving_average:
            if moving_average_duration == 0 or moving_average_duration % frequency != 0:
                raise MovingAverageDurationInvalid(asset, moving_average_duration, frequency)
            num_observations = moving_average_duration // frequency
            if num_observations < 2 or num_observations > MAX_OBSERVATIONS:
                raise MovingAverageDurationInvalid(asset, moving_average_duration, frequency)
            if len(observations) != num_observations:
                raise InvalidObservationCount(asset, len(observations), num_observations)
        elif len(observations) > 1:
            raise InvalidObservationCount(asset, len(observations), 1)

        for index, value in enumerate(observations):
            if value <= 0:
                raise ObservationZero(asset, index)

        if last_observation_time > now:
            raise LastObservationTimeInvalid(asset, last_observation_time, now)

        # An empty seed leaves the cache slot unset, so it has no timestamp.
        timestamp = last_observation_time if observations else 0
        return ObservationBuffer(
            [int(v) for v in observations],
            track_sum=store_moving_average,
            last_observation_time=timestamp,
        )

    def _commit(self, asset: str, candidate: Asset, now: int) -> None:
        """Dry-run ``candidate`` and store it if it yields a price."""
        result = self.aggregator.compute_current_price(asset, candidate, now)
        logger.debug(
            f"{asset}: configuration dry run priced {result.price} "
            f"(all feeds succeeded: {result.all_feeds_succeeded})"
        )
        self.state.assets[asset] = candidate

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def add_asset(
        self,
        asset: str,
        store_moving_average: bool,
        use_moving_average: bool,
        moving_average_duration: int,
        last_observation_time: int,
        observations: Sequence[int],
        strategy: Component | None,
        feeds: Sequence[Component],
        now: int,
    ) -> None:
        """Register and configure a new asset.

        :param asset: Checksum address of the asset.
        :param store_moving_average: Keep observations for a moving average.
        :param use_moving_average: Feed the moving average into the strategy.
        :param moving_average_duration: Averaging window in seconds.
        :param last_observation_time: Timestamp of the newest seed value.
        :param observations: Seed observations, oldest first.
        :param strategy: Strategy component, required for several inputs.
        :param feeds: Feed components in priority order.
        :param now: Timestamp of the current step.
        :raises AssetAlreadyApproved: If the asset is already registered.
        :raises AssetNotContract: If the address has no deployed code.
        :raises InvalidConfiguration: If any configuration check fails.
        """
        existing = self.state.assets.get(asset)
        if existing is not None and existing.approved:
            raise AssetAlreadyApproved(asset)
        if not self.is_contract(asset):
            raise AssetNotContract(asset)

        self._check_feeds(asset, feeds)
        candidate = Asset(
            approved=True,
            store_moving_average=store_moving_average,
            use_moving_average=use_moving_average,
            moving_average_duration=moving_average_duration if store_moving_average else 0,
            feeds=list(feeds),
            strategy=strategy,
        )
        self._check_strategy(asset, candidate)
        candidate.observations = self._build_observations(
            asset,
            store_moving_average,
            moving_average_duration,
            last_observation_time,
            observations,
            now,
        )

        self._commit(asset, candidate, now)
        self.state.asset_list.append(asset)
        logger.info(
            f"Asset added: {asset} (feeds={[str(f) for f in feeds]}, "
            f"strategy={strategy}, observations={candidate.num_observations})"
        )
        self.events.emit(AssetAdded(asset))

    def remove_asset(self, asset: str) -> None:
        """Deregister an asset and drop all of its state.

        :raises AssetNotApproved: If the asset is not registered.
        """
        self.state.approved_asset(asset)

        # Swap with the last entry and pop
        assets = self.state.asset_list
        index = assets.index(asset)
        assets[index] = assets[-1]
        assets.pop()
        del self.state.assets[asset]

        logger.info(f"Asset removed: {asset}")
        self.events.emit(AssetRemoved(asset))

    def update_asset_price_feeds(
        self, asset: str, feeds: Sequence[Component], now: int
    ) -> None:
        """Replace the feeds of an asset.

        The existing strategy must still cover the new number of inputs.
        """
        candidate = self.state.approved_asset(asset).copy()
        self._check_feeds(asset, feeds)
        candidate.feeds = list(feeds)
        self._check_strategy(asset, candidate)

        self._commit(asset, candidate, now)
        logger.info(f"{asset}: price feeds updated to {[str(f) for f in feeds]}")
        self.events.emit(AssetPriceFeedsUpdated(asset))

    def update_asset_price_strategy(
        self,
        asset: str,
        strategy: Component | None,
        use_moving_average: bool,
        now: int,
    ) -> None:
        """Replace the strategy of an asset and whether it uses the average."""
        candidate = self.state.approved_asset(asset).copy()
        candidate.strategy = strategy
        candidate.use_moving_average = use_moving_average
        self._check_strategy(asset, candidate)

        self._commit(asset, candidate, now)
        logger.info(
            f"{asset}: strategy updated to {strategy} "
            f"(use moving average: {use_moving_average})"
        )
        self.events.emit(AssetPriceStrategyUpdated(asset))

    def update_asset_moving_average(
        self,
        asset: str,
        store_moving_average: bool,
        moving_average_duration: int,
        last_observation_time: int,
        observations: Sequence[int],
        now: int,
    ) -> None:
        """Reconfigure moving average storage and reseed the buffer.

        Stored observations are discarded: they belong to the old window.

        :raises StoreMovingAverageRequired: If storage is disabled while the
            asset still uses the moving average.
        """
        candidate = self.state.approved_asset(asset).copy()
        if not store_moving_average and candidate.use_moving_average:
            raise StoreMovingAverageRequired(asset)

        candidate.observations = self._build_observations(
            asset,
            store_moving_average,
            moving_average_duration,
            last_observation_time,
            observations,
            now,
        )
        candidate.store_moving_average = store_moving_average
        candidate.moving_average_duration = (
            moving_average_duration if store_moving_average else 0
        )

        self._commit(asset, candidate, now)
        logger.info(
            f"{asset}: moving average updated (store={store_moving_average}, "
            f"duration={candidate.moving_average_duration}s, "
            f"observations={candidate.num_observations})"
        )
        self.events.emit(AssetMovingAverageUpdated(asset))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_assets(self) -> list[str]:
        """Return the approved asset addresses."""
        return list(self.state.asset_list)

    def get_asset_data(self, asset: str) -> Asset:
        """Return a detached copy of an asset record.

        Unknown assets yield an empty, unapproved record.
        """
        record = self.state.assets.get(asset)
        return record.copy() if record is not None else Asset()

    def is_asset_approved(self, asset: str) -> bool:
        record = self.state.assets.get(asset)
        return record is not None and record.approved
