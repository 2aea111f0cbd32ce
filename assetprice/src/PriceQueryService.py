"""PriceQueryService: Public price reads with optimistic caching.

``get_price`` first looks at the last stored observation and only runs a
full aggregation when that observation is too old. Fresh computations are
not written back: reads never mutate state.
"""

from __future__ import annotations

import logging

from .errors import MaxAgeInvalid, PriceZero, VariantInvalid
from .Asset import Variant
from .FeedAggregator import FeedAggregator
from .ObservationStore import ObservationStore
from .PriceState import PriceState

logger = logging.getLogger(__name__)


class PriceQueryService:
    """Current, last and moving average reads plus cross-asset ratios.

    :ivar state: Shared engine state.
    :ivar aggregator: Aggregator used when the cache is stale.
    :ivar store: Observation store holding the cached prices.
    """

    def __init__(
        self, state: PriceState, aggregator: FeedAggregator, store: ObservationStore
    ) -> None:
        self.state = state
        self.aggregator = aggregator
        self.store = store

    def get_current_price(self, asset: str, now: int) -> tuple[int, int]:
        """Aggregate a fresh price, including the moving average input."""
        record = self.state.approved_asset(asset)
        result = self.aggregator.compute_current_price(asset, record, now)
        return result.price, result.timestamp

    def get_price(self, asset: str, now: int, max_age: int | None = None) -> int:
        """Return a price no older than ``max_age`` seconds.

        Without ``max_age`` only an observation stored in this very step is
        reused.

        :param asset: Checksum address of an approved asset.
        :param now: Timestamp of the current step.
        :param max_age: Accepted age of the cached price in seconds.
        :raises MaxAgeInvalid: If ``max_age`` is not positive or not below ``now``.
        """
        if max_age is not None and (max_age <= 0 or max_age >= now):
            raise MaxAgeInvalid(max_age)

        price, timestamp = self.store.get_last_price(asset)
        threshold = now if max_age is None else now - max_age
        if timestamp >= threshold and price != 0:
            logger.debug(f"{asset}: cached price {price} from {timestamp}")
            return price

        price, _ = self.get_current_price(asset, now)
        return price

    def get_price_variant(self, asset: str, variant: Variant, now: int) -> tuple[int, int]:
        """Dispatch to the read path selected by ``variant``.

        :returns: Tuple of (price, timestamp).
        :raises VariantInvalid: If ``variant`` is not a :class:`Variant`.
        """
        if variant is Variant.CURRENT:
            return self.get_current_price(asset, now)
        if variant is Variant.LAST:
            return self.store.get_last_price(asset)
        if variant is Variant.MOVING_AVERAGE:
            return self.store.get_moving_average_price(asset)
        raise VariantInvalid(variant)

    def _ratio(self, asset_price: int, base: str, base_price: int) -> int:
        if base_price == 0:
            raise PriceZero(base)
        return asset_price * 10**self.state.decimals // base_price

    def get_price_in(
        self, asset: str, base: str, now: int, max_age: int | None = None
    ) -> int:
        """Return the price of ``asset`` denominated in ``base``.

        Both sides follow the same caching rule as :meth:`get_price`.
        """
        asset_price = self.get_price(asset, now, max_age)
        base_price = self.get_price(base, now, max_age)
        return self._ratio(asset_price, base, base_price)

    def get_price_in_variant(
        self, asset: str, base: str, variant: Variant, now: int
    ) -> tuple[int, int]:
        """Return the ratio of two variant reads and the older timestamp."""
        asset_price, asset_time = self.get_price_variant(asset, variant, now)
        base_price, base_time = self.get_price_variant(base, variant, now)
        return self._ratio(asset_price, base, base_price), min(asset_time, base_time)
