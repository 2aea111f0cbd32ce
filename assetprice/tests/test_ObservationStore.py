"""Unit tests for price storage and the cached read paths."""

import pytest
from conftest import ADMIN, DAI, FREQUENCY, HEART, OHM, START_TIME, WETH

from assetprice.src.Asset import Variant
from assetprice.src.errors import (
    AssetNotApproved,
    MovingAverageNotStored,
    NotPermitted,
    PriceZero,
)
from assetprice.src.EventLog import PriceStored


@pytest.fixture
def assets(price, mock_feed, feed) -> None:
    """Register WETH and OHM with moving averages and DAI without."""
    mock_feed.prices.update({"eth": 3000, "ohm": 10, "dai": 1})
    price.add_asset(
        WETH, True, False, 3 * FREQUENCY, START_TIME, [2700, 2800, 2900], None,
        [feed("eth")], caller=ADMIN,
    )
    price.add_asset(
        OHM, True, False, 2 * FREQUENCY, START_TIME, [8, 12], None,
        [feed("ohm")], caller=ADMIN,
    )
    price.add_asset(DAI, False, False, 0, 0, [], None, [feed("dai")], caller=ADMIN)


@pytest.mark.usefixtures("assets")
class TestStorePrice:
    """Test storePrice."""

    def test_store_advances_ring(self, price, clock) -> None:
        """Storing should overwrite the oldest slot and keep the sum."""
        clock.advance(FREQUENCY)

        stored = price.store_price(WETH, caller=HEART)

        data = price.get_asset_data(WETH)
        assert stored == 3000
        assert data.obs == (3000, 2800, 2900)
        assert data.next_obs_index == 1
        assert data.cumulative_obs == sum(data.obs)
        assert data.last_observation_time == START_TIME + FREQUENCY
        assert price.events.of_type(PriceStored) == [
            PriceStored(WETH, 3000, START_TIME + FREQUENCY)
        ]

    def test_sum_invariant_across_wraps(self, price, clock, mock_feed) -> None:
        """The running sum should track the slots through several wraps."""
        for step in range(10):
            clock.advance(FREQUENCY)
            mock_feed.prices["eth"] = 3000 + step * 7
            price.store_price(WETH, caller=HEART)

            data = price.get_asset_data(WETH)
            assert data.cumulative_obs == sum(data.obs)

        assert price.get_asset_data(WETH).next_obs_index == 10 % 3

    def test_store_without_moving_average(self, price) -> None:
        """Assets without a moving average still cache the latest price."""
        price.store_price(DAI, caller=HEART)

        data = price.get_asset_data(DAI)
        assert data.obs == (1,)
        assert data.cumulative_obs == 0

    def test_store_zero_price_fails(self, price, mock_feed) -> None:
        """A zero price should not be stored."""
        mock_feed.prices["eth"] = 0

        with pytest.raises(PriceZero):
            price.store_price(WETH, caller=HEART)
        assert price.get_asset_data(WETH).obs == (2700, 2800, 2900)

    def test_store_unknown_asset(self, price) -> None:
        """Storing an unregistered asset should fail."""
        with pytest.raises(AssetNotApproved):
            price.store_price("0x0000000000000000000000000000000000000001", caller=HEART)

    def test_store_not_permitted(self, price) -> None:
        """Only permitted callers may store prices."""
        with pytest.raises(NotPermitted):
            price.store_price(WETH, caller="someone")


@pytest.mark.usefixtures("assets")
class TestStoreObservations:
    """Test storeObservations."""

    def test_stores_moving_average_assets_only(self, price, clock) -> None:
        """Only assets keeping a moving average should be written."""
        clock.advance(FREQUENCY)

        stored = price.store_observations(caller=HEART)

        assert stored == {WETH: 3000, OHM: 10}
        assert price.get_asset_data(OHM).obs == (10, 12)
        assert price.get_asset_data(DAI).obs == (0,)
        assert len(price.events.of_type(PriceStored)) == 2

    def test_one_failure_stores_nothing(self, price, mock_feed) -> None:
        """A failing asset should abort the whole batch."""
        mock_feed.prices["ohm"] = 0

        with pytest.raises(PriceZero):
            price.store_observations(caller=HEART)

        assert price.get_asset_data(WETH).obs == (2700, 2800, 2900)
        assert price.events.of_type(PriceStored) == []

    def test_failing_listener_does_not_split_batch(self, price, clock) -> None:
        """A listener error should neither abort nor partially apply a batch."""
        def explode(event) -> None:
            if isinstance(event, PriceStored):
                raise RuntimeError("listener down")

        price.events.subscribe(explode)
        clock.advance(FREQUENCY)

        stored = price.store_observations(caller=HEART)

        assert stored == {WETH: 3000, OHM: 10}
        assert price.get_asset_data(WETH).last_observation_time == START_TIME + FREQUENCY
        assert price.get_asset_data(OHM).last_observation_time == START_TIME + FREQUENCY
        assert len(price.events.of_type(PriceStored)) == 2

    def test_same_timestamp_for_all(self, price, clock) -> None:
        """Every observation in a batch shares the step timestamp."""
        clock.advance(123)
        price.store_observations(caller=HEART)

        times = {event.timestamp for event in price.events.of_type(PriceStored)}
        assert times == {START_TIME + 123}


@pytest.mark.usefixtures("assets")
class TestStoredReads:
    """Test last and moving average reads."""

    def test_last_price_from_seed(self, price) -> None:
        """Before any store the last seed slot should be returned."""
        assert price.get_price_variant(WETH, Variant.LAST) == (2900, START_TIME)

    def test_last_price_unset(self, price) -> None:
        """An asset with an empty seed reports a zero price at time zero."""
        assert price.get_price_variant(DAI, Variant.LAST) == (0, 0)

    def test_moving_average(self, price, clock, mock_feed) -> None:
        """The moving average should be the truncated slot mean."""
        clock.advance(FREQUENCY)
        mock_feed.prices["eth"] = 3001
        price.store_price(WETH, caller=HEART)

        assert price.get_price_variant(WETH, Variant.MOVING_AVERAGE) == (
            (3001 + 2800 + 2900) // 3,
            START_TIME + FREQUENCY,
        )

    def test_moving_average_not_stored(self, price) -> None:
        """Assets without storage have no moving average."""
        with pytest.raises(MovingAverageNotStored):
            price.get_price_variant(DAI, Variant.MOVING_AVERAGE)
