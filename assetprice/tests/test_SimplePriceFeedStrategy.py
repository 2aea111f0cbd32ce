"""Unit tests for SimplePriceFeedStrategy."""

import pytest
from eth_abi import encode

from assetprice.src.submodules import (
    StrategyParamsInvalid,
    StrategyPriceCountInvalid,
    SimplePriceFeedStrategy,
)


def deviation(bps: int) -> bytes:
    return encode(["uint256"], [bps])


@pytest.fixture
def strategy() -> SimplePriceFeedStrategy:
    return SimplePriceFeedStrategy()


class TestFirstPrice:
    """Test get_first_price."""

    def test_first_non_zero(self, strategy: SimplePriceFeedStrategy) -> None:
        """Zero entries should be skipped."""
        assert strategy.get_first_price([0, 0, 7, 9], b"") == 7

    def test_all_zero(self, strategy: SimplePriceFeedStrategy) -> None:
        """All zero inputs should return zero."""
        assert strategy.get_first_price([0, 0], b"") == 0

    def test_empty(self, strategy: SimplePriceFeedStrategy) -> None:
        """No inputs should raise."""
        with pytest.raises(StrategyPriceCountInvalid):
            strategy.get_first_price([], b"")


class TestAveragePrice:
    """Test get_average_price."""

    def test_ignores_zero(self, strategy: SimplePriceFeedStrategy) -> None:
        """Failed feeds should not drag the average down."""
        assert strategy.get_average_price([0, 100], b"") == 100

    def test_truncates(self, strategy: SimplePriceFeedStrategy) -> None:
        """Average should use integer division."""
        assert strategy.get_average_price([1, 2], b"") == 1

    def test_requires_two(self, strategy: SimplePriceFeedStrategy) -> None:
        """A single input should raise."""
        with pytest.raises(StrategyPriceCountInvalid) as exc:
            strategy.get_average_price([1], b"")
        assert exc.value.minimum == 2


class TestMedianPrice:
    """Test get_median_price."""

    def test_odd(self, strategy: SimplePriceFeedStrategy) -> None:
        """Median of odd count should be the middle value."""
        assert strategy.get_median_price([300, 100, 200], b"") == 200

    def test_even(self, strategy: SimplePriceFeedStrategy) -> None:
        """Median of even count should average the two middle values."""
        assert strategy.get_median_price([400, 100, 200, 300], b"") == 250

    def test_few_non_zero_falls_back_to_average(
        self, strategy: SimplePriceFeedStrategy
    ) -> None:
        """Fewer than three non-zero inputs should be averaged."""
        assert strategy.get_median_price([0, 100, 300], b"") == 200

    def test_requires_three(self, strategy: SimplePriceFeedStrategy) -> None:
        """Two inputs should raise."""
        with pytest.raises(StrategyPriceCountInvalid):
            strategy.get_median_price([1, 2], b"")


class TestDeviationStrategies:
    """Test the deviation-gated strategies."""

    def test_average_within_deviation_returns_first(
        self, strategy: SimplePriceFeedStrategy
    ) -> None:
        """Agreeing prices should return the first one."""
        assert strategy.get_average_price_if_deviation([1000, 1010], deviation(200)) == 1000

    def test_average_beyond_deviation_returns_mean(
        self, strategy: SimplePriceFeedStrategy
    ) -> None:
        """Disagreeing prices should return the mean."""
        assert strategy.get_average_price_if_deviation([1000, 1100], deviation(200)) == 1050

    def test_median_beyond_deviation(self, strategy: SimplePriceFeedStrategy) -> None:
        """Disagreeing prices should return the median."""
        prices = [1000, 1500, 1010]
        assert strategy.get_median_price_if_deviation(prices, deviation(100)) == 1010

    def test_median_within_deviation(self, strategy: SimplePriceFeedStrategy) -> None:
        """Agreeing prices should return the first one."""
        prices = [1000, 1005, 995]
        assert strategy.get_median_price_if_deviation(prices, deviation(100)) == 1000

    def test_single_non_zero(self, strategy: SimplePriceFeedStrategy) -> None:
        """One surviving price should be returned as is."""
        assert strategy.get_average_price_if_deviation([0, 42], deviation(100)) == 42

    def test_missing_params(self, strategy: SimplePriceFeedStrategy) -> None:
        """Empty params should raise StrategyParamsInvalid."""
        with pytest.raises(StrategyParamsInvalid):
            strategy.get_average_price_if_deviation([1, 2], b"")

    def test_out_of_range_deviation(self, strategy: SimplePriceFeedStrategy) -> None:
        """A deviation of 100% or more should be rejected."""
        with pytest.raises(StrategyParamsInvalid):
            strategy.get_median_price_if_deviation([1, 2, 3], deviation(10_000))
