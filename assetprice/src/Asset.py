"""Asset: Per-asset price configuration and observation state.

A feed or strategy is referenced by a :class:`Component`: the keycode of an
installed submodule, the name of the method to call on it, and an opaque
ABI-encoded parameter blob handed to that method.

.. code-block:: python

    >>> feed = Component("PRICE.CHAINLINK", "get_one_feed_price", b"...")
    >>> len(feed.hash())
    32
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from eth_abi import encode
from web3 import Web3

from .ObservationBuffer import ObservationBuffer


class Variant(enum.Enum):
    """Read path selected by a price query."""

    CURRENT = 0
    LAST = 1
    MOVING_AVERAGE = 2


@dataclass(frozen=True)
class Component:
    """Reference to a submodule method plus its parameters.

    :ivar target: Keycode of the submodule (e.g., "PRICE.CHAINLINK").
    :ivar selector: Name of the method to invoke on the submodule.
    :ivar params: ABI-encoded parameters passed through to the method.
    """

    target: str
    selector: str
    params: bytes = b""

    def hash(self) -> bytes:
        """Compute the keccak256 identity of this component.

        :returns: 32-byte hash of the ABI-encoded (target, selector, params).
        """
        return Web3.keccak(
            encode(["string", "string", "bytes"], [self.target, self.selector, self.params])
        )

    def __str__(self) -> str:
        return f"{self.target}.{self.selector}"


@dataclass
class Asset:
    """Configuration and observation state of one asset.

    :ivar approved: Whether the asset is registered.
    :ivar store_moving_average: Whether observations form a moving average.
    :ivar use_moving_average: Whether the average is an aggregation input.
    :ivar moving_average_duration: Window of the moving average in seconds.
    :ivar feeds: Priority-ordered price feeds.
    :ivar strategy: Strategy combining several inputs, if any.
    :ivar observations: Ring buffer of stored prices.
    """

    approved: bool = False
    store_moving_average: bool = False
    use_moving_average: bool = False
    moving_average_duration: int = 0
    feeds: list[Component] = field(default_factory=list)
    strategy: Component | None = None
    observations: ObservationBuffer = field(
        default_factory=lambda: ObservationBuffer([], track_sum=False)
    )

    @property
    def obs(self) -> tuple[int, ...]:
        return self.observations.values

    @property
    def num_observations(self) -> int:
        return self.observations.capacity

    @property
    def next_obs_index(self) -> int:
        return self.observations.next_index

    @property
    def cumulative_obs(self) -> int:
        return self.observations.cumulative

    @property
    def last_observation_time(self) -> int:
        return self.observations.last_observation_time

    @property
    def input_count(self) -> int:
        """Number of price inputs a full aggregation produces."""
        return len(self.feeds) + (1 if self.use_moving_average else 0)

    def copy(self) -> Asset:
        """Return a detached copy safe to modify or hand to callers."""
        return Asset(
            approved=self.approved,
            store_moving_average=self.store_moving_average,
            use_moving_average=self.use_moving_average,
            moving_average_duration=self.moving_average_duration,
            feeds=list(self.feeds),
            strategy=self.strategy,
            observations=self.observations.copy(),
        )
