"""PriceModule: Public surface of the multi-asset price engine.

The module wires the registry, aggregator, observation store and query
service around one shared :class:`PriceState`, and reproduces the atomic
step of a ledger:

    - a single re-entrant lock serialises every entry point
    - the clock is read once per entry point, so every timestamp recorded or
      compared during a call is the same
    - mutations are validated on copies and committed only on success

Mutating entry points take a keyword-only ``caller`` which the
:class:`Authority` must permit for the entry point's name.

.. code-block:: python

    >>> price = PriceModule(authority, decimals=18, observation_frequency=28800)
    >>> price.install_submodule(SimplePriceFeedStrategy(), caller="admin")
    >>> price.add_asset(weth, ..., caller="admin")
    >>> price.get_price(weth)
    3000000000000000000000
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Callable

from .Asset import Asset, Component, Variant
from .AssetRegistry import AssetRegistry
from .Authority import Authority
from .Clock import Clock, StepClock, SystemClock
from .ContractUtility import to_address
from .errors import (
    AssetNotApproved,
    AssetNotContract,
    DecimalsInvalid,
    NotPermitted,
    ObservationFrequencyInvalid,
    SubmoduleAlreadyInstalled,
    SubmoduleInvalid,
    SubmoduleNotInstalled,
)
from .EventLog import EventLog
from .FeedAggregator import CurrentPrice, FeedAggregator
from .ObservationStore import ObservationStore
from .PriceQueryService import PriceQueryService
from .PriceState import PriceState
from .submodules import Submodule

logger = logging.getLogger(__name__)

MAX_DECIMALS = 38


class PriceModule:
    """Price engine facade.

    :ivar authority: Authorization collaborator for mutating calls.
    :ivar clock: Step clock, pinned at each entry point. Submodules that
        check time should be given this instance.
    :ivar events: Log of committed events.
    :ivar state: Shared engine state.
    """

    def __init__(
        self,
        authority: Authority,
        decimals: int,
        observation_frequency: int,
        *,
        clock: Clock | None = None,
        is_contract: Callable[[str], bool] | None = None,
        events: EventLog | None = None,
    ) -> None:
        """Initialize the engine.

        :param authority: Decides which callers may mutate state.
        :param decimals: Fixed-point decimals of every returned price.
        :param observation_frequency: Seconds between stored observations.
        :param clock: Clock supplying step timestamps (default: wall clock).
        :param is_contract: Callable telling whether an address has code
            (default: accept every valid address).
        :param events: Event log to emit into (default: a new one).
        :raises DecimalsInvalid: If ``decimals`` is outside 0-38.
        :raises ObservationFrequencyInvalid: If the frequency is not positive.
        """
        if not 0 <= decimals <= MAX_DECIMALS:
            raise DecimalsInvalid(decimals)
        if observation_frequency <= 0:
            raise ObservationFrequencyInvalid(observation_frequency)

        self.authority = authority
        self.clock = StepClock(clock or SystemClock())
        self.events = events or EventLog()
        self.state = PriceState(decimals=decimals, observation_frequency=observation_frequency)

        self._lock = threading.RLock()
        self._aggregator = FeedAggregator(self.state)
        self._registry = AssetRegistry(
            self.state, self._aggregator, self.events, is_contract or (lambda _: True)
        )
        self._store = ObservationStore(self.state, self._aggregator, self.events)
        self._query = PriceQueryService(self.state, self._aggregator, self._store)

        logger.info(
            f"PriceModule initialized: decimals={decimals}, "
            f"observation_frequency={observation_frequency}s"
        )

    @property
    def decimals(self) -> int:
        return self.state.decimals

    @property
    def observation_frequency(self) -> int:
        return self.state.observation_frequency

    @contextmanager
    def _step(self) -> Iterator[int]:
        """Hold the lock and pin the clock for one entry point."""
        with self._lock, self.clock.pinned() as now:
            yield now

    def _require_permitted(self, caller: str, action: str) -> None:
        if not self.authority.is_permitted(caller, action):
            logger.warning(f"Refused {action} for caller {caller!r}")
            raise NotPermitted(caller, action)

    @staticmethod
    def _approved_address(asset: str) -> str:
        address = to_address(asset)
        if address is None:
            raise AssetNotApproved(asset)
        return address

    # ------------------------------------------------------------------
    # Submodules
    # ------------------------------------------------------------------

    def install_submodule(self, submodule: Submodule, *, caller: str) -> None:
        """Install a feed or strategy under its keycode.

        :raises SubmoduleInvalid: If the object is not a keyed submodule.
        :raises SubmoduleAlreadyInstalled: If the keycode is taken.
        """
        with self._lock:
            self._require_permitted(caller, "install_submodule")
            if not isinstance(submodule, Submodule) or not submodule.keycode:
                raise SubmoduleInvalid(f"{submodule!r} is not a keyed submodule")
            if submodule.keycode in self.state.submodules:
                raise SubmoduleAlreadyInstalled(submodule.keycode)
            self.state.submodules[submodule.keycode] = submodule
            logger.info(f"Installed submodule {submodule!r}")

    def upgrade_submodule(self, submodule: Submodule, *, caller: str) -> None:
        """Replace an installed submodule with a new implementation.

        :raises SubmoduleNotInstalled: If nothing is installed under the keycode.
        """
        with self._lock:
            self._require_permitted(caller, "upgrade_submodule")
            if not isinstance(submodule, Submodule) or not submodule.keycode:
                raise SubmoduleInvalid(f"{submodule!r} is not a keyed submodule")
            previous = self.state.get_submodule(submodule.keycode)
            self.state.submodules[submodule.keycode] = submodule
            logger.info(f"Upgraded submodule {previous!r} to {submodule!r}")

    def get_submodule(self, keycode: str) -> Submodule:
        with self._lock:
            return self.state.get_submodule(keycode)

    def get_submodules(self) -> list[str]:
        """Return the installed keycodes."""
        with self._lock:
            return sorted(self.state.submodules)

    # ------------------------------------------------------------------
    # Asset configuration
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
        *,
        caller: str,
    ) -> None:
        """Register a new asset. See :meth:`AssetRegistry.add_asset`."""
        with self._step() as now:
            self._require_permitted(caller, "add_asset")
            address = to_address(asset)
            if address is None:
                raise AssetNotContract(asset)
            self._registry.add_asset(
                address,
                store_moving_average,
                use_moving_average,
                moving_average_duration,
                last_observation_time,
                observations,
                strategy,
                feeds,
                now,
            )

    def remove_asset(self, asset: str, *, caller: str) -> None:
        with self._lock:
            self._require_permitted(caller, "remove_asset")
            self._registry.remove_asset(self._approved_address(asset))

    def update_asset_price_feeds(
        self, asset: str, feeds: Sequence[Component], *, caller: str
    ) -> None:
        with self._step() as now:
            self._require_permitted(caller, "update_asset_price_feeds")
            self._registry.update_asset_price_feeds(
                self._approved_address(asset), feeds, now
            )

    def update_asset_price_strategy(
        self,
        asset: str,
        strategy: Component | None,
        use_moving_average: bool,
        *,
        caller: str,
    ) -> None:
        with self._step() as now:
            self._require_permitted(caller, "update_asset_price_strategy")
            self._registry.update_asset_price_strategy(
                self._approved_address(asset), strategy, use_moving_average, now
            )

    def update_asset_moving_average(
        self,
        asset: str,
        store_moving_average: bool,
        moving_average_duration: int,
        last_observation_time: int,
        observations: Sequence[int],
        *,
        caller: str,
    ) -> None:
        with self._step() as now:
            self._require_permitted(caller, "update_asset_moving_average")
            self._registry.update_asset_moving_average(
                self._approved_address(asset),
                store_moving_average,
                moving_average_duration,
                last_observation_time,
                observations,
                now,
            )

    def get_assets(self) -> list[str]:
        with self._lock:
            return self._registry.get_assets()

    def get_asset_data(self, asset: str) -> Asset:
        with self._lock:
            address = to_address(asset)
            if address is None:
                return Asset()
            return self._registry.get_asset_data(address)

    def is_asset_approved(self, asset: str) -> bool:
        with self._lock:
            address = to_address(asset)
            return address is not None and self._registry.is_asset_approved(address)

    # ------------------------------------------------------------------
    # Observations
    # ------------------------------------------------------------------

    def store_price(self, asset: str, *, caller: str) -> int:
        """Store the current price of one asset. Returns the stored price."""
        with self._step() as now:
            self._require_permitted(caller, "store_price")
            return self._store.store_price(self._approved_address(asset), now)

    def store_observations(self, *, caller: str) -> dict[str, int]:
        """Store prices for every asset keeping a moving average."""
        with self._step() as now:
            self._require_permitted(caller, "store_observations")
            return self._store.store_observations(now)

    # ------------------------------------------------------------------
    # Prices
    # ------------------------------------------------------------------

    def get_current_price(self, asset: str) -> CurrentPrice:
        """Aggregate a fresh price and report whether every feed succeeded."""
        with self._step() as now:
            address = self._approved_address(asset)
            record = self.state.approved_asset(address)
            return self._aggregator.compute_current_price(address, record, now)

    def get_price(self, asset: str, max_age: int | None = None) -> int:
        """Return the price of an asset, reusing a fresh enough observation."""
        with self._step() as now:
            return self._query.get_price(
                self._approved_address(asset), now, max_age
            )

    def get_price_variant(self, asset: str, variant: Variant) -> tuple[int, int]:
        """Return (price, timestamp) from the selected read path."""
        with self._step() as now:
            return self._query.get_price_variant(
                self._approved_address(asset), variant, now
            )

    def get_price_in(self, asset: str, base: str, max_age: int | None = None) -> int:
        """Return the price of ``asset`` denominated in ``base``."""
        with self._step() as now:
            return self._query.get_price_in(
                self._approved_address(asset),
                self._approved_address(base),
                now,
                max_age,
            )

    def get_price_in_variant(
        self, asset: str, base: str, variant: Variant
    ) -> tuple[int, int]:
        """Return (ratio, older timestamp) of two variant reads."""
        with self._step() as now:
            return self._query.get_price_in_variant(
                self._approved_address(asset),
                self._approved_address(base),
                variant,
                now,
            )
