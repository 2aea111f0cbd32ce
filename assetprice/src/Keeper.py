"""Keeper: Periodic heartbeat storing observations.

The keeper is the permissioned caller that keeps moving averages current:
every ``period`` seconds it asks the engine to store a price for each asset
keeping a moving average. A failing tick is logged and retried on the next
period rather than stopping the loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .errors import PriceError

if TYPE_CHECKING:
    from .PriceModule import PriceModule

logger = logging.getLogger(__name__)


class Keeper:
    """Heartbeat loop around :meth:`PriceModule.store_observations`.

    :ivar price: Engine to drive.
    :ivar caller: Identity the engine's authority permits to store.
    :ivar period: Seconds between ticks.
    :ivar ticks: Number of successful ticks.
    :ivar failures: Number of failed ticks.
    """

    def __init__(self, price: PriceModule, caller: str, period: int | None = None) -> None:
        """Initialize the keeper.

        :param price: Engine to drive.
        :param caller: Caller identity used for ``store_observations``.
        :param period: Seconds between ticks (default: observation frequency).
        """
        self.price = price
        self.caller = caller
        self.period = max(1, period or price.observation_frequency)
        self.ticks = 0
        self.failures = 0

    def tick(self) -> dict[str, int] | None:
        """Store observations once.

        :returns: Dict mapping asset to stored price, or None on failure.
        """
        try:
            stored = self.price.store_observations(caller=self.caller)
        except PriceError as e:
            self.failures += 1
            logger.warning(f"Heartbeat failed ({type(e).__name__}): {e}")
            return None

        self.ticks += 1
        if stored:
            summary = ", ".join(f"{asset}={price}" for asset, price in stored.items())
            logger.info(f"Heartbeat {self.ticks}: stored [{summary}]")
        else:
            logger.info(f"Heartbeat {self.ticks}: no assets store a moving average")
        return stored

    async def run(self, iterations: int | None = None) -> None:
        """Tick every ``period`` seconds.

        :param iterations: Stop after this many ticks (default: run forever).
        """
        logger.info(f"Starting heartbeat loop every {self.period}s as {self.caller!r}")
        count = 0
        while iterations is None or count < iterations:
            # Feeds make blocking requests, keep them off the event loop
            await asyncio.to_thread(self.tick)
            count += 1
            if iterations is not None and count >= iterations:
                break
            await asyncio.sleep(self.period)
