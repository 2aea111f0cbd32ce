"""Events emitted by the price engine and the log that records them."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetAdded:
    asset: str


@dataclass(frozen=True)
class AssetRemoved:
    asset: str


@dataclass(frozen=True)
class AssetPriceFeedsUpdated:
    asset: str


@dataclass(frozen=True)
class AssetPriceStrategyUpdated:
    asset: str


@dataclass(frozen=True)
class AssetMovingAverageUpdated:
    asset: str


@dataclass(frozen=True)
class PriceStored:
    """A new observation was written to an asset's buffer."""

    asset: str
    price: int
    timestamp: int


Event = (
    AssetAdded
    | AssetRemoved
    | AssetPriceFeedsUpdated
    | AssetPriceStrategyUpdated
    | AssetMovingAverageUpdated
    | PriceStored
)


class EventLog:
    """Record of the most recent committed events with optional listeners.

    Events are only emitted after the state change they describe has been
    committed, so a failing listener is logged and skipped: the change it
    reports already happened.

    :cvar DEFAULT_RETENTION: Number of events kept when no limit is given.
    :ivar events: The retained events, oldest first.
    """

    DEFAULT_RETENTION = 10_000

    def __init__(self, retention: int | None = None) -> None:
        """Initialize the log.

        :param retention: Maximum number of events kept (default: 10000).
        """
        self.events: deque[Event] = deque(maxlen=retention or self.DEFAULT_RETENTION)
        self._listeners: list[Callable[[Event], None]] = []

    def subscribe(self, listener: Callable[[Event], None]) -> None:
        """Register a callable invoked with every new event."""
        self._listeners.append(listener)

    def emit(self, event: Event) -> None:
        self.events.append(event)
        logger.debug(f"Event: {event}")
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Event listener {listener!r} failed on {event}: {e}")

    def of_type(self, event_type: type) -> list[Event]:
        """Return the retained events of one type."""
        return [e for e in self.events if isinstance(e, event_type)]
