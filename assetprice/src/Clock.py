"""Clocks supplying the timestamp of the current atomic step.

Every engine entry point reads the clock once and uses that value for all
timestamps it records or compares, so one call behaves like one block.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager


class Clock(ABC):
    """Source of the current timestamp in whole seconds."""

    @abstractmethod
    def now(self) -> int:
        """Return the current UNIX timestamp."""
        pass


class SystemClock(Clock):
    """Wall clock with one-second granularity."""

    def now(self) -> int:
        return int(time.time())


class ManualClock(Clock):
    """Clock that only moves when told to.

    :ivar timestamp: Current timestamp.

    .. code-block:: python

        >>> clock = ManualClock(1000)
        >>> clock.advance(60)
        1060
    """

    def __init__(self, timestamp: int = 0) -> None:
        self.timestamp = timestamp

    def now(self) -> int:
        return self.timestamp

    def advance(self, seconds: int) -> int:
        """Move the clock forward.

        :param seconds: Number of seconds to add.
        :returns: The new timestamp.
        :raises ValueError: If ``seconds`` is negative.
        """
        if seconds < 0:
            raise ValueError("cannot move the clock backwards")
        self.timestamp += seconds
        return self.timestamp


class StepClock(Clock):
    """Clock pinned to a single timestamp for the duration of a step.

    The engine wraps its clock in a ``StepClock`` and pins it at the start of
    every entry point. Submodules given the same instance then see the step's
    timestamp instead of reading the underlying clock again.

    :ivar source: Underlying clock read when a step starts.

    .. code-block:: python

        >>> clock = StepClock(ManualClock(1000))
        >>> with clock.pinned() as now:
        ...     clock.source.advance(5)
        ...     clock.now() == now
        1005
        True
    """

    def __init__(self, source: Clock) -> None:
        self.source = source
        self._pinned: int | None = None

    def now(self) -> int:
        if self._pinned is not None:
            return self._pinned
        return self.source.now()

    @contextmanager
    def pinned(self) -> Iterator[int]:
        """Read the source once and hold that value until the block exits.

        Nested blocks reuse the outer timestamp.
        """
        if self._pinned is not None:
            yield self._pinned
            return
        self._pinned = self.source.now()
        try:
            yield self._pinned
        finally:
            self._pinned = None
