"""ObservationBuffer: Fixed-capacity ring buffer of price observations.

The buffer keeps a running sum of its slots so the moving average is an
O(1) read. The slot at ``next_index`` is the oldest observation and is
overwritten by the next push; the slot before it is the most recent one.

When the buffer does not track a moving average it holds a single slot and
acts as a last-price cache; its running sum then stays at zero.

.. code-block:: python

    >>> buf = ObservationBuffer([10, 20, 30], track_sum=True)
    >>> buf.average()
    20
    >>> buf.push(40, timestamp=1000)
    10
    >>> buf.values
    (40, 20, 30)
    >>> buf.last()
    (40, 1000)
"""

from __future__ import annotations

from collections.abc import Sequence


class ObservationBuffer:
    """Ring buffer of price observations with an incremental sum.

    :ivar next_index: Slot that will be overwritten by the next push.
    :ivar cumulative: Sum of every slot when ``track_sum`` is set, else 0.
    :ivar last_observation_time: Timestamp of the most recent push or seed.
    :ivar track_sum: Whether the running sum is maintained.
    """

    def __init__(
        self,
        observations: Sequence[int],
        *,
        track_sum: bool,
        last_observation_time: int = 0,
    ) -> None:
        """Create a buffer seeded with ``observations``.

        An empty seed creates a single zero slot.

        :param observations: Initial slot values, oldest first.
        :param track_sum: Maintain the running sum for moving averages.
        :param last_observation_time: Timestamp of the newest seed value.
        """
        self._slots: list[int] = list(observations) or [0]
        self.track_sum = track_sum
        self.next_index = 0
        self.last_observation_time = last_observation_time
        self.cumulative = sum(self._slots) if track_sum else 0

    @property
    def capacity(self) -> int:
        """Number of slots in the buffer."""
        return len(self._slots)

    @property
    def values(self) -> tuple[int, ...]:
        """Slot contents in storage order."""
        return tuple(self._slots)

    def push(self, price: int, timestamp: int) -> int:
        """Overwrite the oldest slot with a new observation.

        :param price: New observation.
        :param timestamp: Time of the observation.
        :returns: The evicted observation.
        """
        evicted = self._slots[self.next_index]
        if self.track_sum:
            self.cumulative = self.cumulative + price - evicted
        self._slots[self.next_index] = price
        self.next_index = (self.next_index + 1) % len(self._slots)
        self.last_observation_time = timestamp
        return evicted

    def last(self) -> tuple[int, int]:
        """Return the most recent observation and its timestamp."""
        last_index = (self.next_index - 1) % len(self._slots)
        return self._slots[last_index], self.last_observation_time

    def average(self) -> int:
        """Return the truncated mean of all slots.

        Only meaningful when the running sum is tracked.
        """
        return self.cumulative // len(self._slots)

    def copy(self) -> ObservationBuffer:
        """Return an independent copy of the buffer."""
        clone = ObservationBuffer(
            self._slots,
            track_sum=self.track_sum,
            last_observation_time=self.last_observation_time,
        )
        clone.next_index = self.next_index
        clone.cumulative = self.cumulative
        return clone

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self) -> str:
        return (
            f"ObservationBuffer(values={self._slots!r}, next_index={self.next_index}, "
            f"cumulative={self.cumulative}, last_observation_time={self.last_observation_time})"
        )
