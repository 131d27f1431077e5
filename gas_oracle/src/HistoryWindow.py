"""HistoryWindow: Bounded per-chain history of raw gas prices.

Keeps the most recent ``capacity`` gas prices (wei) for a single chain in
arrival order. The oldest value is evicted when a new one would exceed the
capacity.

Extrema are tracked with two monotonic deques so that both ``append()`` and
``stats()`` stay O(1) amortized regardless of the window size. The running
sum and sum of squares are exact Python integers, so the mean and standard
deviation never accumulate floating-point error.

.. code-block:: python

    >>> window = HistoryWindow(capacity=3)
    >>> for value in (30, 10, 20, 40):
    ...     window.append(value)
    >>> window.values()
    [10, 20, 40]
    >>> window.stats().max, window.stats().min
    (40, 10)
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass

# ~8 minutes of history at the default 500ms update interval.
DEFAULT_WINDOW_SIZE = 1000


@dataclass(frozen=True)
class WindowStats:
    """Summary of the values currently held in a window.

    :ivar max: Highest value in the window.
    :ivar min: Lowest value in the window.
    :ivar count: Number of values in the window.
    :ivar mean: Arithmetic mean, floored to an integer.
    :ivar stddev: Population standard deviation, floored to an integer.
    """

    max: int
    min: int
    count: int
    mean: int
    stddev: int


class HistoryWindow:
    """Fixed-capacity FIFO window of non-negative integer magnitudes.

    :ivar capacity: Maximum number of values retained.
    """

    def __init__(self, capacity: int = DEFAULT_WINDOW_SIZE) -> None:
        """Initialize an empty window.

        :param capacity: Maximum number of values retained (default: 1000).
        :raises ValueError: If capacity is less than 1.
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")

        self.capacity = capacity
        self._values: deque[int] = deque()
        # (sequence number, value) pairs; values decreasing / increasing
        self._max_candidates: deque[tuple[int, int]] = deque()
        self._min_candidates: deque[tuple[int, int]] = deque()
        self._next_seq = 0
        self._sum = 0
        self._sum_sq = 0

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"HistoryWindow(capacity={self.capacity}, len={len(self._values)})"

    @property
    def latest(self) -> int | None:
        """Most recently appended value, or None if the window is empty."""
        if not self._values:
            return None
        return self._values[-1]

    def values(self) -> list[int]:
        """Return the retained values, oldest first."""
        return list(self._values)

    def append(self, value: int) -> None:
        """Append a value, evicting the oldest one if the window is full.

        :param value: Non-negative integer magnitude (wei).
        :raises TypeError: If value is not an int.
        :raises ValueError: If value is negative.
        """
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"value must be an int, got {type(value).__name__}")
        if value < 0:
            raise ValueError(f"value must be non-negative, got {value}")

        if len(self._values) == self.capacity:
            evicted = self._values.popleft()
            self._sum -= evicted
            self._sum_sq -= evicted * evicted

            first_retained = self._next_seq - self.capacity + 1
            if self._max_candidates and self._max_candidates[0][0] < first_retained:
                self._max_candidates.popleft()
            if self._min_candidates and self._min_candidates[0][0] < first_retained:
                self._min_candidates.popleft()

        seq = self._next_seq
        self._next_seq += 1

        self._values.append(value)
        self._sum += value
        self._sum_sq += value * value

        while self._max_candidates and self._max_candidates[-1][1] <= value:
            self._max_candidates.pop()
        self._max_candidates.append((seq, value))

        while self._min_candidates and self._min_candidates[-1][1] >= value:
            self._min_candidates.pop()
        self._min_candidates.append((seq, value))

    def stats(self) -> WindowStats | None:
        """Compute the summary of the current window.

        :returns: WindowStats, or None if nothing has been appended yet.
        """
        count = len(self._values)
        if count == 0:
            return None

        # n^2 * variance, always >= 0 with exact integer sums
        scaled_variance = count * self._sum_sq - self._sum * self._sum
        return WindowStats(
            max=self._max_candidates[0][1],
            min=self._min_candidates[0][1],
            count=count,
            mean=self._sum // count,
            stddev=math.isqrt(scaled_variance) // count,
        )
