"""StatisticsEngine: Derives gas price records and buy signals.

Every sample is appended to its chain's HistoryWindow before the window is
summarized, so the current price always participates in its own high/low.

All magnitudes are integer wei. Floating point is never used for a value
that is stored, compared or published; ``format_gwei`` exists only for
human-readable logging.

.. code-block:: python

    >>> record = PriceRecord("ethereum", price=85, high=120, low=80, observed_at=0.0)
    >>> detect_buy_signal(record)
    BuySignal(is_signal=True, savings_percent=15)
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from web3 import Web3

from .HistoryWindow import HistoryWindow

DEFAULT_BUY_THRESHOLD_PERCENT = 10


@dataclass(frozen=True)
class PriceRecord:
    """Gas price of a chain together with its recent history summary.

    :ivar source_id: Chain name the price was fetched from.
    :ivar price: Current gas price in wei.
    :ivar high: Highest price in the chain's window, current one included.
    :ivar low: Lowest price in the chain's window, current one included.
    :ivar observed_at: Unix timestamp of the observation.
    :ivar volatility: Population standard deviation of the window, in wei.
    """

    source_id: str
    price: int
    high: int
    low: int
    observed_at: float
    volatility: int = 0

    @property
    def average(self) -> int:
        """Midpoint of the window's range, floored."""
        return (self.high + self.low) // 2


@dataclass(frozen=True)
class BuySignal:
    """Whether the current price is meaningfully below the recent average.

    :ivar is_signal: True if savings exceed the threshold.
    :ivar savings_percent: Rounded percentage below the average, 0 if none.
    """

    is_signal: bool
    savings_percent: int


NO_SIGNAL = BuySignal(is_signal=False, savings_percent=0)


def detect_buy_signal(
    record: PriceRecord,
    threshold_percent: int = DEFAULT_BUY_THRESHOLD_PERCENT,
) -> BuySignal:
    """Check whether a record's price is far enough below its average.

    The average is ``(high + low) // 2``. Savings are rounded half-up in the
    integer domain. A price equal to or above the average is never a signal.

    :param record: Record to inspect.
    :param threshold_percent: Savings must be strictly greater than this.
    :returns: BuySignal for the record.
    """
    average = record.average
    if average == 0 or record.price >= average:
        return NO_SIGNAL

    savings_percent = (2 * (average - record.price) * 100 + average) // (2 * average)
    return BuySignal(
        is_signal=savings_percent > threshold_percent,
        savings_percent=savings_percent,
    )


def format_gwei(wei: int) -> str:
    """Render a wei amount as a gwei string for display.

    :param wei: Amount in wei.
    :returns: Exact decimal gwei representation (e.g. "1.5").
    """
    return str(Web3.from_wei(wei, "gwei"))


class StatisticsEngine:
    """Builds PriceRecords from raw samples and their history windows.

    :ivar buy_threshold_percent: Savings percentage above which a price is a
        buy signal.
    """

    def __init__(
        self, buy_threshold_percent: int = DEFAULT_BUY_THRESHOLD_PERCENT
    ) -> None:
        """Initialize the engine.

        :param buy_threshold_percent: Buy signal threshold (default: 10).
        :raises ValueError: If the threshold is negative.
        """
        if buy_threshold_percent < 0:
            raise ValueError("buy_threshold_percent must be non-negative")
        self.buy_threshold_percent = buy_threshold_percent

    def summarize(
        self,
        source_id: str,
        raw_value: int,
        window: HistoryWindow,
        observed_at: float | None = None,
    ) -> PriceRecord:
        """Append a raw value to its window and derive the price record.

        :param source_id: Chain the value was fetched from.
        :param raw_value: Gas price in wei.
        :param window: The chain's history window; mutated.
        :param observed_at: Observation timestamp (default: now).
        :returns: PriceRecord with high/low over the updated window.
        """
        window.append(raw_value)
        stats = window.stats()
        if stats is None:
            raise RuntimeError(f"History window for {source_id} is empty after append")

        return PriceRecord(
            source_id=source_id,
            price=raw_value,
            high=stats.max,
            low=stats.min,
            observed_at=time.time() if observed_at is None else observed_at,
            volatility=stats.stddev,
        )

    def detect_buy_signal(self, record: PriceRecord) -> BuySignal:
        """Check a record against this engine's threshold."""
        return detect_buy_signal(record, self.buy_threshold_percent)
