"""FetchCycle: One round of concurrent gas price fetching.

Architecture:
    - One HistoryWindow per configured chain, created up front
    - All chains fetched concurrently, bounded by a semaphore
    - Every fetch bounded by a timeout
    - A failing chain is reported and left out of the batch; its window is
      not modified
    - Surviving samples are summarized into PriceRecords
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .HistoryWindow import DEFAULT_WINDOW_SIZE, HistoryWindow
from .SourceManager import SourceManager
from .StatisticsEngine import PriceRecord, StatisticsEngine
from .fetchers import RawSample

if TYPE_CHECKING:
    from .fetchers import BaseFetcher

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 10


class CycleError(Exception):
    """Raised when the cycle itself cannot run, as opposed to a single chain."""

    pass


@dataclass(frozen=True)
class SourceFailure:
    """Recoverable failure of a single chain's fetch.

    :ivar source_id: Chain that failed.
    :ivar reason: Human-readable failure reason.
    """

    source_id: str
    reason: str


FetchOutcome = RawSample | SourceFailure


class FetchCycle:
    """Fetches every chain once and turns the results into PriceRecords.

    :ivar sources: Dict mapping chain names to the fetcher serving them.
    :ivar windows: Dict mapping chain names to their history window.
    :ivar fetch_timeout: Timeout for a single chain's fetch in seconds.
    :ivar engine: StatisticsEngine used to build records.
    :ivar source_manager: Per-chain success/failure ledger.
    """

    def __init__(
        self,
        sources: dict[str, BaseFetcher],
        window_size: int = DEFAULT_WINDOW_SIZE,
        fetch_timeout: float = 10.0,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        engine: StatisticsEngine | None = None,
        source_manager: SourceManager | None = None,
    ) -> None:
        """Initialize the fetch cycle.

        :param sources: Dict mapping chain names to fetcher instances.
        :param window_size: Capacity of each chain's history window.
        :param fetch_timeout: Timeout for a single fetch (default: 10.0).
        :param max_concurrency: Maximum fetches in flight (default: 10).
        :param engine: Optional StatisticsEngine (default thresholds if omitted).
        :param source_manager: Optional SourceManager to record outcomes in.
        :raises ValueError: If max_concurrency or fetch_timeout is not positive.
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if fetch_timeout <= 0:
            raise ValueError("fetch_timeout must be positive")

        self.sources = dict(sources)
        self.windows: dict[str, HistoryWindow] = {
            source_id: HistoryWindow(window_size) for source_id in self.sources
        }
        self.fetch_timeout = fetch_timeout
        self.engine = engine or StatisticsEngine()
        self.source_manager = source_manager or SourceManager(list(self.sources))
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def run(self, source_ids: list[str] | None = None) -> list[PriceRecord]:
        """Fetch the given chains and build this cycle's batch.

        :param source_ids: Chains to fetch (default: all configured chains).
        :returns: One PriceRecord per chain that fetched successfully, in no
            particular order. Empty if every chain failed.
        :raises CycleError: If a requested chain is not configured.
        """
        ids = list(self.sources) if source_ids is None else list(source_ids)

        unknown = [s for s in ids if s not in self.sources]
        if unknown:
            raise CycleError(f"Unknown sources: {unknown}")

        outcomes = await asyncio.gather(*(self._fetch_one(s) for s in ids))

        records: list[PriceRecord] = []
        for outcome in outcomes:
            if isinstance(outcome, SourceFailure):
                failures = self.source_manager.record_failure(
                    outcome.source_id, outcome.reason
                )
                logger.warning(
                    f"[{outcome.source_id}] Fetch failed ({outcome.reason}), "
                    f"{failures} consecutive"
                )
                continue

            self.source_manager.record_success(outcome.source_id)
            records.append(
                self.engine.summarize(
                    outcome.source_id,
                    outcome.value,
                    self.windows[outcome.source_id],
                    observed_at=outcome.observed_at,
                )
            )

        return records

    async def _fetch_one(self, source_id: str) -> FetchOutcome:
        """Fetch a single chain with timeout.

        The timeout includes time spent waiting for a concurrency slot, so a
        cycle never outlasts ``fetch_timeout`` however many chains queue up.

        :param source_id: Chain name.
        :returns: RawSample, or SourceFailure describing what went wrong.
        """
        try:
            sample = await asyncio.wait_for(
                self._fetch_guarded(source_id),
                timeout=self.fetch_timeout,
            )
        except asyncio.TimeoutError:
            return SourceFailure(source_id, f"timeout after {self.fetch_timeout}s")
        except Exception as e:
            return SourceFailure(source_id, str(e) or type(e).__name__)

        if not isinstance(sample, RawSample) or sample.source_id != source_id:
            return SourceFailure(source_id, f"malformed sample: {sample!r}")
        if (
            isinstance(sample.value, bool)
            or not isinstance(sample.value, int)
            or sample.value < 0
        ):
            return SourceFailure(source_id, f"malformed value: {sample.value!r}")

        return sample

    async def _fetch_guarded(self, source_id: str) -> RawSample:
        async with self._semaphore:
            return await self.sources[source_id].fetch_sample(source_id)
