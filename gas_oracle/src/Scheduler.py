"""Scheduler: Fixed-interval driver for fetch cycles.

Ticks on a fixed period measured against the event loop clock. A tick that
arrives while the previous cycle is still in flight is dropped, never
queued, so slow RPC endpoints cannot build up a backlog of cycles.

Each cycle:
    1. Runs the FetchCycle
    2. Logs every record, flagging buy signals
    3. Hands the batch to the sink in a worker thread (submission blocks)
    4. Updates the process-wide CycleStats

Only the cycle task touches CycleStats, and at most one cycle task exists at
a time.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .OracleSink import SinkError
from .StatisticsEngine import format_gwei

if TYPE_CHECKING:
    from .FetchCycle import FetchCycle
    from .OracleSink import PublishSink
    from .StatisticsEngine import PriceRecord

logger = logging.getLogger(__name__)

DEFAULT_STATS_PERIOD = 60.0


class SchedulerState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class CycleStats:
    """Process-wide cycle counters.

    :ivar update_count: Cycles that produced a non-empty batch.
    :ivar error_count: Cycles that failed with an unexpected exception.
    :ivar empty_cycles: Cycles in which every chain failed.
    :ivar skipped_ticks: Ticks dropped because a cycle was still running.
    :ivar publish_failures: Batches the sink failed to publish.
    :ivar started_at: Unix timestamp the scheduler started at.
    """

    update_count: int = 0
    error_count: int = 0
    empty_cycles: int = 0
    skipped_ticks: int = 0
    publish_failures: int = 0
    started_at: float = field(default_factory=time.time)

    def uptime(self, now: float | None = None) -> float:
        """Seconds since the scheduler started."""
        return max(0.0, (time.time() if now is None else now) - self.started_at)

    def format(self, now: float | None = None) -> str:
        """Human-readable one-line summary."""
        uptime = round(self.uptime(now))
        return (
            f"Stats: {self.update_count} updates | {self.error_count} errors | "
            f"Uptime: {uptime // 60}m {uptime % 60}s"
        )


class Scheduler:
    """Runs a FetchCycle every ``interval`` seconds until stopped.

    :ivar cycle: FetchCycle run on every tick.
    :ivar sink: PublishSink receiving non-empty batches, or None.
    :ivar interval: Seconds between ticks.
    :ivar stats_period: Seconds between stats reports.
    :ivar grace_period: Seconds to wait for an in-flight cycle on shutdown,
        None to wait indefinitely.
    :ivar stats: Process-wide counters.
    """

    def __init__(
        self,
        cycle: FetchCycle,
        sink: PublishSink | None = None,
        interval: float = 0.5,
        stats_period: float = DEFAULT_STATS_PERIOD,
        grace_period: float | None = None,
    ) -> None:
        """Initialize the scheduler.

        :param cycle: FetchCycle to run on every tick.
        :param sink: Optional PublishSink for non-empty batches.
        :param interval: Seconds between ticks (default: 0.5).
        :param stats_period: Seconds between stats reports (default: 60).
        :param grace_period: Optional shutdown grace period in seconds.
        :raises ValueError: If interval or stats_period is not positive.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        if stats_period <= 0:
            raise ValueError("stats_period must be positive")

        self.cycle = cycle
        self.sink = sink
        self.interval = interval
        self.stats_period = stats_period
        self.grace_period = grace_period
        self.stats = CycleStats()

        self._stop_event = asyncio.Event()
        self._inflight: asyncio.Task | None = None
        self._stopped = False

    @property
    def state(self) -> SchedulerState:
        if self._stopped:
            return SchedulerState.STOPPED
        if self.cycle_in_flight:
            return SchedulerState.RUNNING
        return SchedulerState.IDLE

    @property
    def cycle_in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def stop(self) -> None:
        """Request shutdown. No new cycle starts after this call."""
        if not self._stop_event.is_set():
            logger.info("Stop requested, finishing in-flight cycle")
        self._stop_event.set()

    def tick(self) -> bool:
        """Start a cycle unless one is already running.

        :returns: True if a cycle was started, False if the tick was skipped.
        """
        if self._stop_event.is_set():
            return False
        if self.cycle_in_flight:
            self.stats.skipped_ticks += 1
            logger.debug("Previous cycle still running, skipping tick")
            return False
        self._inflight = asyncio.create_task(self.run_cycle())
        return True

    async def run(self) -> None:
        """Tick every interval until stop() is called, then drain."""
        loop = asyncio.get_running_loop()
        self.stats = CycleStats()
        self._stopped = False
        reporter = asyncio.create_task(self._report_loop())

        logger.info(f"Starting update loop (interval={self.interval}s)")
        next_tick = loop.time()
        try:
            while not self._stop_event.is_set():
                self.tick()

                next_tick += self.interval
                delay = next_tick - loop.time()
                if delay < 0:
                    # Event loop fell behind; resume from now
                    next_tick = loop.time()
                    delay = 0
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
        finally:
            reporter.cancel()
            await asyncio.gather(reporter, return_exceptions=True)
            await self._drain()
            self._stopped = True
            logger.info(self.stats.format())

    async def _drain(self) -> None:
        """Wait for the in-flight cycle, abandoning it after the grace period."""
        task = self._inflight
        if task is None or task.done():
            return

        if self.grace_period is None:
            await task
            return

        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=self.grace_period)
        except asyncio.TimeoutError:
            logger.warning(
                f"In-flight cycle did not finish within {self.grace_period}s, abandoning"
            )
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def _report_loop(self) -> None:
        while True:
            await asyncio.sleep(self.stats_period)
            logger.info(self.stats.format())

    async def run_cycle(self) -> None:
        """Run one fetch/publish cycle and update the counters."""
        try:
            records = await self.cycle.run()

            if not records:
                self.stats.empty_cycles += 1
                logger.warning("No prices fetched in this cycle")
                return

            self._log_records(records)

            if self.sink is not None:
                try:
                    await asyncio.to_thread(self.sink.submit, records)
                except SinkError as e:
                    self.stats.publish_failures += 1
                    logger.error(f"Error publishing batch: {e}")

            self.stats.update_count += 1
        except Exception as e:
            self.stats.error_count += 1
            logger.error(f"Update cycle error: {e}", exc_info=True)

    def _log_records(self, records: list[PriceRecord]) -> None:
        timestamp = time.strftime("%H:%M:%S")
        lines = [f"[{timestamp}] Gas Prices:"]
        for record in records:
            signal = self.cycle.engine.detect_buy_signal(record)
            buy_indicator = (
                f" BUY ({signal.savings_percent}% savings)" if signal.is_signal else ""
            )
            lines.append(
                f"  {record.source_id:<10}: {record.price} wei "
                f"({format_gwei(record.price)} gwei){buy_indicator}"
            )
        logger.info("\n".join(lines))
