"""SourceManager: Per-chain fetch outcome tracking.

Every fetch attempt ends in exactly one record_success() or record_failure()
call. Failures here are recoverable events: a failing chain is left out of
the cycle's batch and its history is not touched, but the failure is kept
visible for reporting.

.. code-block:: python

    >>> manager = SourceManager(["ethereum", "base"])
    >>> manager.record_failure("base", "timeout")
    1
    >>> manager.record_failure("base", "timeout")
    2
    >>> manager.record_success("base")
    >>> manager.get_source_status("base").consecutive_failures
    0
    >>> manager.total_failures
    2
"""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass
class SourceStatus:
    """Tracks the fetch outcomes of a single chain.

    :ivar consecutive_failures: Number of failures since the last success.
    :ivar total_failures: Total failures since tracking began.
    :ivar total_successes: Total successes since tracking began.
    :ivar last_error: Reason of the most recent failure.
    :ivar last_success_at: Unix timestamp of the most recent success.
    """

    consecutive_failures: int = 0
    total_failures: int = 0
    total_successes: int = 0
    last_error: str | None = None
    last_success_at: float = 0.0


class SourceManager:
    """Keeps a SourceStatus for each configured chain.

    :ivar sources: List of tracked chain names.
    """

    def __init__(self, sources: list[str]) -> None:
        """Initialize the source manager.

        :param sources: List of chain names to track.
        """
        self.sources = list(sources)
        self._status: dict[str, SourceStatus] = {s: SourceStatus() for s in sources}

    def _get_or_create(self, source: str) -> SourceStatus:
        if source not in self._status:
            self.sources.append(source)
            self._status[source] = SourceStatus()
        return self._status[source]

    def record_failure(self, source: str, reason: str) -> int:
        """Record a failed fetch for a chain.

        :param source: Chain name that failed.
        :param reason: Human-readable failure reason.
        :returns: The number of consecutive failures, this one included.
        """
        status = self._get_or_create(source)
        status.consecutive_failures += 1
        status.total_failures += 1
        status.last_error = reason
        return status.consecutive_failures

    def record_success(self, source: str) -> None:
        """Record a successful fetch, resetting the consecutive failure count.

        :param source: Chain name that succeeded.
        """
        status = self._get_or_create(source)
        status.consecutive_failures = 0
        status.total_successes += 1
        status.last_success_at = time.time()

    def get_source_status(self, source: str) -> SourceStatus | None:
        """Get the status of a specific chain.

        :param source: Chain name to query.
        :returns: SourceStatus or None if chain not tracked.
        """
        return self._status.get(source)

    def get_all_status(self) -> dict[str, SourceStatus]:
        """Get status of all chains.

        :returns: Dict mapping chain names to their status.
        """
        return dict(self._status)

    @property
    def total_failures(self) -> int:
        """Sum of recoverable fetch failures over all chains."""
        return sum(s.total_failures for s in self._status.values())

    def get_failing_sources(self) -> list[str]:
        """Chains whose most recent fetch failed."""
        return [s for s in self.sources if self._status[s].consecutive_failures > 0]
