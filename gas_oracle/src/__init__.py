"""
ROFL Gas Oracle - Multi-Chain Gas Price Feed

This module provides gas price tracking across EVM chains:
- HistoryWindow: Bounded per-chain price history with O(1) extrema
- StatisticsEngine: High/low records and buy signal detection
- FetchCycle: Concurrent per-chain fetching with failure isolation
- Scheduler: Fixed-interval cycle driver with skip-on-overlap
- OracleSink: On-chain publication of gas price records
- GasOracle: Main orchestrator wiring everything together
- fetchers: Modular gas price fetcher implementations
"""

from .ChainConfig import DEFAULT_CHAINS, ChainConfig, ConfigurationError
from .FetchCycle import CycleError, FetchCycle, SourceFailure
from .GasOracle import GasOracle
from .HistoryWindow import DEFAULT_WINDOW_SIZE, HistoryWindow, WindowStats
from .OracleSink import LoggingSink, OracleSink, PublishSink, SinkError
from .Scheduler import CycleStats, Scheduler, SchedulerState
from .SourceManager import SourceManager, SourceStatus
from .StatisticsEngine import (
    BuySignal,
    PriceRecord,
    StatisticsEngine,
    detect_buy_signal,
    format_gwei,
)

__all__ = [
    "BuySignal",
    "ChainConfig",
    "ConfigurationError",
    "CycleError",
    "CycleStats",
    "DEFAULT_CHAINS",
    "DEFAULT_WINDOW_SIZE",
    "FetchCycle",
    "GasOracle",
    "HistoryWindow",
    "LoggingSink",
    "OracleSink",
    "PriceRecord",
    "PublishSink",
    "Scheduler",
    "SchedulerState",
    "SinkError",
    "SourceFailure",
    "SourceManager",
    "SourceStatus",
    "StatisticsEngine",
    "WindowStats",
    "detect_buy_signal",
    "format_gwei",
]
