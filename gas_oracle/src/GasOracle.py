"""GasOracle: Main orchestrator for the multi-chain gas price feed.

This module fetches gas prices from several EVM chains, keeps a rolling
history per chain and relays the resulting records to a GasOracle contract
on Sapphire.

Architecture:
    - One fetcher instance per fetcher kind, serving all enabled chains
    - FetchCycle owns one HistoryWindow per chain
    - Scheduler runs a cycle every interval, at most one at a time
    - OracleSink submits each non-empty batch through the ROFL appd
      (or directly on localnet); without an oracle address the oracle runs
      in demo mode and only logs prices
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from typing import TYPE_CHECKING

from .ChainConfig import ChainConfig, ConfigurationError, validate_config
from .ContractUtility import ContractUtility
from .FetchCycle import DEFAULT_MAX_CONCURRENCY, FetchCycle
from .HistoryWindow import DEFAULT_WINDOW_SIZE
from .OracleSink import DEFAULT_BATCH_SIZE, LoggingSink, OracleSink, PublishSink
from .RoflUtility import RoflUtility, bech32_to_bytes
from .RoflUtilityAppd import RoflUtilityAppd
from .RoflUtilityLocalnet import RoflUtilityLocalnet
from .Scheduler import DEFAULT_STATS_PERIOD, Scheduler
from .SourceManager import SourceManager
from .StatisticsEngine import DEFAULT_BUY_THRESHOLD_PERCENT, StatisticsEngine
from .fetchers import BaseFetcher, get_fetcher

if TYPE_CHECKING:
    from web3 import Web3
    from web3.contract import Contract

logger = logging.getLogger(__name__)

# Retries per appd request; a stuck submission holds the cycle slot.
SUBMIT_RETRIES = 3


class GasOracle:
    """Main orchestrator for the gas price feed.

    :ivar network_name: Target network name.
    :ivar chains: Enabled chains.
    :ivar interval: Seconds between update cycles.
    :ivar fetchers: Dict mapping fetcher names to fetcher instances.
    :ivar cycle: FetchCycle shared by all ticks.
    :ivar sink: PublishSink receiving each batch.
    :ivar scheduler: Scheduler driving the cycles.
    """

    def __init__(
        self,
        network_name: str,
        chains: list[ChainConfig],
        oracle_address: str | None = None,
        fetcher: str = "gasprice",
        interval: float = 0.5,
        batch_size: int = DEFAULT_BATCH_SIZE,
        window_size: int = DEFAULT_WINDOW_SIZE,
        fetch_timeout: float | None = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        stats_period: float = DEFAULT_STATS_PERIOD,
        buy_threshold_percent: int = DEFAULT_BUY_THRESHOLD_PERCENT,
        grace_period: float | None = None,
        rofl_utility: RoflUtility | None = None,
    ) -> None:
        """Initialize the gas oracle.

        :param network_name: Network the oracle contract lives on
            (sapphire, sapphire-testnet, sapphire-localnet).
        :param chains: Chains to monitor; disabled ones are ignored.
        :param oracle_address: GasOracle contract address, None for demo mode.
        :param fetcher: Fetcher kind used for every chain (default: gasprice).
        :param interval: Seconds between cycles (default: 0.5).
        :param batch_size: Minimum batch length for a batched transaction.
        :param window_size: History window capacity per chain.
        :param fetch_timeout: Per-chain fetch timeout; defaults to 80% of
            the interval, capped at 10 seconds.
        :param max_concurrency: Maximum concurrent fetches.
        :param stats_period: Seconds between stats reports.
        :param buy_threshold_percent: Buy signal threshold.
        :param grace_period: Optional shutdown grace period in seconds.
        :param rofl_utility: Optional RoflUtility override.
        :raises ConfigurationError: If the configuration is invalid.
        """
        for warning in validate_config(
            chains, interval, batch_size, window_size, oracle_address
        ):
            logger.warning(warning)

        self.network_name = network_name
        self.chains = [c for c in chains if c.enabled]
        self.interval = interval
        self.oracle_address = oracle_address
        if fetch_timeout is None:
            fetch_timeout = min(10.0, interval * 0.8)

        try:
            self.fetchers: dict[str, BaseFetcher] = {
                fetcher: get_fetcher(
                    fetcher,
                    endpoints={c.name: c.rpc_url for c in self.chains},
                    timeout=fetch_timeout,
                )
            }
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        self.source_manager = SourceManager([c.name for c in self.chains])
        self.cycle = FetchCycle(
            sources={c.name: self.fetchers[fetcher] for c in self.chains},
            window_size=window_size,
            fetch_timeout=fetch_timeout,
            max_concurrency=max_concurrency,
            engine=StatisticsEngine(buy_threshold_percent),
            source_manager=self.source_manager,
        )

        self.w3: Web3 | None = None
        self.contract: Contract | None = None
        self.rofl_utility = rofl_utility
        self.sink: PublishSink
        if oracle_address is None:
            self.sink = LoggingSink()
        else:
            self.sink = self._create_oracle_sink(oracle_address, batch_size)

        self.scheduler = Scheduler(
            cycle=self.cycle,
            sink=self.sink,
            interval=interval,
            stats_period=stats_period,
            grace_period=grace_period,
        )

        logger.info(
            f"GasOracle initialized: chains={[c.name for c in self.chains]}, "
            f"fetcher={fetcher}, interval={interval}s, fetch_timeout={fetch_timeout}s, "
            f"window={window_size}"
        )

    @property
    def demo_mode(self) -> bool:
        return self.oracle_address is None

    def _create_oracle_sink(self, oracle_address: str, batch_size: int) -> OracleSink:
        """Connect to Sapphire and bind the GasOracle contract.

        :param oracle_address: GasOracle contract address.
        :param batch_size: Batch length threshold.
        :returns: Configured OracleSink.
        :raises ConfigurationError: If no way to submit transactions exists.
        """
        contract_utility = ContractUtility(self.network_name)
        w3 = contract_utility.w3
        self.w3 = w3

        if self.rofl_utility is None:
            if self.network_name == "sapphire-localnet":
                self.rofl_utility = RoflUtilityLocalnet(w3)
            else:
                appd = RoflUtilityAppd(
                    url=os.environ.get("ROFL_APPD_URL", ""),
                    max_retries=SUBMIT_RETRIES,
                )
                socket_path = appd.socket_path
                if socket_path is not None and not os.path.exists(socket_path):
                    raise ConfigurationError(
                        f"ROFL appd socket not found at {socket_path}; "
                        "run inside a ROFL container or set ROFL_APPD_URL"
                    )
                self.rofl_utility = appd

        self.contract = w3.eth.contract(
            address=w3.to_checksum_address(oracle_address),
            abi=ContractUtility.get_abi("GasOracle"),
        )
        return OracleSink(
            contract=self.contract,
            rofl_utility=self.rofl_utility,
            batch_size=batch_size,
            gas_price_fn=lambda: w3.eth.gas_price,
        )

    def check_oracle_health(self) -> None:
        """Verify the oracle contract exists and accepts this app.

        :raises ConfigurationError: If the contract is missing or bound to a
            different ROFL app.
        """
        if self.contract is None or self.w3 is None or self.rofl_utility is None:
            return

        address = self.contract.address
        if not self.w3.eth.get_code(address):
            raise ConfigurationError(f"No contract deployed at {address}")
        logger.info(f"Oracle contract found: {address}")

        app_id = self.rofl_utility.fetch_appid()
        expected = bech32_to_bytes(app_id)
        configured = bytes(self.contract.functions.roflAppID().call())
        if configured != expected:
            raise ConfigurationError(
                f"Oracle contract is bound to app 0x{configured.hex()}, "
                f"this app is {app_id}"
            )

        account = self.w3.eth.default_account
        if account:
            balance = self.w3.eth.get_balance(account)
            logger.info(f"Bot address: {account}, balance: {self.w3.from_wei(balance, 'ether')}")
            if balance == 0:
                logger.warning("Bot has 0 balance. Transactions will fail.")

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.scheduler.stop)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform or outside the main thread
                pass

    def stop(self) -> None:
        """Request a graceful shutdown."""
        self.scheduler.stop()

    async def run(self) -> None:
        """Run the gas oracle until stopped.

        Checks the oracle contract, then starts the update loop.
        """
        if self.demo_mode:
            logger.info("Running in DEMO MODE: gas prices are fetched but not published")
        else:
            self.check_oracle_health()

        self._install_signal_handlers()
        try:
            await self.scheduler.run()
        finally:
            # Clean up shared HTTP client
            await BaseFetcher.close_shared_client()
