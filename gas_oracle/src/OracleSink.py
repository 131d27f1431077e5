"""OracleSink: Publishes gas price records to the on-chain oracle.

Batches at or above ``batch_size`` records go out as a single
``batchUpdateGasPrices`` transaction. Smaller batches are published one
``updateGasPrice`` transaction per chain, since a batch call costs more than
a handful of single updates.

Publishing never touches history: by the time a batch reaches the sink the
windows have already absorbed it, whatever the publish outcome.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable

from web3.exceptions import Web3Exception

from .RoflUtility import TxSubmitError
from .StatisticsEngine import PriceRecord, format_gwei

if TYPE_CHECKING:
    from web3.contract import Contract
    from web3.types import TxParams

    from .RoflUtility import RoflUtility

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5


class SinkError(Exception):
    """Raised when a batch could not be published."""

    pass


class PublishSink(ABC):
    """Receives the batch of PriceRecords produced by each cycle."""

    @abstractmethod
    def submit(self, batch: list[PriceRecord]) -> list[str]:
        """Publish a batch of records.

        :param batch: Records produced by one cycle.
        :returns: Identifiers of the transactions sent.
        :raises SinkError: If nothing could be published.
        """
        pass


class LoggingSink(PublishSink):
    """Demo-mode sink that only logs what would have been published."""

    def submit(self, batch: list[PriceRecord]) -> list[str]:
        summary = ", ".join(f"{r.source_id}:{r.price}" for r in batch)
        logger.debug(f"Demo mode, not publishing [{summary}]")
        return []


class OracleSink(PublishSink):
    """Publishes records to the GasOracle contract through a RoflUtility.

    :ivar contract: GasOracle contract instance.
    :ivar rofl_utility: Utility used to sign and submit transactions.
    :ivar batch_size: Minimum batch length for a single batched transaction.
    """

    def __init__(
        self,
        contract: Contract,
        rofl_utility: RoflUtility,
        batch_size: int = DEFAULT_BATCH_SIZE,
        gas_price_fn: Callable[[], int] | None = None,
    ) -> None:
        """Initialize the sink.

        :param contract: GasOracle contract instance.
        :param rofl_utility: ROFL utility for transaction submission.
        :param batch_size: Batch length threshold (default: 5).
        :param gas_price_fn: Callable returning the Sapphire gas price.
        :raises ValueError: If batch_size is less than 1.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        self.contract = contract
        self.rofl_utility = rofl_utility
        self.batch_size = batch_size
        self.gas_price_fn = gas_price_fn

    def submit(self, batch: list[PriceRecord]) -> list[str]:
        """Publish a batch, batched or one transaction per record.

        Individual failures are logged and skipped; SinkError is raised only
        if no transaction could be sent at all.

        :param batch: Records produced by one cycle.
        :returns: Identifiers of the transactions sent.
        :raises SinkError: If every submission failed.
        """
        if not batch:
            return []

        if len(batch) >= self.batch_size:
            return [self._submit_batch(batch)]

        tx_ids: list[str] = []
        failed: list[str] = []
        for record in batch:
            try:
                tx_ids.append(self._submit_single(record))
            except SinkError as e:
                logger.warning(f"Error publishing {record.source_id}: {e}")
                failed.append(record.source_id)

        if failed and not tx_ids:
            raise SinkError(f"Failed to publish any of {failed}")
        return tx_ids

    def _submit_single(self, record: PriceRecord) -> str:
        """Publish a single record via updateGasPrice.

        :param record: Record to publish.
        :returns: Transaction identifier.
        """
        call = self.contract.functions.updateGasPrice(
            record.source_id,
            record.price,
            record.high,
            record.low,
            int(record.observed_at),
        )
        tx_id = self._send(call)
        logger.info(
            f"Published {record.source_id}: {format_gwei(record.price)} gwei (tx: {tx_id})"
        )
        return tx_id

    def _submit_batch(self, batch: list[PriceRecord]) -> str:
        """Publish all records via batchUpdateGasPrices.

        :param batch: Records to publish.
        :returns: Transaction identifier.
        """
        call = self.contract.functions.batchUpdateGasPrices(
            [r.source_id for r in batch],
            [r.price for r in batch],
            [r.high for r in batch],
            [r.low for r in batch],
            int(max(r.observed_at for r in batch)),
        )
        tx_id = self._send(call)
        prices_summary = ", ".join(f"{r.source_id}:{r.price}" for r in batch)
        logger.info(f"Batch published [{prices_summary}] (tx: {tx_id})")
        return tx_id

    def _send(self, call) -> str:
        """Build and submit a contract call.

        :param call: Bound contract function.
        :returns: Transaction identifier.
        :raises SinkError: If building or submitting the transaction failed.
        """
        try:
            gas_price = self.gas_price_fn() if self.gas_price_fn else 0
            tx_params: TxParams = call.build_transaction({"gasPrice": gas_price})
            return self.rofl_utility.submit_tx(tx_params)
        except (TxSubmitError, Web3Exception, OSError, ValueError) as e:
            # OSError covers transport failures from the HTTP provider
            raise SinkError(str(e) or type(e).__name__) from e
