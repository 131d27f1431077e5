"""Unit tests for OracleSink."""

from unittest.mock import MagicMock

import pytest
import requests
from web3.exceptions import ContractLogicError

from gas_oracle.src.OracleSink import LoggingSink, OracleSink, SinkError
from gas_oracle.src.RoflUtility import TxSubmitError
from gas_oracle.src.StatisticsEngine import PriceRecord


def make_records(count: int) -> list[PriceRecord]:
    return [
        PriceRecord(
            f"chain{i}",
            price=(i + 1) * 10**9,
            high=(i + 2) * 10**9,
            low=i * 10**9,
            observed_at=1700000000.5 + i,
        )
        for i in range(count)
    ]


def make_sink(batch_size: int = 3, submit_side_effect=None) -> OracleSink:
    contract = MagicMock()
    rofl_utility = MagicMock()
    rofl_utility.submit_tx.side_effect = submit_side_effect or (
        lambda tx: f"0x{rofl_utility.submit_tx.call_count:02x}"
    )
    return OracleSink(
        contract=contract,
        rofl_utility=rofl_utility,
        batch_size=batch_size,
        gas_price_fn=lambda: 100,
    )


class TestOracleSinkInit:
    """Test OracleSink construction."""

    def test_invalid_batch_size(self) -> None:
        with pytest.raises(ValueError, match="batch_size must be at least 1"):
            OracleSink(MagicMock(), MagicMock(), batch_size=0)


class TestOracleSinkSubmit:
    """Test batched vs individual submission."""

    def test_empty_batch(self) -> None:
        sink = make_sink()
        assert sink.submit([]) == []
        sink.rofl_utility.submit_tx.assert_not_called()

    def test_small_batch_is_published_individually(self) -> None:
        """Below batch_size each record gets its own transaction."""
        sink = make_sink(batch_size=3)
        records = make_records(2)

        tx_ids = sink.submit(records)

        assert tx_ids == ["0x01", "0x02"]
        update = sink.contract.functions.updateGasPrice
        assert update.call_count == 2
        update.assert_any_call("chain0", 10**9, 2 * 10**9, 0, 1700000000)
        update.return_value.build_transaction.assert_called_with({"gasPrice": 100})
        sink.contract.functions.batchUpdateGasPrices.assert_not_called()

    def test_large_batch_is_published_once(self) -> None:
        """At batch_size the whole batch goes in one transaction."""
        sink = make_sink(batch_size=3)
        records = make_records(3)

        tx_ids = sink.submit(records)

        assert tx_ids == ["0x01"]
        sink.contract.functions.batchUpdateGasPrices.assert_called_once_with(
            ["chain0", "chain1", "chain2"],
            [10**9, 2 * 10**9, 3 * 10**9],
            [2 * 10**9, 3 * 10**9, 4 * 10**9],
            [0, 10**9, 2 * 10**9],
            1700000002,
        )
        sink.contract.functions.updateGasPrice.assert_not_called()

    def test_wide_values_passed_unchanged(self) -> None:
        """Magnitudes beyond 64 bits should reach the contract exactly."""
        sink = make_sink(batch_size=5)
        huge = 2**100 + 7
        record = PriceRecord("ethereum", huge, huge, huge, observed_at=1.0)

        sink.submit([record])

        sink.contract.functions.updateGasPrice.assert_called_once_with(
            "ethereum", huge, huge, huge, 1
        )

    def test_partial_individual_failure(self) -> None:
        """One failed record should not prevent the others."""
        results = iter([TxSubmitError("reverted"), "0xbb"])

        def submit(tx):
            result = next(results)
            if isinstance(result, Exception):
                raise result
            return result

        sink = make_sink(batch_size=5, submit_side_effect=submit)

        assert sink.submit(make_records(2)) == ["0xbb"]

    def test_all_individual_failures(self) -> None:
        """SinkError only when nothing could be published."""
        sink = make_sink(batch_size=5, submit_side_effect=TxSubmitError("down"))

        with pytest.raises(SinkError, match="Failed to publish any of"):
            sink.submit(make_records(2))

    def test_batch_failure(self) -> None:
        sink = make_sink(batch_size=1, submit_side_effect=TxSubmitError("down"))

        with pytest.raises(SinkError, match="down"):
            sink.submit(make_records(2))

    def test_build_failure_is_sink_error(self) -> None:
        """Errors building the transaction should surface as SinkError."""
        sink = make_sink(batch_size=1)
        sink.contract.functions.batchUpdateGasPrices.return_value.build_transaction.side_effect = (
            ContractLogicError("execution reverted")
        )

        with pytest.raises(SinkError, match="execution reverted"):
            sink.submit(make_records(1))

    def test_without_gas_price_fn(self) -> None:
        sink = OracleSink(MagicMock(), MagicMock(), batch_size=1)
        sink.rofl_utility.submit_tx.return_value = "ok"

        sink.submit(make_records(1))

        sink.contract.functions.batchUpdateGasPrices.return_value.build_transaction.assert_called_once_with(
            {"gasPrice": 0}
        )

    def test_rpc_outage_is_sink_error(self) -> None:
        """Transport errors from the Sapphire RPC should surface as SinkError."""
        sink = make_sink(batch_size=5)
        sink.contract.functions.updateGasPrice.return_value.build_transaction.side_effect = (
            requests.exceptions.ConnectionError("sapphire rpc down")
        )

        with pytest.raises(SinkError, match="Failed to publish any of"):
            sink.submit(make_records(2))

        assert sink.contract.functions.updateGasPrice.call_count == 2

    def test_gas_price_lookup_failure_is_sink_error(self) -> None:
        sink = OracleSink(MagicMock(), MagicMock(), batch_size=1)
        sink.gas_price_fn = MagicMock(side_effect=requests.exceptions.Timeout())

        with pytest.raises(SinkError, match="Timeout"):
            sink.submit(make_records(1))

    def test_outage_on_one_record_keeps_publishing_others(self) -> None:
        """A transport failure on one record should not skip the rest."""
        results = iter([OSError("connection reset"), "0xcc"])

        def submit(tx):
            result = next(results)
            if isinstance(result, Exception):
                raise result
            return result

        sink = make_sink(batch_size=5, submit_side_effect=submit)

        assert sink.submit(make_records(2)) == ["0xcc"]


class TestLoggingSink:
    """Test demo-mode sink."""

    def test_publishes_nothing(self) -> None:
        assert LoggingSink().submit(make_records(3)) == []
