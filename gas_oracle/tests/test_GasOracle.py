"""Unit tests for GasOracle."""

from unittest.mock import MagicMock, patch

import pytest

from gas_oracle.src.ChainConfig import ChainConfig, ConfigurationError
from gas_oracle.src.GasOracle import GasOracle
from gas_oracle.src.OracleSink import LoggingSink, OracleSink
from gas_oracle.src.SourceManager import SourceManager
from gas_oracle.src.fetchers import BaseFetcher

ORACLE = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
APP_ID = "rofl1qrtetspnld9efpeasxmryl6nw9mgllr0euls3dwn"

CHAINS = [
    ChainConfig("ethereum", "https://eth.test"),
    ChainConfig("base", "https://base.test"),
    ChainConfig("polygon", "https://polygon.test", enabled=False),
]


class TestGasOracleInit:
    """Test wiring of the components."""

    def test_demo_mode(self) -> None:
        oracle = GasOracle("sapphire-localnet", CHAINS)

        assert oracle.demo_mode
        assert isinstance(oracle.sink, LoggingSink)
        assert [c.name for c in oracle.chains] == ["ethereum", "base"]
        assert list(oracle.cycle.sources) == ["ethereum", "base"]
        assert isinstance(oracle.source_manager, SourceManager)
        assert oracle.scheduler.sink is oracle.sink

    def test_default_fetch_timeout(self) -> None:
        """Fetch timeout defaults to 80% of the interval."""
        oracle = GasOracle("sapphire-localnet", CHAINS, interval=0.5)
        assert oracle.fetchers["gasprice"].timeout == pytest.approx(0.4)

        oracle = GasOracle("sapphire-localnet", CHAINS, interval=60)
        assert oracle.fetchers["gasprice"].timeout == 10.0

    def test_fetcher_endpoints(self) -> None:
        oracle = GasOracle("sapphire-localnet", CHAINS, fetcher="basefee")
        fetcher = oracle.fetchers["basefee"]
        assert fetcher.supports_source("base")
        assert not fetcher.supports_source("polygon")

    def test_unknown_fetcher(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown fetcher"):
            GasOracle("sapphire-localnet", CHAINS, fetcher="nope")

    def test_no_enabled_chains(self) -> None:
        chains = [ChainConfig("ethereum", "https://eth.test", enabled=False)]
        with pytest.raises(ConfigurationError, match="At least one chain"):
            GasOracle("sapphire-localnet", chains)

    def test_oracle_sink(self) -> None:
        """With an oracle address, records go to the contract."""
        rofl_utility = MagicMock()
        with patch("gas_oracle.src.GasOracle.ContractUtility") as contract_utility:
            w3 = contract_utility.return_value.w3
            w3.to_checksum_address.side_effect = lambda a: a
            oracle = GasOracle(
                "sapphire-testnet",
                CHAINS,
                oracle_address=ORACLE,
                batch_size=2,
                rofl_utility=rofl_utility,
            )

        assert not oracle.demo_mode
        assert isinstance(oracle.sink, OracleSink)
        assert oracle.sink.batch_size == 2
        assert oracle.sink.rofl_utility is rofl_utility
        assert w3.eth.contract.call_args.kwargs["address"] == ORACLE

    def test_missing_appd_socket(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("ROFL_APPD_URL", str(tmp_path / "missing.sock"))
        with patch("gas_oracle.src.GasOracle.ContractUtility"):
            with pytest.raises(ConfigurationError, match="appd socket not found"):
                GasOracle("sapphire", CHAINS, oracle_address=ORACLE)


def make_live_oracle(app_id: str = APP_ID, code: bytes = b"\x60\x80") -> GasOracle:
    rofl_utility = MagicMock()
    rofl_utility.fetch_appid.return_value = app_id
    with patch("gas_oracle.src.GasOracle.ContractUtility") as contract_utility:
        w3 = contract_utility.return_value.w3
        w3.to_checksum_address.side_effect = lambda a: a
        w3.eth.get_code.return_value = code
        w3.eth.default_account = None
        oracle = GasOracle(
            "sapphire-testnet", CHAINS, oracle_address=ORACLE, rofl_utility=rofl_utility
        )
    oracle.contract.functions.roflAppID.return_value.call.return_value = bytes.fromhex(
        "00d795c033fb4b94873d81b6327f5371768ffc6fcf"
    )
    return oracle


class TestOracleHealth:
    """Test the startup contract check."""

    def test_healthy(self) -> None:
        make_live_oracle().check_oracle_health()

    def test_no_contract(self) -> None:
        with pytest.raises(ConfigurationError, match="No contract deployed"):
            make_live_oracle(code=b"").check_oracle_health()

    def test_wrong_app(self) -> None:
        oracle = make_live_oracle(app_id="rofl11qqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqtdv26p")
        with pytest.raises(ConfigurationError, match="bound to app"):
            oracle.check_oracle_health()

    def test_demo_mode_skips_check(self) -> None:
        GasOracle("sapphire-localnet", CHAINS).check_oracle_health()


@pytest.mark.asyncio
class TestGasOracleRun:
    """Test the run lifecycle."""

    async def test_stop_before_run(self) -> None:
        """A stopped oracle exits without fetching and closes the client."""
        oracle = GasOracle("sapphire-localnet", CHAINS)
        BaseFetcher.get_shared_client()
        oracle.stop()

        await oracle.run()

        assert oracle.scheduler.stats.update_count == 0
        assert BaseFetcher._shared_client is None
