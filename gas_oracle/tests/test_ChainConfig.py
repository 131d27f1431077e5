"""Unit tests for ChainConfig."""

import pytest

from gas_oracle.src.ChainConfig import (
    DEFAULT_CHAINS,
    ChainConfig,
    ConfigurationError,
    load_chains,
    validate_config,
)

ORACLE = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


class TestLoadChains:
    """Test building the chain list."""

    def test_defaults(self) -> None:
        """No selection should enable every default chain."""
        chains = load_chains(environ={})
        assert [c.name for c in chains] == [
            "ethereum",
            "base",
            "arbitrum",
            "polygon",
            "optimism",
            "arc",
        ]
        assert all(c.enabled for c in chains)
        assert chains == list(DEFAULT_CHAINS)

    def test_enable_subset(self) -> None:
        chains = load_chains(enabled=["Base", " ethereum "], environ={})
        enabled = [c.name for c in chains if c.enabled]
        assert enabled == ["ethereum", "base"]
        assert len(chains) == len(DEFAULT_CHAINS)

    def test_env_override(self) -> None:
        chains = load_chains(environ={"BASE_RPC": "https://my-base.example"})
        base = next(c for c in chains if c.name == "base")
        assert base.rpc_url == "https://my-base.example"

    def test_cli_override_beats_env(self) -> None:
        chains = load_chains(
            rpc_overrides={"BASE": "https://cli.example"},
            environ={"BASE_RPC": "https://env.example"},
        )
        base = next(c for c in chains if c.name == "base")
        assert base.rpc_url == "https://cli.example"

    def test_extra_chain_with_override(self) -> None:
        """A non-default chain can be added with an RPC URL."""
        chains = load_chains(
            enabled=["linea"],
            rpc_overrides={"linea": "https://rpc.linea.build"},
            environ={},
        )
        enabled = [c for c in chains if c.enabled]
        assert enabled == [ChainConfig("linea", "https://rpc.linea.build")]

    def test_extra_chain_from_env(self) -> None:
        chains = load_chains(enabled=["zksync"], environ={"ZKSYNC_RPC": "https://zk.example"})
        assert chains[-1] == ChainConfig("zksync", "https://zk.example")

    def test_extra_chain_without_url(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown chain 'linea'"):
            load_chains(enabled=["linea"], environ={})

    def test_env_var_name(self) -> None:
        assert ChainConfig("arbitrum", "x").env_var == "ARBITRUM_RPC"


class TestValidateConfig:
    """Test pre-loop validation."""

    def test_valid(self) -> None:
        warnings = validate_config(list(DEFAULT_CHAINS), 0.5, 5, 1000, ORACLE)
        assert warnings == []

    def test_demo_mode_warning(self) -> None:
        warnings = validate_config(list(DEFAULT_CHAINS), 0.5, 5, 1000, None)
        assert any("demo mode" in w for w in warnings)

    def test_no_enabled_chains(self) -> None:
        chains = [ChainConfig("ethereum", "https://x", enabled=False)]
        with pytest.raises(ConfigurationError, match="At least one chain"):
            validate_config(chains, 0.5, 5, 1000)

    def test_invalid_rpc_url(self) -> None:
        chains = [ChainConfig("ethereum", "not-a-url")]
        with pytest.raises(ConfigurationError, match="Invalid RPC URL for ethereum"):
            validate_config(chains, 0.5, 5, 1000)

    def test_disabled_chain_url_not_checked(self) -> None:
        chains = [
            ChainConfig("ethereum", "https://x"),
            ChainConfig("broken", "nope", enabled=False),
        ]
        validate_config(chains, 0.5, 5, 1000)

    def test_invalid_oracle_address(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid oracle address"):
            validate_config(list(DEFAULT_CHAINS), 0.5, 5, 1000, "0x1234")

    def test_collects_all_errors(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            validate_config(list(DEFAULT_CHAINS), 0, 0, 0)
        message = str(exc_info.value)
        assert "interval" in message
        assert "Batch size" in message
        assert "History size" in message
