"""ChainConfig: Chains to monitor and configuration validation.

Every chain is identified by its lowercase name and reached through a single
JSON-RPC endpoint. The default table can be overridden per chain through
``{CHAIN}_RPC`` environment variables or the ``--rpc`` CLI option.

.. code-block:: python

    >>> chains = load_chains(enabled=["ethereum", "base"], environ={})
    >>> [c.name for c in chains if c.enabled]
    ['ethereum', 'base']
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from urllib.parse import urlparse

from web3 import Web3


class ConfigurationError(Exception):
    """Raised when the oracle cannot start with the given configuration."""

    pass


@dataclass(frozen=True)
class ChainConfig:
    """A chain whose gas price is monitored.

    :ivar name: Chain identifier (lowercase), also used on chain.
    :ivar rpc_url: JSON-RPC endpoint.
    :ivar enabled: Whether the chain is fetched.
    """

    name: str
    rpc_url: str
    enabled: bool = True

    @property
    def env_var(self) -> str:
        """Environment variable overriding this chain's RPC URL."""
        return f"{self.name.upper()}_RPC"


DEFAULT_CHAINS: tuple[ChainConfig, ...] = (
    ChainConfig("ethereum", "https://eth.llamarpc.com"),
    ChainConfig("base", "https://mainnet.base.org"),
    ChainConfig("arbitrum", "https://arb1.arbitrum.io/rpc"),
    ChainConfig("polygon", "https://polygon-rpc.com"),
    ChainConfig("optimism", "https://mainnet.optimism.io"),
    ChainConfig("arc", "https://rpc.arc.io"),
)


def load_chains(
    enabled: list[str] | None = None,
    rpc_overrides: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> list[ChainConfig]:
    """Build the chain list from defaults, environment and overrides.

    Chains named in ``enabled`` or ``rpc_overrides`` that are not in the
    default table are added, so any EVM chain can be monitored.

    :param enabled: Chain names to enable. None enables every default chain.
    :param rpc_overrides: Dict mapping chain names to RPC URLs; takes
        precedence over the environment.
    :param environ: Environment to read ``{CHAIN}_RPC`` from (default:
        os.environ).
    :returns: List of ChainConfig, defaults first.
    :raises ConfigurationError: If an added chain has no RPC URL.
    """
    environ = os.environ if environ is None else environ
    overrides = {k.lower(): v for k, v in (rpc_overrides or {}).items()}
    wanted = None if enabled is None else [n.strip().lower() for n in enabled]

    chains: list[ChainConfig] = []
    for chain in DEFAULT_CHAINS:
        rpc_url = overrides.get(chain.name) or environ.get(chain.env_var) or chain.rpc_url
        is_enabled = wanted is None or chain.name in wanted
        chains.append(replace(chain, rpc_url=rpc_url, enabled=is_enabled))

    known = {c.name for c in chains}
    for name in (wanted or []) + list(overrides):
        if name in known:
            continue
        rpc_url = overrides.get(name) or environ.get(f"{name.upper()}_RPC")
        if not rpc_url:
            raise ConfigurationError(
                f"Unknown chain '{name}': set {name.upper()}_RPC or pass --rpc {name}=<url>"
            )
        chains.append(ChainConfig(name, rpc_url, enabled=wanted is None or name in wanted))
        known.add(name)

    return chains


def validate_config(
    chains: list[ChainConfig],
    interval: float,
    batch_size: int,
    window_size: int,
    oracle_address: str | None = None,
) -> list[str]:
    """Check the configuration before entering the update loop.

    :param chains: Configured chains.
    :param interval: Seconds between update cycles.
    :param batch_size: Batch length threshold for batched publishing.
    :param window_size: History window capacity.
    :param oracle_address: Optional GasOracle contract address.
    :returns: Non-fatal warnings.
    :raises ConfigurationError: Listing every fatal problem found.
    """
    errors: list[str] = []
    warnings: list[str] = []

    enabled = [c for c in chains if c.enabled]
    if not enabled:
        errors.append("At least one chain must be enabled")

    for chain in enabled:
        parsed = urlparse(chain.rpc_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append(f"Invalid RPC URL for {chain.name}: {chain.rpc_url!r}")

    if interval < 0.001:
        errors.append("Update interval must be at least 1ms")
    if batch_size < 1:
        errors.append("Batch size must be at least 1")
    if window_size < 1:
        errors.append("History size must be at least 1")

    if oracle_address is None:
        warnings.append("ORACLE_ADDRESS not set (will run in demo mode)")
    elif not Web3.is_address(oracle_address):
        errors.append(f"Invalid oracle address: {oracle_address!r}")

    if errors:
        raise ConfigurationError("; ".join(errors))
    return warnings
